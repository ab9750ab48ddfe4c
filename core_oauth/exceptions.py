"""Error kinds raised by the authorization server.

Each class carries the HTTP status, the RFC 6749 ``error`` code and a default
human readable ``error_description``. Business logic raises them at the point
of detection; :func:`core_oauth.oauth.handler.handler` is the only place they
are turned into wire responses via :meth:`OAuthException.to_response`.

Errors raised after the authorize endpoint has validated a redirect carry
that redirect, and render as a 302 back to the client instead of a JSON body.
"""

from typing import Dict, Optional

from .response import HttpStatus, OAuthErrorResponse, RedirectResponse, Response
from .tools import append_parameters


class OAuthException(Exception):
    status_code: int = HttpStatus.BAD_REQUEST
    error: str = "invalid_request"
    description: str = "This request is invalid."

    def __init__(self, description: Optional[str] = None, *, error: Optional[str] = None):
        self.error_description = description or self.description
        if error:
            self.error = error
        self.redirect: Optional[str] = None
        self.fragment = False
        self.state: Optional[str] = None
        super().__init__(self.error_description)

    def with_redirect(self, redirect: str, fragment: bool = False, state: Optional[str] = None) -> "OAuthException":
        """Attach a validated client redirect so the error is delivered there."""
        self.redirect = redirect
        self.fragment = fragment
        self.state = state
        return self

    def to_response(self) -> Response:
        if self.redirect:
            params: Dict[str, str] = {"error": self.error, "error_description": self.error_description}
            if self.state:
                params["state"] = self.state
            return RedirectResponse(url=append_parameters(self.redirect, params, fragment=self.fragment))

        return OAuthErrorResponse(code=self.status_code, error=self.error, error_description=self.error_description)


class InvalidRequestException(OAuthException):
    status_code = HttpStatus.BAD_REQUEST
    error = "invalid_request"
    description = "This request is invalid."


class UnauthorizedClientException(OAuthException):
    status_code = HttpStatus.UNAUTHORIZED
    error = "unauthorized_client"
    description = "This client is not authorized."


class AccessDeniedException(OAuthException):
    status_code = HttpStatus.UNAUTHORIZED
    error = "access_denied"
    description = "Access denied."


class UnsupportedResponseTypeException(OAuthException):
    status_code = HttpStatus.BAD_REQUEST
    error = "unsupported_response_type"
    description = "The requested response type is not supported."


class InvalidScopeException(OAuthException):
    status_code = HttpStatus.BAD_REQUEST
    error = "invalid_scope"
    description = "The requested scope is not valid."


class ServerErrorException(OAuthException):
    status_code = HttpStatus.INTERNAL_SERVER_ERROR
    error = "server_error"
    description = "Internal Server Error."


class TemporarilyUnavailableException(OAuthException):
    status_code = HttpStatus.BAD_REQUEST
    error = "temporarily_unavailable"
    description = "The service is temporarily unavailable."


class InvalidClientException(OAuthException):
    status_code = HttpStatus.BAD_REQUEST
    error = "invalid_client"
    description = "The requested client is not valid."


class InvalidGrantException(OAuthException):
    status_code = HttpStatus.BAD_REQUEST
    error = "invalid_grant"
    description = "The requested grant is not valid."


class UnsupportedGrantTypeException(OAuthException):
    status_code = HttpStatus.BAD_REQUEST
    error = "unsupported_grant_type"
    description = "The requested grant type is not supported."


class NotFoundException(OAuthException):
    status_code = HttpStatus.NOT_FOUND
    error = "not_found"
    description = "The requested resource was not found."


class ThirdPartyErrorException(OAuthException):
    """An upstream identity provider answered with an error or garbage.

    When the upstream body carries its own ``error``/``error_description``
    pair, those are surfaced instead of the defaults.
    """

    status_code = HttpStatus.BAD_REQUEST
    error = "third_party_error"
    description = "An upstream identity provider returned an error."

    @classmethod
    def from_upstream(cls, payload: Optional[Dict[str, str]] = None) -> "ThirdPartyErrorException":
        payload = payload or {}
        error = payload.get("error")
        description = payload.get("error_description")
        return cls(description if isinstance(description, str) else None, error=error if isinstance(error, str) else None)


class MisconfiguredAuthenticatorException(OAuthException):
    status_code = HttpStatus.INTERNAL_SERVER_ERROR
    error = "misconfigured"
    description = "This authenticator is not configured."
