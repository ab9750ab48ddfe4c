import json
import os
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HttpStatus(int, Enum):
    """HTTP status codes used by the authorization server."""

    OK = 200
    FOUND = 302
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500


class Response(BaseModel):
    """Base response returned by every endpoint handler.

    ``code`` and ``headers`` describe the HTTP envelope and are never part of
    the serialized body.
    """

    model_config = ConfigDict(extra="forbid")

    code: int = Field(default=HttpStatus.OK, exclude=True, description="HTTP status code")
    headers: Dict[str, str] = Field(default_factory=dict, exclude=True, description="Extra HTTP headers")

    def set_header(self, name: str, value: str) -> "Response":
        self.headers[name] = value
        return self


class RedirectResponse(Response):
    """A 302 redirect. The body is always empty."""

    code: int = Field(default=HttpStatus.FOUND, exclude=True)
    url: str = Field(..., exclude=True, description="Absolute redirect target")


class OAuthErrorResponse(Response):
    """RFC 6749 error body: exactly ``error`` and ``error_description``."""

    error: str
    error_description: str


class OAuthTokenResponse(Response):
    """OAuth token endpoint response (RFC 6749 Section 5.1)."""

    access_token: str = Field(description="The access token issued by the authorization server")
    token_type: str = Field(default="Bearer", description="The type of token issued")
    expires_in: int = Field(description="Token lifetime in seconds")
    refresh_token: Optional[str] = Field(default=None, description="The paired refresh token")
    scope: Optional[str] = Field(default=None, description="Space-separated granted scopes")
    state: Optional[str] = Field(default=None, description="Echoed client state")


class OAuthIntrospectionResponse(Response):
    """OAuth introspection endpoint response (RFC 7662)."""

    active: bool = Field(description="Whether the token is active")
    scope: Optional[str] = Field(default=None, description="Space-separated list of scopes")
    client_id: Optional[str] = Field(default=None, description="Client identifier for the OAuth client")
    username: Optional[str] = Field(default=None, description="Identifier for the resource owner")
    token_type: Optional[str] = Field(default=None, description="Type of the token")
    exp: Optional[int] = Field(default=None, description="Token expiration timestamp")
    iat: Optional[int] = Field(default=None, description="Token issued at timestamp")
    nbf: Optional[int] = Field(default=None, description="Token not-before timestamp")
    sub: Optional[str] = Field(default=None, description="Subject of the token")
    aud: Optional[str] = Field(default=None, description="Intended audience of the token")
    iss: Optional[str] = Field(default=None, description="Issuer of the token")
    jti: Optional[str] = Field(default=None, description="Unique token identifier")


class OAuthEmptyResponse(Response):
    """Successful response with an empty JSON object body."""


class ProxyResponse(BaseModel):
    """API Gateway Lambda proxy integration response.

    Example:
        .. code-block:: python

            proxy = ProxyResponse.from_response(response)
            return proxy.model_dump()
    """

    statusCode: int = Field(..., description="HTTP status code")
    body: str = Field(default="", description="Response body content as string")
    headers: Dict[str, str] = Field(default_factory=dict, description="Single-value HTTP headers")
    multiValueHeaders: Dict[str, List[str]] = Field(default_factory=dict, description="Multi-value HTTP headers")
    isBase64Encoded: bool = Field(default=False, description="Whether body content is base64 encoded")

    @field_validator("statusCode", mode="before")
    @classmethod
    def validate_status_code(cls, v):
        if not isinstance(v, int) or v < 100 or v > 599:
            raise ValueError(f"Invalid HTTP status code: {v}. Must be between 100-599")
        return v

    def add_header(self, name: str, value: str) -> "ProxyResponse":
        self.headers[str(name)] = str(value)
        return self

    @classmethod
    def from_response(cls, response: Response) -> "ProxyResponse":
        """Create a ProxyResponse from a handler response.

        Rules:
        - redirects set the Location header and leave the body empty
        - everything else is a JSON body with ``None`` fields omitted
        - token and error responses are never cached unless OAUTH_NO_CACHE is false
        """
        add_cache_control = os.getenv("OAUTH_NO_CACHE", "true").lower() in ("1", "true", "yes")

        proxy = cls(statusCode=int(response.code))

        for name, value in response.headers.items():
            proxy.add_header(name, value)

        if isinstance(response, RedirectResponse):
            proxy.add_header("Location", response.url)
        else:
            proxy.add_header("Content-Type", "application/json")
            proxy.body = json.dumps(response.model_dump(mode="json", exclude_none=True))

        if add_cache_control:
            proxy.add_header("Cache-Control", "no-store")
            proxy.add_header("Pragma", "no-cache")

        return proxy


def get_proxy_response(response: Response) -> dict:
    """Return AWS proxy dict via ProxyResponse.from_response(response)."""
    return ProxyResponse.from_response(response).model_dump()
