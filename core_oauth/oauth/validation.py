"""Input validation shared by the authorize and token endpoints.

All functions raise an :mod:`core_oauth.exceptions` error kind on failure and
return the validated value otherwise.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Union
from urllib.parse import parse_qs, urlsplit

from loguru import logger as log

from ..exceptions import InvalidRequestException, InvalidScopeException, UnsupportedResponseTypeException
from ..models import (
    ApplicationScope,
    Authenticator,
    AuthenticatorType,
    Client,
    ClientType,
    ResponseType,
    Role,
    ScopeMap,
)
from ..tools import split_scope

ScopeRequest = Union[None, str, Iterable[str], Mapping[str, ApplicationScope]]

RESPONSE_TYPES: Dict[ClientType, ResponseType] = {
    ClientType.AUTHORIZATION_GRANT: ResponseType.CODE,
    ClientType.IMPLICIT: ResponseType.TOKEN,
}


def _scope_names(requested: ScopeRequest) -> List[str]:
    if requested is None:
        return []
    if isinstance(requested, str):
        return split_scope(requested)
    # Mapping iterates over its keys
    return [name for name in requested if name]


def validate_scope(requested: ScopeRequest, allowed: Optional[Mapping[str, ApplicationScope]]) -> ScopeMap:
    """Resolve requested scope names against the allowed scope set.

    Args:
        requested: Space-delimited string, iterable of names, or scope map.
        allowed: Scopes the caller may be granted, keyed by name.

    Returns:
        ScopeMap: The matched scopes ordered by name. Empty when nothing was requested.

    Raises:
        InvalidScopeException: A name is not in ``allowed``, or ``allowed`` is empty.
    """
    names = _scope_names(requested)
    if not names:
        return {}

    if not allowed:
        log.debug("Scope requested with no allowed scopes", details={"requested": names})
        raise InvalidScopeException()

    result: ScopeMap = {}
    for name in sorted(set(names)):
        if name not in allowed:
            log.debug("Unknown scope requested", details={"scope": name})
            raise InvalidScopeException()
        result[name] = allowed[name]
    return result


def validate_role_scope(requested: ScopeRequest, role: Optional[Role]) -> ScopeMap:
    """Validate requested scopes against what a user's role permits."""
    if role is None:
        raise InvalidScopeException()
    return validate_scope(requested, role.scopes)


def revalidate_scope(
    requested: ScopeRequest,
    granted: Optional[Mapping[str, ApplicationScope]],
    allowed: Optional[Mapping[str, ApplicationScope]],
) -> ScopeMap:
    """Validate a scope request against a previous grant.

    No name outside ``granted`` may be requested. Names that were granted but
    are no longer in ``allowed`` are dropped from the result.
    """
    if granted is None or allowed is None:
        raise InvalidScopeException()

    result: ScopeMap = {}
    for name in sorted(set(_scope_names(requested))):
        if name not in granted:
            log.debug("Scope escalation rejected", details={"scope": name})
            raise InvalidScopeException()
        if name in allowed:
            result[name] = allowed[name]
    return result


def _parse_redirect(uri: str):
    try:
        parts = urlsplit(uri)
        # Accessing the port validates it
        port = parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return parts, port


def _redirect_matches(candidate, registered_uri: str) -> bool:
    parsed = _parse_redirect(registered_uri)
    if parsed is None:
        return False
    registered, registered_port = parsed
    parts, port = candidate

    if parts.scheme.lower() != registered.scheme.lower():
        return False
    if parts.hostname != registered.hostname or port != registered_port:
        return False
    if parts.path != registered.path:
        return False

    candidate_params = parse_qs(parts.query, keep_blank_values=True)
    required_params = parse_qs(registered.query, keep_blank_values=True)
    for key, values in required_params.items():
        present = candidate_params.get(key, [])
        if any(value not in present for value in values):
            return False
    return True


def validate_redirect(candidate: Optional[str], registered: Iterable[str]) -> str:
    """Validate a requested redirect URI against the client's registered set.

    Args:
        candidate: Requested redirect; may be empty when one URI is registered.
        registered: Registered redirect URIs.

    Returns:
        str: The redirect to use.

    Raises:
        InvalidRequestException: No registered URI matches.
    """
    registered = list(registered or [])

    if not candidate:
        if len(registered) == 1:
            return registered[0]
        raise InvalidRequestException("A redirect_uri is required.")

    parsed = _parse_redirect(candidate)
    if parsed is None:
        raise InvalidRequestException("The redirect_uri is malformed.")

    for uri in registered:
        if _redirect_matches(parsed, uri):
            return candidate

    log.debug("Redirect does not match any registered URI", details={"redirect_uri": candidate})
    raise InvalidRequestException("The redirect_uri is not registered.")


def validate_response_type(client: Optional[Client], response_type: Optional[str]) -> ResponseType:
    """Check that the response type is the one the client's type supports."""
    if client is None or not response_type:
        raise UnsupportedResponseTypeException()

    expected = RESPONSE_TYPES.get(client.type)
    if expected is None or expected.value != response_type:
        raise UnsupportedResponseTypeException()
    return expected


def validate_authenticator(
    requested: Optional[Union[str, AuthenticatorType]],
    authenticators: List[Authenticator],
) -> Authenticator:
    """Pick the client's authenticator of the requested type.

    With no type requested, a client with exactly one authenticator uses it.
    """
    if not requested:
        if len(authenticators) == 1:
            return authenticators[0]
        raise InvalidRequestException("An authenticator must be specified.")

    for authenticator in authenticators:
        if authenticator.type == requested:
            return authenticator

    raise InvalidRequestException("The requested authenticator is not available.")
