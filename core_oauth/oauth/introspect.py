from typing import Optional

from loguru import logger as log

from ..constants import TOKEN
from ..exceptions import InvalidRequestException
from ..models import Client, ClientType, OAuthToken, UserIdentity
from ..request import OAuthRequest
from ..response import OAuthIntrospectionResponse, Response
from ..store import EntityStore
from ..tools import join_scope, parse_id
from .principal import O2AuthScheme, O2Principal


def _can_view_application(principal: O2Principal) -> bool:
    client = principal.client
    return client is not None and (
        client.type == ClientType.CLIENT_CREDENTIALS or principal.scheme == O2AuthScheme.CLIENT_PRIVATE
    )


def find_visible_token(principal: O2Principal, token_id: Optional[str], store: EntityStore) -> Optional[OAuthToken]:
    """Look up a token the caller is allowed to see.

    Clients authenticating for themselves may see any token issued within
    their application. Any other caller may only see its own bearer token.
    """
    token = store.get(OAuthToken, parse_id(token_id))
    if token is None:
        return None

    if _can_view_application(principal):
        owner = store.get(Client, token.client_id)
        if owner is not None and owner.application_id == principal.client.application_id:
            return token
        return None

    if principal.token is not None and principal.token.id == token.id:
        return token
    return None


def oauth_introspect(*, request: OAuthRequest, principal: O2Principal, store: EntityStore, **kwargs) -> Response:
    """Token introspection endpoint (RFC 7662).

    Route:
        POST /oauth2/introspect
    Content-Type:
        application/x-www-form-urlencoded

    Form Fields:
        token (required): The token to introspect

    Returns:
        Response: Token metadata, or ``{"active": false}``.
    """
    if request.count(TOKEN, request.form) != 1:
        raise InvalidRequestException("Exactly one token is required.")

    token = find_visible_token(principal, request.get_one(TOKEN, request.form), store)
    if token is None or token.is_expired:
        log.debug("Introspected token is not active")
        return OAuthIntrospectionResponse(active=False)

    identity = store.get(UserIdentity, token.identity_id)
    issued = int(token.created.timestamp())

    return OAuthIntrospectionResponse(
        active=True,
        scope=join_scope(token.scopes),
        client_id=token.client_id,
        username=identity.remote_id if identity is not None else None,
        token_type=token.type.value,
        exp=int(token.expires_at.timestamp()),
        iat=issued,
        nbf=issued,
        sub=identity.user_id if identity is not None else None,
        aud=token.client_id,
        iss=token.issuer,
        jti=token.id,
    )
