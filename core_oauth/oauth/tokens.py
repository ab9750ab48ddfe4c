from typing import Optional

from loguru import logger as log

from ..models import Client, OAuthToken, OAuthTokenType, ScopeMap
from ..response import OAuthTokenResponse
from ..store import EntityStore
from ..tools import join_scope


def issue_bearer(store: EntityStore, client: Client, scopes: ScopeMap, identity_id: Optional[str] = None) -> OAuthToken:
    token = OAuthToken(
        type=OAuthTokenType.BEARER,
        client_id=client.id,
        identity_id=identity_id,
        scopes=scopes,
        expires_in=client.access_token_expires_in,
    )
    store.save(token)
    log.debug("Issued bearer token", details={"client_id": client.id, "token_id": token.id})
    return token


def issue_refresh(store: EntityStore, client: Client, access: OAuthToken) -> OAuthToken:
    """Issue a refresh token paired with ``access``."""
    token = OAuthToken(
        type=OAuthTokenType.REFRESH,
        client_id=client.id,
        identity_id=access.identity_id,
        scopes=access.scopes,
        auth_token_id=access.id,
        expires_in=client.refresh_token_expires_in,
    )
    store.save(token)
    return token


def token_response(access: OAuthToken, refresh: Optional[OAuthToken] = None, state: Optional[str] = None) -> OAuthTokenResponse:
    return OAuthTokenResponse(
        access_token=access.id,
        token_type=access.type.value,
        expires_in=access.expires_in,
        refresh_token=refresh.id if refresh is not None else None,
        scope=join_scope(access.scopes),
        state=state,
    )
