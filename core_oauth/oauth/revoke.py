from loguru import logger as log

from ..constants import TOKEN
from ..exceptions import InvalidRequestException, NotFoundException
from ..models import OAuthToken, OAuthTokenType
from ..request import OAuthRequest
from ..response import OAuthEmptyResponse, Response
from ..store import EntityStore
from .introspect import find_visible_token
from .principal import O2Principal


def oauth_revoke(*, request: OAuthRequest, principal: O2Principal, store: EntityStore, **kwargs) -> Response:
    """Token revocation endpoint (RFC 7009).

    Route:
        POST /oauth2/revoke
    Form Fields:
        token (required): The token to revoke

    Revoking a refresh token also revokes the access token it was paired with.
    """
    if request.count(TOKEN, request.form) != 1:
        raise InvalidRequestException("Exactly one token is required.")

    token = find_visible_token(principal, request.get_one(TOKEN, request.form), store)
    if token is None:
        raise NotFoundException()

    if token.type == OAuthTokenType.REFRESH:
        paired = store.get(OAuthToken, token.auth_token_id)
        if paired is not None:
            store.delete(paired)
    store.delete(token)

    log.info("Token revoked", details={"token_id": token.id, "type": token.type.value})
    return OAuthEmptyResponse()
