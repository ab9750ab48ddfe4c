"""Token endpoint grant handlers, one per ``grant_type``.

Every handler receives the authenticated client, the request and the
request's store handle. The token being redeemed is deleted in the same
transaction that issues its replacement, so a second redemption of an
authorization code or refresh token finds nothing and fails with
``invalid_grant``.
"""

from typing import Callable, Dict, Optional

from loguru import logger as log

from ..constants import CODE, GRANT_TYPE, REDIRECT_URI, REFRESH_TOKEN, SCOPE, STATE
from ..exceptions import (
    AccessDeniedException,
    InvalidGrantException,
    InvalidRequestException,
    UnauthorizedClientException,
    UnsupportedGrantTypeException,
)
from ..models import (
    Application,
    Authenticator,
    AuthenticatorType,
    Client,
    ClientType,
    GrantType,
    OAuthToken,
    OAuthTokenType,
    Role,
    User,
    UserIdentity,
)
from ..request import OAuthRequest
from ..response import OAuthTokenResponse, Response
from ..store import EntityStore
from ..tools import parse_id
from .authenticators import get_authenticator
from .principal import O2Principal
from .tokens import issue_bearer, issue_refresh, token_response
from .validation import revalidate_scope, validate_role_scope, validate_scope


def _require_client_type(client: Client, *types: ClientType) -> None:
    if client.type not in types:
        log.debug("Grant not permitted for client type", details={"client_id": client.id, "type": client.type.value})
        raise InvalidGrantException()


def _role_for(store: EntityStore, identity: Optional[UserIdentity]) -> Optional[Role]:
    if identity is None:
        return None
    user = store.get(User, identity.user_id)
    return store.get(Role, user.role_id) if user is not None else None


def _find_token(store: EntityStore, raw_id: Optional[str], token_type: OAuthTokenType, client: Client) -> OAuthToken:
    token = store.get(OAuthToken, parse_id(raw_id))
    if token is None or token.type != token_type or token.is_expired or token.client_id != client.id:
        raise InvalidGrantException()
    return token


def authorization_code_grant(client: Client, request: OAuthRequest, store: EntityStore) -> OAuthTokenResponse:
    _require_client_type(client, ClientType.AUTHORIZATION_GRANT)

    if request.count(CODE, request.form) != 1 or request.count(REDIRECT_URI, request.form) != 1:
        raise InvalidRequestException("Exactly one code and redirect_uri are required.")

    if parse_id(request.get_one(CODE, request.form)) is None:
        raise InvalidGrantException()
    code = _find_token(store, request.get_one(CODE, request.form), OAuthTokenType.AUTHORIZATION, client)

    if code.redirect != request.get_one(REDIRECT_URI, request.form):
        log.debug("Authorization code redirect mismatch", details={"client_id": client.id})
        raise InvalidGrantException()

    access = issue_bearer(store, client, code.scopes, identity_id=code.identity_id)
    refresh = issue_refresh(store, client, access)
    store.delete(code)

    return token_response(access, refresh, state=request.get_one(STATE, request.form))


def client_credentials_grant(client: Client, request: OAuthRequest, store: EntityStore) -> OAuthTokenResponse:
    _require_client_type(client, ClientType.CLIENT_CREDENTIALS)

    if client.is_public:
        raise UnauthorizedClientException()

    application = store.get(Application, client.application_id)
    scopes = validate_scope(request.get_one(SCOPE, request.form), application.scopes if application else None)

    access = issue_bearer(store, client, scopes)
    return token_response(access, state=request.get_one(STATE, request.form))


def password_grant(client: Client, request: OAuthRequest, store: EntityStore) -> OAuthTokenResponse:
    _require_client_type(client, ClientType.OWNER_CREDENTIALS)

    authenticator = store.find_one(Authenticator, client_id=client.id, type=AuthenticatorType.PASSWORD)
    if authenticator is None:
        raise InvalidRequestException("This client does not accept passwords.")

    identity = get_authenticator(AuthenticatorType.PASSWORD).authenticate(authenticator, request.form, None, store)
    if identity is None:
        raise AccessDeniedException()

    scopes = validate_role_scope(request.get_one(SCOPE, request.form), _role_for(store, identity))

    access = issue_bearer(store, client, scopes, identity_id=identity.id)
    refresh = issue_refresh(store, client, access)
    return token_response(access, refresh, state=request.get_one(STATE, request.form))


def refresh_token_grant(client: Client, request: OAuthRequest, store: EntityStore) -> OAuthTokenResponse:
    _require_client_type(client, ClientType.AUTHORIZATION_GRANT, ClientType.OWNER_CREDENTIALS)

    if request.count(REFRESH_TOKEN, request.form) != 1:
        raise InvalidGrantException()
    refresh = _find_token(store, request.get_one(REFRESH_TOKEN, request.form), OAuthTokenType.REFRESH, client)

    identity = store.get(UserIdentity, refresh.identity_id)
    role = _role_for(store, identity)
    scopes = revalidate_scope(request.get_one(SCOPE, request.form), refresh.scopes, role.scopes if role else None)

    access = issue_bearer(store, client, scopes, identity_id=refresh.identity_id)
    new_refresh = issue_refresh(store, client, access)

    # A refresh token may outlive its paired access token
    paired = store.get(OAuthToken, refresh.auth_token_id)
    if paired is not None:
        store.delete(paired)
    store.delete(refresh)

    log.debug("Rotated refresh token", details={"client_id": client.id, "paired_present": paired is not None})
    return token_response(access, new_refresh, state=request.get_one(STATE, request.form))


GrantHandler = Callable[[Client, OAuthRequest, EntityStore], OAuthTokenResponse]

GRANT_HANDLERS: Dict[GrantType, GrantHandler] = {
    GrantType.AUTHORIZATION_CODE: authorization_code_grant,
    GrantType.CLIENT_CREDENTIALS: client_credentials_grant,
    GrantType.PASSWORD: password_grant,
    GrantType.REFRESH_TOKEN: refresh_token_grant,
}


def oauth_token(*, request: OAuthRequest, principal: O2Principal, store: EntityStore, **kwargs) -> Response:
    """Issue tokens.

    Route:
        POST /oauth2/token
    Content-Type:
        application/x-www-form-urlencoded

    Grants:
        - authorization_code: code, redirect_uri
        - client_credentials: scope (private clients only)
        - password: username, password, scope
        - refresh_token: refresh_token, scope (may only narrow the original grant)

    Errors:
        400 invalid_request/invalid_grant/invalid_scope/unsupported_grant_type,
        401 access_denied/unauthorized_client.
    """
    raw = request.get_one(GRANT_TYPE, request.form)
    try:
        grant_type = GrantType(raw)
    except ValueError:
        log.debug("Unsupported grant type", details={"grant_type": raw})
        raise UnsupportedGrantTypeException()

    return GRANT_HANDLERS[grant_type](principal.client, request, store)
