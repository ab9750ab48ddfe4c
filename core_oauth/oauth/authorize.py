"""The ``/authorize`` redirect flows.

Both flows share one state machine::

    Initial --handle()--> PendingCallback --callback()--> Resolved

``handle()`` persists an :class:`AuthenticatorState` and sends the browser to
the identity provider. ``callback()`` consumes that state, issues a token and
sends the browser back to the client. The authorization-code flow returns a
``code`` in the query string; the implicit flow returns the access token in
the URI fragment.

Once the client's redirect has been validated, every error is delivered to
that redirect rather than rendered as a JSON body.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from loguru import logger as log

from ..constants import AUTHENTICATOR, REDIRECT_URI, RESPONSE_TYPE, SCOPE, STATE
from ..exceptions import AccessDeniedException, InvalidRequestException, OAuthException, ServerErrorException
from ..models import (
    Application,
    Authenticator,
    AuthenticatorState,
    Client,
    ClientType,
    OAuthToken,
    OAuthTokenType,
    Role,
    ScopeMap,
    User,
    UserIdentity,
)
from ..request import OAuthRequest
from ..response import RedirectResponse, Response
from ..store import EntityStore
from ..tools import append_parameters, join_scope, parse_id
from .authenticators import get_authenticator
from .principal import O2Principal
from .tokens import issue_bearer
from .validation import revalidate_scope, validate_authenticator, validate_redirect, validate_response_type, validate_scope

CALLBACK_PATH = "/authorize/callback"


class AuthorizeHandler(ABC):
    """Shared state machine of the redirect based flows."""

    fragment = False

    def handle(
        self,
        request: OAuthRequest,
        store: EntityStore,
        authenticator: Authenticator,
        redirect: str,
        scopes: ScopeMap,
        state: Optional[str],
    ) -> Response:
        implementation = get_authenticator(authenticator.type)

        auth_state = AuthenticatorState(
            client_id=authenticator.client_id,
            authenticator_id=authenticator.id,
            client_state=state,
            client_scopes=scopes,
            client_redirect=redirect,
        )
        store.save(auth_state)

        callback = append_parameters(request.url_for(CALLBACK_PATH), {STATE: auth_state.id})
        log.debug("Delegating to authenticator", details={"type": authenticator.type.value, "state_id": auth_state.id})
        return implementation.delegate(authenticator, callback)

    def callback(
        self,
        request: OAuthRequest,
        store: EntityStore,
        auth_state: AuthenticatorState,
        authenticator: Authenticator,
        client: Client,
    ) -> Response:
        implementation = get_authenticator(authenticator.type)
        callback = append_parameters(request.url_for(CALLBACK_PATH), {STATE: auth_state.id})

        identity = implementation.authenticate(authenticator, request.query, callback, store)
        if identity is None:
            raise AccessDeniedException()

        user = store.get(User, identity.user_id)
        role = store.get(Role, user.role_id) if user is not None else None
        allowed = role.scopes if role is not None else None
        # Requested scopes the user's role does not carry are dropped
        scopes = revalidate_scope(auth_state.client_scopes, auth_state.client_scopes, allowed)

        token = self.issue(store, client, identity, scopes, auth_state)
        store.delete(auth_state)

        params = self.response_parameters(token)
        if auth_state.client_state:
            params[STATE] = auth_state.client_state

        return RedirectResponse(url=append_parameters(auth_state.client_redirect, params, fragment=self.fragment))

    @abstractmethod
    def issue(
        self,
        store: EntityStore,
        client: Client,
        identity: UserIdentity,
        scopes: ScopeMap,
        auth_state: AuthenticatorState,
    ) -> OAuthToken:
        """Create and persist the token returned to the client."""

    @abstractmethod
    def response_parameters(self, token: OAuthToken) -> Dict[str, str]:
        """Parameters delivered to the client redirect."""


class AuthorizationCodeHandler(AuthorizeHandler):

    def issue(
        self,
        store: EntityStore,
        client: Client,
        identity: UserIdentity,
        scopes: ScopeMap,
        auth_state: AuthenticatorState,
    ) -> OAuthToken:
        token = OAuthToken(
            type=OAuthTokenType.AUTHORIZATION,
            client_id=client.id,
            identity_id=identity.id,
            scopes=scopes,
            redirect=auth_state.client_redirect,
            expires_in=client.authorization_code_expires_in,
        )
        return store.save(token)

    def response_parameters(self, token: OAuthToken) -> Dict[str, str]:
        return {"code": token.id}


class ImplicitHandler(AuthorizeHandler):
    fragment = True

    def issue(
        self,
        store: EntityStore,
        client: Client,
        identity: UserIdentity,
        scopes: ScopeMap,
        auth_state: AuthenticatorState,
    ) -> OAuthToken:
        return issue_bearer(store, client, scopes, identity_id=identity.id)

    def response_parameters(self, token: OAuthToken) -> Dict[str, str]:
        params = {
            "access_token": token.id,
            "token_type": token.type.value,
            "expires_in": str(token.expires_in),
        }
        scope = join_scope(token.scopes)
        if scope:
            params["scope"] = scope
        return params


AUTHORIZE_HANDLERS: Dict[ClientType, AuthorizeHandler] = {
    ClientType.AUTHORIZATION_GRANT: AuthorizationCodeHandler(),
    ClientType.IMPLICIT: ImplicitHandler(),
}


def oauth_authorize(*, request: OAuthRequest, principal: O2Principal, store: EntityStore, **kwargs) -> Response:
    """Start a redirect based authorization.

    Route:
        GET /oauth2/authorize

    Query:
        response_type (code|token), client_id, redirect_uri, scope, state,
        authenticator (optional when the client has a single one)

    Returns:
        Response: 302 to the identity provider.
    """
    client = principal.client

    if request.count(REDIRECT_URI, request.query) > 1:
        raise InvalidRequestException("The redirect_uri may only be sent once.")
    redirect = validate_redirect(request.get_one(REDIRECT_URI, request.query), client.redirects)
    state = request.get_one(STATE, request.query)

    try:
        validate_response_type(client, request.get_one(RESPONSE_TYPE, request.query))

        authenticators = store.find(Authenticator, client_id=client.id)
        authenticator = validate_authenticator(request.get_one(AUTHENTICATOR, request.query), authenticators)

        application = store.get(Application, client.application_id)
        scopes = validate_scope(request.get_one(SCOPE, request.query), application.scopes if application else None)

        handler = AUTHORIZE_HANDLERS.get(client.type)
        if handler is None:
            raise ServerErrorException()

        return handler.handle(request, store, authenticator, redirect, scopes, state)

    except OAuthException as e:
        raise e.with_redirect(redirect, fragment=client.type == ClientType.IMPLICIT, state=state)


def oauth_authorize_callback(*, request: OAuthRequest, store: EntityStore, **kwargs) -> Response:
    """Resume an authorization when the identity provider sends the user back.

    Route:
        GET /oauth2/authorize/callback?state=<id>&...
    """
    auth_state = store.get(AuthenticatorState, parse_id(request.get_one(STATE, request.query)))
    if auth_state is None:
        raise InvalidRequestException("The authorization state is unknown or has expired.")

    client = store.get(Client, auth_state.client_id)
    authenticator = store.get(Authenticator, auth_state.authenticator_id)
    if client is None or authenticator is None:
        raise InvalidRequestException("The authorization state is unknown or has expired.")

    try:
        handler = AUTHORIZE_HANDLERS.get(client.type)
        if handler is None:
            raise ServerErrorException()
        return handler.callback(request, store, auth_state, authenticator, client)

    except OAuthException as e:
        raise e.with_redirect(
            auth_state.client_redirect,
            fragment=client.type == ClientType.IMPLICIT,
            state=auth_state.client_state,
        )
