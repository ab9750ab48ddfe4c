"""Authorization-code exchange against an upstream OAuth2 identity provider.

A provider is a set of constants (:class:`OAuth2Provider`); the flow itself is
a handful of free functions parameterized by it:

1. :func:`build_authorize_redirect` sends the browser to the provider.
2. :func:`exchange_code` trades the returned code for an upstream access token.
3. :func:`load_remote_user` fetches the upstream profile.
4. :func:`resolve_identity` finds or creates the local user and identity.

Upstream transport failures, timeouts and bad payloads all surface as
:class:`ThirdPartyErrorException`.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlsplit

import httpx
from loguru import logger as log

from ...constants import CODE, ERROR, IDP_HTTP_TIMEOUT, PROVIDER_CLIENT_ID, PROVIDER_CLIENT_SECRET, STATE
from ...exceptions import (
    InvalidRequestException,
    MisconfiguredAuthenticatorException,
    ServerErrorException,
    ThirdPartyErrorException,
)
from ...models import Application, Authenticator, Client, User, UserIdentity
from ...response import RedirectResponse
from ...store import EntityStore
from ...tools import append_parameters, basic_auth_header, first, strip_query_and_fragment
from .base import IAuthenticator, Parameters


@dataclass
class RemoteUser:
    id: str
    claims: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class OAuth2Provider:
    name: str
    authorize_url: str
    token_url: str
    user_url: str
    scope: str
    parse_user: Callable[[Dict[str, Any]], RemoteUser]
    user_headers: Dict[str, str] = field(default_factory=dict)


def get_http_client() -> httpx.Client:
    """HTTP client for upstream calls, always with a bounded timeout."""
    return httpx.Client(timeout=IDP_HTTP_TIMEOUT)


def map_claims(payload: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, str]:
    return {claim: str(payload[key]) for claim, key in mapping.items() if payload.get(key) is not None}


def validate_configuration(authenticator: Optional[Authenticator]) -> Dict[str, str]:
    """Return the provider client id/secret, or raise if they are missing."""
    configuration = authenticator.configuration if authenticator is not None else {}
    client_id = configuration.get(PROVIDER_CLIENT_ID)
    client_secret = configuration.get(PROVIDER_CLIENT_SECRET)
    if not client_id or not client_secret:
        raise MisconfiguredAuthenticatorException()
    return {PROVIDER_CLIENT_ID: client_id, PROVIDER_CLIENT_SECRET: client_secret}


def build_authorize_redirect(provider: OAuth2Provider, authenticator: Authenticator, callback: Optional[str]) -> RedirectResponse:
    configuration = validate_configuration(authenticator)

    if not callback:
        raise ServerErrorException()
    state = first(parse_qs(urlsplit(callback).query), STATE)
    if not state:
        raise ServerErrorException()

    params = {
        "client_id": configuration[PROVIDER_CLIENT_ID],
        "redirect_uri": strip_query_and_fragment(callback),
        "response_type": "code",
        "state": state,
        "scope": provider.scope,
    }
    return RedirectResponse(url=append_parameters(provider.authorize_url, params))


def _json(response: httpx.Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def exchange_code(
    provider: OAuth2Provider,
    authenticator: Authenticator,
    parameters: Parameters,
    callback: str,
    http: httpx.Client,
) -> str:
    """Trade the provider's authorization code for an upstream access token."""
    configuration = validate_configuration(authenticator)

    if parameters.get(ERROR):
        raise ThirdPartyErrorException.from_upstream({k: first(parameters, k) for k in ("error", "error_description")})

    code = first(parameters, CODE)
    if not code:
        raise InvalidRequestException("The provider did not return an authorization code.")

    client_id = configuration[PROVIDER_CLIENT_ID]
    client_secret = configuration[PROVIDER_CLIENT_SECRET]
    form = {
        "client_id": client_id,
        "client_secret": client_secret,
        "code": code,
        "grant_type": "authorization_code",
        "redirect_uri": strip_query_and_fragment(callback),
    }

    try:
        response = http.post(
            provider.token_url,
            data=form,
            headers={"Authorization": basic_auth_header(client_id, client_secret), "Accept": "application/json"},
        )
    except httpx.HTTPError as e:
        log.warning("Token exchange with identity provider failed", details={"provider": provider.name, "error": str(e)})
        raise ThirdPartyErrorException() from e

    payload = _json(response)
    if not response.is_success:
        log.warning("Identity provider rejected token exchange", details={"provider": provider.name, "status": response.status_code})
        raise ThirdPartyErrorException.from_upstream(payload)

    access_token = payload.get("access_token")
    if not access_token or not isinstance(access_token, str):
        raise ThirdPartyErrorException()
    return access_token


def load_remote_user(provider: OAuth2Provider, access_token: str, http: httpx.Client) -> RemoteUser:
    try:
        response = http.get(
            provider.user_url,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json", **provider.user_headers},
        )
    except httpx.HTTPError as e:
        log.warning("Profile request to identity provider failed", details={"provider": provider.name, "error": str(e)})
        raise ThirdPartyErrorException() from e

    payload = _json(response)
    if not response.is_success:
        raise ThirdPartyErrorException.from_upstream(payload)

    user = provider.parse_user(payload)
    if not user.id:
        raise ThirdPartyErrorException()
    return user


def resolve_identity(store: EntityStore, authenticator: Authenticator, remote: RemoteUser) -> UserIdentity:
    """Find the local identity for a remote account, creating it on first login."""
    client = store.get(Client, authenticator.client_id)
    application = store.get(Application, client.application_id) if client is not None else None
    if application is None:
        raise ServerErrorException()

    for identity in store.find(UserIdentity, type=authenticator.type, remote_id=remote.id):
        user = store.get(User, identity.user_id)
        if user is not None and user.application_id == application.id:
            identity.claims = {**identity.claims, **remote.claims}
            return store.save(identity)

    user = store.save(User(application_id=application.id, role_id=application.default_role_id))
    identity = UserIdentity(user_id=user.id, type=authenticator.type, remote_id=remote.id, claims=remote.claims)
    log.info("Created user for remote identity", details={"type": authenticator.type.value, "user_id": user.id})
    return store.save(identity)


class OAuth2Authenticator(IAuthenticator):
    """An upstream OAuth2 identity provider described by its constants."""

    def __init__(self, provider: OAuth2Provider):
        self.provider = provider

    def delegate(self, authenticator: Authenticator, callback: str) -> RedirectResponse:
        return build_authorize_redirect(self.provider, authenticator, callback)

    def validate(self, authenticator: Authenticator) -> None:
        validate_configuration(authenticator)

    def authenticate(
        self,
        authenticator: Authenticator,
        parameters: Parameters,
        callback: str,
        store: EntityStore,
    ) -> UserIdentity:
        with get_http_client() as http:
            access_token = exchange_code(self.provider, authenticator, parameters, callback, http)
            remote = load_remote_user(self.provider, access_token, http)
        return resolve_identity(store, authenticator, remote)
