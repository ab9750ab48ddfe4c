"""Request authentication filter chain.

An endpoint declares which caller identities it accepts (:class:`O2Client`,
:class:`O2BearerToken`). At import time that declaration is resolved into an
ordered tuple of filters by :func:`build_filter_chain`. For each request
:func:`authenticate_request` threads an :class:`O2Principal` accumulator
through the filters and finishes with the authorization check.

Filters are no-ops when the request carries no credential of their shape.
They raise :class:`InvalidRequestException` for a credential that is present
but malformed, and :class:`AccessDeniedException` for one that is well formed
but wrong.
"""

from typing import Optional, Tuple

from loguru import logger as log

from ..constants import CLIENT_ID, CLIENT_SECRET
from ..exceptions import AccessDeniedException, InvalidClientException, InvalidRequestException
from ..models import Client, OAuthToken, OAuthTokenType
from ..request import O2BearerToken, O2Client, OAuthRequest, RouteEndpoint
from ..store import EntityStore
from ..tools import parse_basic_auth, parse_bearer, parse_id, secret_matches
from .credentials import extract_credentials
from .principal import O2Principal


def _visibility_permitted(client: Client, permit_private: bool, permit_public: bool) -> bool:
    if client.is_public:
        return permit_public
    return permit_private


class ClientQueryParameterFilter:
    """Public clients identifying themselves with ``?client_id=`` on a GET."""

    def __call__(self, request: OAuthRequest, principal: O2Principal, store: EntityStore) -> O2Principal:
        if request.method != "GET":
            return principal

        if CLIENT_SECRET in request.query:
            raise InvalidRequestException("The client_secret may not be sent in a query string.")

        count = request.count(CLIENT_ID, request.query)
        if count == 0:
            return principal
        if count > 1:
            raise InvalidClientException()

        client_id = parse_id(request.get_one(CLIENT_ID, request.query))
        if client_id is None:
            raise InvalidRequestException("The client_id is malformed.")

        client = store.get(Client, client_id)
        if client is None or not client.is_public:
            log.debug("Query client rejected", details={"client_id": client_id})
            raise AccessDeniedException()

        return principal.merge(O2Principal(client=client))


class ClientBasicAuthFilter:
    """Private clients using an HTTP Basic authorization header."""

    def __call__(self, request: OAuthRequest, principal: O2Principal, store: EntityStore) -> O2Principal:
        try:
            credentials = parse_basic_auth(request.authorization)
        except ValueError as e:
            raise InvalidRequestException("The authorization header is malformed.") from e

        if credentials is None:
            return principal

        login, secret = credentials
        client_id = parse_id(login)
        if client_id is None or not secret:
            raise InvalidRequestException("The authorization header is malformed.")

        client = store.get(Client, client_id)
        if client is None or client.is_public or not secret_matches(secret, client.client_secret):
            log.debug("Basic client authentication failed", details={"client_id": client_id})
            raise AccessDeniedException()

        return principal.merge(O2Principal(client=client))


class ClientBodyFilter:
    """Clients sending ``client_id`` (and ``client_secret``) in a form POST body."""

    def __init__(self, permit_private: bool = True, permit_public: bool = True):
        self.permit_private = permit_private
        self.permit_public = permit_public

    def __call__(self, request: OAuthRequest, principal: O2Principal, store: EntityStore) -> O2Principal:
        if not request.is_form_post:
            return principal

        if request.count(CLIENT_ID, request.form) > 1 or request.count(CLIENT_SECRET, request.form) > 1:
            raise InvalidRequestException("Client credentials may only be sent once.")

        if CLIENT_ID not in request.form:
            return principal

        client_id = parse_id(request.get_one(CLIENT_ID, request.form))
        if client_id is None:
            raise InvalidRequestException("The client_id is malformed.")

        secret = request.get_one(CLIENT_SECRET, request.form) or None
        if secret is None and principal.client is not None and principal.client.id == client_id:
            # Restates the id already authenticated by the header
            return principal

        client = store.get(Client, client_id)
        if client is None or not secret_matches(secret, client.client_secret):
            log.debug("Body client authentication failed", details={"client_id": client_id})
            raise AccessDeniedException()

        if not _visibility_permitted(client, self.permit_private, self.permit_public):
            raise AccessDeniedException()

        return principal.merge(O2Principal(client=client))


class BearerTokenFilter:
    """Callers presenting ``Authorization: Bearer <token id>``."""

    def __init__(self, permit_private: bool = True, permit_public: bool = True):
        self.permit_private = permit_private
        self.permit_public = permit_public

    def __call__(self, request: OAuthRequest, principal: O2Principal, store: EntityStore) -> O2Principal:
        token_id = parse_bearer(request.authorization)
        if token_id is None:
            return principal

        token = store.get(OAuthToken, token_id)
        if token is None or token.type != OAuthTokenType.BEARER or token.is_expired:
            log.debug("Bearer token rejected", details={"token_id": token_id})
            raise AccessDeniedException()

        client = store.get(Client, token.client_id)
        if client is None or not _visibility_permitted(client, self.permit_private, self.permit_public):
            raise AccessDeniedException()

        return principal.merge(O2Principal(client=client, token=token))


class O2AuthorizationFilter:
    """Final check that the accumulated principal satisfies the endpoint."""

    def __init__(self, permit_private: bool = True, permit_public: bool = True):
        self.permit_private = permit_private
        self.permit_public = permit_public

    def __call__(self, request: OAuthRequest, principal: O2Principal, store: EntityStore) -> O2Principal:
        client = principal.client
        if client is None:
            raise AccessDeniedException()
        if principal.token is None and not _visibility_permitted(client, self.permit_private, self.permit_public):
            raise AccessDeniedException()
        return principal


FilterChain = Tuple[object, ...]


def build_filter_chain(endpoint: RouteEndpoint) -> FilterChain:
    """Resolve an endpoint's declared requirements into its ordered filters."""
    filters = []
    o2_client: Optional[O2Client] = endpoint.client
    o2_token: Optional[O2BearerToken] = endpoint.bearer_token

    if o2_client is not None:
        if o2_client.permit_public:
            filters.append(ClientQueryParameterFilter())
        if o2_client.permit_private:
            filters.append(ClientBasicAuthFilter())
        filters.append(ClientBodyFilter(o2_client.permit_private, o2_client.permit_public))

    if o2_token is not None:
        filters.append(BearerTokenFilter(o2_token.permit_private, o2_token.permit_public))

    if filters:
        permit_private = o2_client.permit_private if o2_client is not None else False
        permit_public = o2_client.permit_public if o2_client is not None else False
        filters.append(O2AuthorizationFilter(permit_private, permit_public))

    return tuple(filters)


def authenticate_request(chain: FilterChain, request: OAuthRequest, store: EntityStore) -> O2Principal:
    """Run a filter chain and return the authorized principal.

    Raises:
        InvalidRequestException: A client secret was sent in a GET query string.
        InvalidClientException: The request carries conflicting credentials.
        AccessDeniedException: Credentials are wrong or not acceptable here.
    """
    principal = O2Principal()
    if not chain:
        return principal

    credentials = extract_credentials(request)
    if credentials.is_error:
        raise InvalidClientException()

    for request_filter in chain:
        principal = request_filter(request, principal, store)

    log.debug("Request authenticated", details={"scheme": principal.scheme.value, "name": principal.name})
    return principal
