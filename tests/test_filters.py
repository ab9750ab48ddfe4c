"""Unit tests for core_oauth.oauth.filters."""

import pytest

from core_oauth.exceptions import AccessDeniedException, InvalidClientException, InvalidRequestException
from core_oauth.models import OAuthTokenType
from core_oauth.oauth.filters import (
    BearerTokenFilter,
    ClientBasicAuthFilter,
    ClientBodyFilter,
    ClientQueryParameterFilter,
    O2AuthorizationFilter,
    authenticate_request,
    build_filter_chain,
)
from core_oauth.oauth.principal import O2AuthScheme, O2Principal
from core_oauth.request import O2BearerToken, O2Client, RouteEndpoint
from core_oauth.tools import basic_auth_header

from .bootstrap import CC_SECRET, OWNER_SECRET, expired, make_request, make_token

# ============================================================================
# ClientQueryParameterFilter
# ============================================================================


def test_query_filter_public_client(store, ctx):
    client = ctx.clients["auth"]
    principal = ClientQueryParameterFilter()(make_request("GET", query={"client_id": [client.id]}), O2Principal(), store)
    assert principal.client.id == client.id
    assert principal.scheme == O2AuthScheme.CLIENT_PUBLIC


def test_query_filter_not_applicable(store, ctx):
    empty = O2Principal()
    assert ClientQueryParameterFilter()(make_request("GET"), empty, store) is empty
    request = make_request("POST", form={"client_id": [ctx.clients["auth"].id]})
    assert ClientQueryParameterFilter()(request, empty, store) is empty


def test_query_filter_rejections(store, ctx):
    run = ClientQueryParameterFilter()
    with pytest.raises(InvalidRequestException):
        run(make_request("GET", query={"client_id": [ctx.clients["auth"].id], "client_secret": ["x"]}), O2Principal(), store)
    with pytest.raises(InvalidClientException):
        run(make_request("GET", query={"client_id": [ctx.clients["auth"].id] * 2}), O2Principal(), store)
    with pytest.raises(InvalidRequestException):
        run(make_request("GET", query={"client_id": ["garbage"]}), O2Principal(), store)
    with pytest.raises(AccessDeniedException):
        run(make_request("GET", query={"client_id": ["f" * 32]}), O2Principal(), store)
    with pytest.raises(AccessDeniedException):
        run(make_request("GET", query={"client_id": [ctx.clients["cc"].id]}), O2Principal(), store)


# ============================================================================
# ClientBasicAuthFilter
# ============================================================================


def test_basic_filter_private_client(store, ctx):
    client = ctx.clients["cc"]
    request = make_request("POST", form={}, headers={"Authorization": basic_auth_header(client.id, CC_SECRET)})
    principal = ClientBasicAuthFilter()(request, O2Principal(), store)
    assert principal.scheme == O2AuthScheme.CLIENT_PRIVATE


def test_basic_filter_not_applicable(store):
    empty = O2Principal()
    assert ClientBasicAuthFilter()(make_request("POST", form={}), empty, store) is empty
    assert ClientBasicAuthFilter()(make_request("POST", form={}, headers={"Authorization": "Bearer " + "a" * 32}), empty, store) is empty


def test_basic_filter_rejections(store, ctx):
    client = ctx.clients["cc"]
    run = ClientBasicAuthFilter()
    with pytest.raises(InvalidRequestException):
        run(make_request("POST", form={}, headers={"Authorization": basic_auth_header(client.id, "")}), O2Principal(), store)
    with pytest.raises(InvalidRequestException):
        run(make_request("POST", form={}, headers={"Authorization": "Basic !!!!"}), O2Principal(), store)
    with pytest.raises(AccessDeniedException):
        run(make_request("POST", form={}, headers={"Authorization": basic_auth_header(client.id, "wrong")}), O2Principal(), store)
    with pytest.raises(AccessDeniedException):
        run(make_request("POST", form={}, headers={"Authorization": basic_auth_header("f" * 32, CC_SECRET)}), O2Principal(), store)


# ============================================================================
# ClientBodyFilter
# ============================================================================


def test_body_filter_private_and_public(store, ctx):
    run = ClientBodyFilter()
    owner = ctx.clients["owner"]
    principal = run(make_request("POST", form={"client_id": [owner.id], "client_secret": [OWNER_SECRET]}), O2Principal(), store)
    assert principal.scheme == O2AuthScheme.CLIENT_PRIVATE

    public = ctx.clients["owner_public"]
    principal = run(make_request("POST", form={"client_id": [public.id]}), O2Principal(), store)
    assert principal.scheme == O2AuthScheme.CLIENT_PUBLIC


def test_body_filter_not_applicable(store, ctx):
    empty = O2Principal()
    assert ClientBodyFilter()(make_request("POST", form={"grant_type": ["password"]}), empty, store) is empty
    assert ClientBodyFilter()(make_request("GET", query={"client_id": [ctx.clients["auth"].id]}), empty, store) is empty


def test_body_filter_rejections(store, ctx):
    owner = ctx.clients["owner"]
    run = ClientBodyFilter()
    with pytest.raises(InvalidRequestException):
        run(make_request("POST", form={"client_id": [owner.id, owner.id]}), O2Principal(), store)
    with pytest.raises(InvalidRequestException):
        run(make_request("POST", form={"client_id": ["nope"]}), O2Principal(), store)
    with pytest.raises(AccessDeniedException):
        run(make_request("POST", form={"client_id": [owner.id], "client_secret": ["wrong"]}), O2Principal(), store)
    with pytest.raises(AccessDeniedException):
        run(make_request("POST", form={"client_id": [owner.id]}), O2Principal(), store)
    with pytest.raises(AccessDeniedException):
        public = ctx.clients["owner_public"]
        run(make_request("POST", form={"client_id": [public.id], "client_secret": ["invented"]}), O2Principal(), store)


def test_body_filter_visibility(store, ctx):
    public = ctx.clients["owner_public"]
    with pytest.raises(AccessDeniedException):
        ClientBodyFilter(permit_public=False)(make_request("POST", form={"client_id": [public.id]}), O2Principal(), store)


# ============================================================================
# BearerTokenFilter
# ============================================================================


def test_bearer_filter(store, ctx):
    token = make_token(store, ctx.clients["owner"], identity=ctx.identity)
    principal = BearerTokenFilter()(make_request("POST", form={}, headers={"Authorization": f"bearer {token.id}"}), O2Principal(), store)
    assert principal.scheme == O2AuthScheme.BEARER_TOKEN
    assert principal.token.id == token.id
    assert principal.client.id == ctx.clients["owner"].id


@pytest.mark.parametrize("kind", ["missing", "expired", "refresh"])
def test_bearer_filter_rejections(store, ctx, kind):
    if kind == "missing":
        token_id = "f" * 32
    elif kind == "expired":
        token_id = make_token(store, ctx.clients["owner"], created=expired()).id
    else:
        token_id = make_token(store, ctx.clients["owner"], token_type=OAuthTokenType.REFRESH).id

    with pytest.raises(AccessDeniedException):
        BearerTokenFilter()(make_request("POST", form={}, headers={"Authorization": f"Bearer {token_id}"}), O2Principal(), store)


def test_bearer_filter_client_visibility(store, ctx):
    token = make_token(store, ctx.clients["owner_public"])
    request = make_request("POST", form={}, headers={"Authorization": f"Bearer {token.id}"})
    with pytest.raises(AccessDeniedException):
        BearerTokenFilter(permit_public=False)(request, O2Principal(), store)


def test_bearer_filter_ignores_other_shapes(store):
    empty = O2Principal()
    assert BearerTokenFilter()(make_request("POST", form={}, headers={"Authorization": "Bearer short"}), empty, store) is empty


# ============================================================================
# Chain construction and driver
# ============================================================================


def test_build_filter_chain_order():
    chain = build_filter_chain(RouteEndpoint(lambda **kw: None, client=O2Client(), bearer_token=O2BearerToken()))
    assert [type(f) for f in chain] == [
        ClientQueryParameterFilter,
        ClientBasicAuthFilter,
        ClientBodyFilter,
        BearerTokenFilter,
        O2AuthorizationFilter,
    ]

    private_only = build_filter_chain(RouteEndpoint(lambda **kw: None, client=O2Client(permit_public=False)))
    assert [type(f) for f in private_only] == [ClientBasicAuthFilter, ClientBodyFilter, O2AuthorizationFilter]

    assert build_filter_chain(RouteEndpoint(lambda **kw: None)) == ()


def test_authenticate_request_requires_client(store, ctx):
    chain = build_filter_chain(RouteEndpoint(lambda **kw: None, client=O2Client()))
    with pytest.raises(AccessDeniedException):
        authenticate_request(chain, make_request("POST", form={"grant_type": ["client_credentials"]}), store)


def test_authenticate_request_conflicting_credentials(store, ctx):
    chain = build_filter_chain(RouteEndpoint(lambda **kw: None, client=O2Client()))
    request = make_request(
        "POST",
        form={"client_id": [ctx.clients["owner"].id], "client_secret": [OWNER_SECRET]},
        headers={"Authorization": basic_auth_header(ctx.clients["cc"].id, CC_SECRET)},
    )
    with pytest.raises(InvalidClientException):
        authenticate_request(chain, request, store)


def test_authenticate_request_client_and_bearer(store, ctx):
    chain = build_filter_chain(RouteEndpoint(lambda **kw: None, client=O2Client(permit_public=False), bearer_token=O2BearerToken()))
    token = make_token(store, ctx.clients["owner"])
    request = make_request(
        "POST",
        form={"client_id": [ctx.clients["owner"].id], "client_secret": [OWNER_SECRET]},
        headers={"Authorization": f"Bearer {token.id}"},
    )
    with pytest.raises(AccessDeniedException):
        authenticate_request(chain, request, store)


def test_authenticate_request_private_only_endpoint(store, ctx):
    chain = build_filter_chain(RouteEndpoint(lambda **kw: None, client=O2Client(permit_public=False)))
    request = make_request("POST", form={"client_id": [ctx.clients["owner_public"].id]})
    with pytest.raises(AccessDeniedException):
        authenticate_request(chain, request, store)


def test_authenticate_request_anonymous_endpoint(store):
    assert authenticate_request((), make_request("GET"), store) == O2Principal()


def test_body_filter_accepts_restated_header_id(store, ctx):
    client = ctx.clients["cc"]
    request = make_request("POST", form={"client_id": [client.id]}, headers={"Authorization": basic_auth_header(client.id, CC_SECRET)})
    principal = ClientBasicAuthFilter()(request, O2Principal(), store)
    assert ClientBodyFilter()(request, principal, store) is principal
