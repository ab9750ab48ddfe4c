"""Tests for the Lambda proxy handler and its FastAPI bridge."""

import base64
import json
from urllib.parse import parse_qs, urlencode, urlsplit

import pytest

from core_oauth.models import OAuthToken
from core_oauth.oauth import handler as oauth_handler
from core_oauth.oauth.handler import endpoints, handler
from core_oauth.request import OAuthRequest
from core_oauth.tools import basic_auth_header

from .bootstrap import CC_SECRET, REDIRECT, make_token


def _event(method, path, query=None, form=None, headers=None, base64_body=False):
    headers = {"X-Forwarded-Proto": "https", **(headers or {})}
    body = ""
    if form is not None:
        headers["Content-Type"] = "application/x-www-form-urlencoded"
        body = urlencode(form, doseq=True)
        if base64_body:
            body = base64.b64encode(body.encode("utf-8")).decode("ascii")
    return {
        "httpMethod": method,
        "path": path,
        "headers": headers,
        "multiValueQueryStringParameters": query,
        "body": body,
        "isBase64Encoded": base64_body,
        "requestContext": {"domainName": "auth.example.com", "protocol": "HTTP/1.1", "stage": "prod"},
    }


def _cc_headers(ctx):
    return {"Authorization": basic_auth_header(ctx.clients["cc"].id, CC_SECRET)}


def test_from_event():
    event = _event("post", "/oauth2/token", query={"a": ["1", "2"]}, form={"grant_type": "password"}, headers={"X-Test": "y"})
    request = OAuthRequest.from_event(event)
    assert request.method == "POST"
    assert request.base_url == "https://auth.example.com"
    assert request.headers["x-test"] == "y"
    assert request.query == {"a": ["1", "2"]}
    assert request.form == {"grant_type": ["password"]}
    assert request.url_for("/authorize/callback") == "https://auth.example.com/oauth2/authorize/callback"


def test_from_event_scheme_comes_from_forwarded_header():
    event = _event("GET", "/oauth2/authorize", headers={"X-Forwarded-Proto": "http"})
    assert OAuthRequest.from_event(event).base_url == "http://auth.example.com"

    del event["headers"]["X-Forwarded-Proto"]
    assert OAuthRequest.from_event(event).base_url == "https://auth.example.com"


def test_handler_authorize_callback_is_same_origin(store, ctx):
    client = ctx.clients["auth"]
    event = _event("GET", "/oauth2/authorize", query={"response_type": ["code"], "client_id": [client.id], "redirect_uri": [REDIRECT]})
    result = handler(event)
    assert result["statusCode"] == 302

    upstream = parse_qs(urlsplit(result["headers"]["Location"]).query)
    assert upstream["redirect_uri"] == ["https://auth.example.com/oauth2/authorize/callback"]


def test_from_event_single_value_query():
    event = _event("GET", "/oauth2/authorize")
    event["queryStringParameters"] = {"client_id": "x"}
    assert OAuthRequest.from_event(event).query == {"client_id": ["x"]}


def test_handler_token(store, ctx):
    result = handler(_event("POST", "/oauth2/token", form={"grant_type": "client_credentials"}, headers=_cc_headers(ctx)))
    assert result["statusCode"] == 200
    assert result["headers"]["Content-Type"] == "application/json"
    assert result["headers"]["Cache-Control"] == "no-store"
    assert json.loads(result["body"])["token_type"] == "Bearer"


def test_handler_base64_body(store, ctx):
    event = _event("POST", "/oauth2/token", form={"grant_type": "client_credentials"}, headers=_cc_headers(ctx), base64_body=True)
    assert handler(event)["statusCode"] == 200


def test_handler_trailing_slash(store, ctx):
    result = handler(_event("POST", "/oauth2/token/", form={"grant_type": "client_credentials"}, headers=_cc_headers(ctx)))
    assert result["statusCode"] == 200


@pytest.mark.parametrize("method,path", [("GET", "/oauth2/unknown"), ("DELETE", "/oauth2/token"), ("GET", "/")])
def test_handler_unknown_route(store, method, path):
    result = handler(_event(method, path))
    assert result["statusCode"] == 404
    assert json.loads(result["body"])["error"] == "not_found"


def test_handler_unexpected_error(store, ctx, monkeypatch):
    def explode(**kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(endpoints["POST:/oauth2/token"], "handler", explode)
    result = handler(_event("POST", "/oauth2/token", form={"grant_type": "client_credentials"}, headers=_cc_headers(ctx)))
    assert result["statusCode"] == 500
    body = json.loads(result["body"])
    assert body == {"error": "internal_server_error", "error_description": "Internal server error."}
    assert "boom" not in result["body"]


def test_handler_rolls_back_on_error(store, ctx, monkeypatch):
    client = ctx.clients["cc"]

    def write_then_fail(*, store, **kwargs):
        make_token(store, client)
        raise RuntimeError("boom")

    monkeypatch.setattr(endpoints["POST:/oauth2/token"], "handler", write_then_fail)
    handler(_event("POST", "/oauth2/token", form={"grant_type": "client_credentials"}, headers=_cc_headers(ctx)))
    assert store.find(OAuthToken) == []


def test_handler_uses_installed_store(store, ctx, monkeypatch):
    seen = []
    original = oauth_handler.get_store

    def spy():
        seen.append(True)
        return original()

    monkeypatch.setattr(oauth_handler, "get_store", spy)
    handler(_event("POST", "/oauth2/token", form={"grant_type": "client_credentials"}, headers=_cc_headers(ctx)))
    assert seen == [True]


def test_cache_headers_can_be_disabled(store, ctx, monkeypatch):
    monkeypatch.setenv("OAUTH_NO_CACHE", "false")
    result = handler(_event("POST", "/oauth2/token", form={"grant_type": "client_credentials"}, headers=_cc_headers(ctx)))
    assert "Cache-Control" not in result["headers"]


def test_every_endpoint_is_mounted(api):
    paths = api.app.openapi()["paths"]
    for key in endpoints:
        method, path = key.split(":", 1)
        assert method.lower() in paths[path]


def test_health(api):
    assert api.get("/health").json() == {"status": "healthy", "running": True}
