"""Unit tests for core_oauth.oauth.validation."""

import pytest

from core_oauth.exceptions import InvalidRequestException, InvalidScopeException, UnsupportedResponseTypeException
from core_oauth.models import (
    ApplicationScope,
    Authenticator,
    AuthenticatorType,
    Client,
    ClientType,
    ResponseType,
    Role,
)
from core_oauth.oauth.validation import (
    revalidate_scope,
    validate_authenticator,
    validate_redirect,
    validate_response_type,
    validate_role_scope,
    validate_scope,
)


@pytest.fixture
def scopes():
    return {name: ApplicationScope(name=name) for name in ("debug", "debug1", "debug2")}


# ============================================================================
# validate_scope
# ============================================================================


@pytest.mark.parametrize("requested", [None, "", [], {}])
def test_validate_scope_empty_request(requested, scopes):
    assert validate_scope(requested, scopes) == {}


def test_validate_scope_string(scopes):
    result = validate_scope("debug1 debug", scopes)
    assert list(result.keys()) == ["debug", "debug1"]
    assert result["debug"] is scopes["debug"]


def test_validate_scope_list_and_map(scopes):
    assert list(validate_scope(["debug2"], scopes)) == ["debug2"]
    assert list(validate_scope({"debug1": scopes["debug1"]}, scopes)) == ["debug1"]


def test_validate_scope_unknown_name(scopes):
    with pytest.raises(InvalidScopeException):
        validate_scope("debug missing", scopes)


@pytest.mark.parametrize("allowed", [None, {}])
def test_validate_scope_nothing_allowed(allowed):
    with pytest.raises(InvalidScopeException):
        validate_scope("debug", allowed)


def test_validate_role_scope(scopes):
    role = Role(name="r", application_id="a" * 32, scopes={"debug": scopes["debug"]})
    assert list(validate_role_scope("debug", role)) == ["debug"]
    assert validate_role_scope("", Role(name="r", application_id="a" * 32)) == {}
    with pytest.raises(InvalidScopeException):
        validate_role_scope("debug1", role)


def test_validate_role_scope_without_role():
    with pytest.raises(InvalidScopeException):
        validate_role_scope({}, None)
    with pytest.raises(InvalidScopeException):
        validate_role_scope("debug1", None)


# ============================================================================
# revalidate_scope
# ============================================================================


def test_revalidate_scope_subset(scopes):
    granted = {"debug": scopes["debug"], "debug1": scopes["debug1"]}
    assert list(revalidate_scope("debug", granted, scopes)) == ["debug"]


def test_revalidate_scope_escalation(scopes):
    granted = {"debug": scopes["debug"]}
    with pytest.raises(InvalidScopeException):
        revalidate_scope("debug debug1", granted, scopes)


def test_revalidate_scope_drops_removed_scopes(scopes):
    granted = {"debug": scopes["debug"], "debug1": scopes["debug1"]}
    allowed = {"debug": scopes["debug"]}
    assert list(revalidate_scope("debug debug1", granted, allowed)) == ["debug"]


def test_revalidate_scope_empty(scopes):
    assert revalidate_scope([], {}, scopes) == {}
    assert revalidate_scope("", {"debug": scopes["debug"]}, {}) == {}


def test_revalidate_scope_missing_sets(scopes):
    with pytest.raises(InvalidScopeException):
        revalidate_scope([], None, scopes)
    with pytest.raises(InvalidScopeException):
        revalidate_scope(["debug"], {"debug": scopes["debug"]}, None)


# ============================================================================
# validate_redirect
# ============================================================================


def test_redirect_default_single():
    assert validate_redirect(None, ["https://one.example.com/"]) == "https://one.example.com/"
    assert validate_redirect("", ["https://one.example.com/"]) == "https://one.example.com/"


def test_redirect_default_ambiguous():
    with pytest.raises(InvalidRequestException):
        validate_redirect(None, ["https://one.example.com/", "https://two.example.com/"])
    with pytest.raises(InvalidRequestException):
        validate_redirect(None, [])


def test_redirect_malformed():
    with pytest.raises(InvalidRequestException):
        validate_redirect("http:\\\\", ["https://one.example.com/"])
    with pytest.raises(InvalidRequestException):
        validate_redirect("https://one.example.com:notaport/", ["https://one.example.com/"])


def test_redirect_exact_match():
    registered = ["https://one.example.com/", "https://two.example.com/path"]
    assert validate_redirect("https://two.example.com/path", registered) == "https://two.example.com/path"


@pytest.mark.parametrize(
    "candidate",
    [
        "http://one.example.com/",
        "https://three.example.com/",
        "https://one.example.com:8443/",
        "https://one.example.com/other",
    ],
)
def test_redirect_component_mismatch(candidate):
    with pytest.raises(InvalidRequestException):
        validate_redirect(candidate, ["https://one.example.com/"])


def test_redirect_query_superset():
    registered = ["https://one.example.com/?foo=bar"]
    assert validate_redirect("https://one.example.com/?foo=bar&lol=cat", registered)
    assert validate_redirect("https://one.example.com/?foo=bar&foo=dice", registered)


def test_redirect_query_missing_or_contradicted():
    registered = ["https://one.example.com/?foo=bar"]
    with pytest.raises(InvalidRequestException):
        validate_redirect("https://one.example.com/?foo=cat", registered)
    with pytest.raises(InvalidRequestException):
        validate_redirect("https://one.example.com/", registered)


def test_redirect_alternative_query_sets():
    registered = ["https://one.example.com/?foo=cat", "https://one.example.com/?foo=bar"]
    assert validate_redirect("https://one.example.com/?foo=bar", registered) == "https://one.example.com/?foo=bar"


def test_redirect_returns_candidate():
    candidate = "https://one.example.com/?foo=bar&state=extra"
    assert validate_redirect(candidate, ["https://one.example.com/?foo=bar"]) == candidate


# ============================================================================
# validate_response_type / validate_authenticator
# ============================================================================


def _client(client_type: ClientType) -> Client:
    return Client(application_id="a" * 32, type=client_type)


def test_response_type_matches_client_type():
    assert validate_response_type(_client(ClientType.AUTHORIZATION_GRANT), "code") == ResponseType.CODE
    assert validate_response_type(_client(ClientType.IMPLICIT), "token") == ResponseType.TOKEN


@pytest.mark.parametrize(
    "client_type,response_type",
    [
        (ClientType.AUTHORIZATION_GRANT, "token"),
        (ClientType.IMPLICIT, "code"),
        (ClientType.CLIENT_CREDENTIALS, "code"),
        (ClientType.OWNER_CREDENTIALS, "token"),
        (ClientType.AUTHORIZATION_GRANT, None),
        (ClientType.AUTHORIZATION_GRANT, "garbage"),
    ],
)
def test_response_type_mismatch(client_type, response_type):
    with pytest.raises(UnsupportedResponseTypeException):
        validate_response_type(_client(client_type), response_type)


def test_response_type_without_client():
    with pytest.raises(UnsupportedResponseTypeException):
        validate_response_type(None, "code")


def test_validate_authenticator():
    password = Authenticator(client_id="c" * 32, type=AuthenticatorType.PASSWORD)
    facebook = Authenticator(client_id="c" * 32, type=AuthenticatorType.FACEBOOK)

    assert validate_authenticator(None, [password]) is password
    assert validate_authenticator("Facebook", [password, facebook]) is facebook
    assert validate_authenticator(AuthenticatorType.PASSWORD, [password, facebook]) is password

    with pytest.raises(InvalidRequestException):
        validate_authenticator(None, [password, facebook])
    with pytest.raises(InvalidRequestException):
        validate_authenticator(None, [])
    with pytest.raises(InvalidRequestException):
        validate_authenticator("Google", [password, facebook])
