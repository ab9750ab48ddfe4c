"""Entities persisted by the authorization server.

Records are flat: relations are expressed as ``*_id`` fields and resolved
through the :class:`~core_oauth.store.EntityStore` that the request handler
passes down. Scope maps are keyed by scope name and kept sorted so that
serialized scope strings are deterministic.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import (
    CLIENT_ACCESS_TOKEN_EXPIRES_KEY,
    CLIENT_AUTHORIZATION_EXPIRES_KEY,
    CLIENT_REFRESH_TOKEN_EXPIRES_KEY,
    DEFAULT_ACCESS_TOKEN_EXPIRES,
    DEFAULT_AUTHORIZATION_EXPIRES,
    DEFAULT_REFRESH_TOKEN_EXPIRES,
    OAUTH_ISSUER,
)
from .tools import new_id, utc_now


class ClientType(str, Enum):
    AUTHORIZATION_GRANT = "AuthorizationGrant"
    IMPLICIT = "Implicit"
    CLIENT_CREDENTIALS = "ClientCredentials"
    OWNER_CREDENTIALS = "OwnerCredentials"


class AuthenticatorType(str, Enum):
    PASSWORD = "Password"
    FACEBOOK = "Facebook"
    GOOGLE = "Google"
    GITHUB = "Github"
    LINKEDIN = "LinkedIn"


class OAuthTokenType(str, Enum):
    AUTHORIZATION = "Authorization"
    BEARER = "Bearer"
    REFRESH = "Refresh"


class GrantType(str, Enum):
    AUTHORIZATION_CODE = "authorization_code"
    CLIENT_CREDENTIALS = "client_credentials"
    PASSWORD = "password"
    REFRESH_TOKEN = "refresh_token"


class ResponseType(str, Enum):
    CODE = "code"
    TOKEN = "token"


class Entity(BaseModel):
    id: str = Field(default_factory=new_id, description="32 character hex identifier")
    created: datetime = Field(default_factory=utc_now)


class ApplicationScope(Entity):
    name: str
    application_id: Optional[str] = None


ScopeMap = Dict[str, ApplicationScope]


def sorted_scopes(scopes: Optional[ScopeMap]) -> ScopeMap:
    """Return a copy of a scope map ordered by scope name."""
    return {name: scopes[name] for name in sorted(scopes or {})}


class _ScopedEntity(Entity):
    scopes: ScopeMap = Field(default_factory=dict)

    @field_validator("scopes", mode="after")
    @classmethod
    def _sort_scopes(cls, v: ScopeMap) -> ScopeMap:
        return sorted_scopes(v)


class Application(_ScopedEntity):
    name: str
    default_role_id: Optional[str] = None


class Role(_ScopedEntity):
    name: str
    application_id: str


class User(Entity):
    application_id: str
    role_id: Optional[str] = None


class UserIdentity(Entity):
    user_id: str
    type: AuthenticatorType
    remote_id: str
    claims: Dict[str, str] = Field(default_factory=dict)
    password: Optional[str] = Field(default=None, description="bcrypt hash, Password identities only")


class Client(Entity):
    application_id: str
    name: str = ""
    type: ClientType
    client_secret: Optional[str] = None
    redirects: List[str] = Field(default_factory=list)
    configuration: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_public(self) -> bool:
        return not self.client_secret

    @property
    def is_private(self) -> bool:
        return not self.is_public

    def _expires(self, key: str, default: int) -> int:
        try:
            return int(self.configuration.get(key, default))
        except (TypeError, ValueError):
            return default

    @property
    def authorization_code_expires_in(self) -> int:
        return self._expires(CLIENT_AUTHORIZATION_EXPIRES_KEY, DEFAULT_AUTHORIZATION_EXPIRES)

    @property
    def access_token_expires_in(self) -> int:
        return self._expires(CLIENT_ACCESS_TOKEN_EXPIRES_KEY, DEFAULT_ACCESS_TOKEN_EXPIRES)

    @property
    def refresh_token_expires_in(self) -> int:
        return self._expires(CLIENT_REFRESH_TOKEN_EXPIRES_KEY, DEFAULT_REFRESH_TOKEN_EXPIRES)


class Authenticator(Entity):
    client_id: str
    type: AuthenticatorType
    configuration: Dict[str, str] = Field(default_factory=dict)


class AuthenticatorState(Entity):
    """Intermediate record for a redirect-based authorization in progress."""

    client_id: str
    authenticator_id: str
    client_state: Optional[str] = None
    client_scopes: ScopeMap = Field(default_factory=dict)
    client_redirect: str


class OAuthToken(_ScopedEntity):
    type: OAuthTokenType
    client_id: str
    identity_id: Optional[str] = None
    redirect: Optional[str] = None
    auth_token_id: Optional[str] = Field(default=None, description="Paired access token of a refresh token")
    issuer: str = OAUTH_ISSUER
    expires_in: int

    @property
    def expires_at(self) -> datetime:
        return self.created + timedelta(seconds=self.expires_in)

    @property
    def is_expired(self) -> bool:
        return self.expires_at < utc_now()
