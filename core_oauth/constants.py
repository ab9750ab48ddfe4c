import os


def _int_env(name: str, default: int, minimum: int = 1, maximum: int = 31536000) -> int:
    # Safe integer conversion with range checking
    try:
        value = int(os.getenv(name, str(default)))
        if value < minimum or value > maximum:
            return default
        return value
    except (ValueError, TypeError):
        return default


# Token lifetimes (seconds). Clients may override these in their configuration map.
DEFAULT_AUTHORIZATION_EXPIRES = _int_env("OAUTH_AUTHORIZATION_EXPIRES", 600)
DEFAULT_ACCESS_TOKEN_EXPIRES = _int_env("OAUTH_ACCESS_TOKEN_EXPIRES", 600)
DEFAULT_REFRESH_TOKEN_EXPIRES = _int_env("OAUTH_REFRESH_TOKEN_EXPIRES", 1209600)

# Client configuration map keys
CLIENT_AUTHORIZATION_EXPIRES_KEY = "authorization_expires"
CLIENT_ACCESS_TOKEN_EXPIRES_KEY = "access_token_expires"
CLIENT_REFRESH_TOKEN_EXPIRES_KEY = "refresh_token_expires"

# Upstream identity provider calls must never hang a request
IDP_HTTP_TIMEOUT = _int_env("OAUTH_IDP_HTTP_TIMEOUT", 10, maximum=120)

OAUTH_ISSUER = os.getenv("OAUTH_ISSUER", "localhost")
OAUTH_PREFIX = os.getenv("OAUTH_PREFIX", "/oauth2")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Request / form field names
CLIENT_ID = "client_id"
CLIENT_SECRET = "client_secret"
GRANT_TYPE = "grant_type"
RESPONSE_TYPE = "response_type"
REDIRECT_URI = "redirect_uri"
SCOPE = "scope"
STATE = "state"
CODE = "code"
REFRESH_TOKEN = "refresh_token"
USERNAME = "username"
PASSWORD = "password"
TOKEN = "token"
AUTHENTICATOR = "authenticator"
ERROR = "error"
ERROR_DESCRIPTION = "error_description"

# Authenticator configuration keys for upstream OAuth2 providers
PROVIDER_CLIENT_ID = "client_id"
PROVIDER_CLIENT_SECRET = "client_secret"

HDR_AUTHORIZATION = "authorization"
HDR_CONTENT_TYPE = "content-type"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
