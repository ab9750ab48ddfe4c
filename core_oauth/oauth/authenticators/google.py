from typing import Any, Dict

from .oauth2 import OAuth2Provider, RemoteUser, map_claims


def parse_google_user(payload: Dict[str, Any]) -> RemoteUser:
    claims = map_claims(
        payload,
        {
            "email": "email",
            "name": "name",
            "firstName": "given_name",
            "lastName": "family_name",
            "picture": "picture",
        },
    )
    return RemoteUser(id=str(payload.get("id") or ""), claims=claims)


GOOGLE = OAuth2Provider(
    name="Google",
    authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
    token_url="https://www.googleapis.com/oauth2/v4/token",
    user_url="https://www.googleapis.com/oauth2/v1/userinfo",
    scope="https://www.googleapis.com/auth/userinfo.email https://www.googleapis.com/auth/userinfo.profile",
    parse_user=parse_google_user,
)
