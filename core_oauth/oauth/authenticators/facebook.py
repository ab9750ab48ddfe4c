from typing import Any, Dict

from .oauth2 import OAuth2Provider, RemoteUser, map_claims

FACEBOOK_FIELDS = "id,email,name,first_name,middle_name,last_name"


def parse_facebook_user(payload: Dict[str, Any]) -> RemoteUser:
    claims = map_claims(
        payload,
        {
            "email": "email",
            "name": "name",
            "firstName": "first_name",
            "middleName": "middle_name",
            "lastName": "last_name",
        },
    )
    return RemoteUser(id=str(payload.get("id") or ""), claims=claims)


FACEBOOK = OAuth2Provider(
    name="Facebook",
    authorize_url="https://www.facebook.com/v2.10/dialog/oauth",
    token_url="https://graph.facebook.com/v2.10/oauth/access_token",
    user_url=f"https://graph.facebook.com/v2.10/me?fields={FACEBOOK_FIELDS}",
    scope="public_profile,email",
    parse_user=parse_facebook_user,
)
