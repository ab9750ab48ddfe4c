from typing import Any, Dict

from .oauth2 import OAuth2Provider, RemoteUser, map_claims


def parse_linkedin_user(payload: Dict[str, Any]) -> RemoteUser:
    claims = map_claims(payload, {"emailAddress": "emailAddress", "firstName": "firstName", "lastName": "lastName"})
    return RemoteUser(id=str(payload.get("id") or ""), claims=claims)


LINKEDIN = OAuth2Provider(
    name="LinkedIn",
    authorize_url="https://www.linkedin.com/oauth/v2/authorization",
    token_url="https://www.linkedin.com/oauth/v2/accessToken",
    user_url="https://api.linkedin.com/v1/people/~:(id,first-name,last-name,email-address)",
    scope="r_basicprofile r_emailaddress",
    parse_user=parse_linkedin_user,
    # the v1 people API answers in XML unless asked otherwise
    user_headers={"x-li-format": "json"},
)
