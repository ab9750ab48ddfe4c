from typing import Any, Dict

from .oauth2 import OAuth2Provider, RemoteUser, map_claims


def parse_github_user(payload: Dict[str, Any]) -> RemoteUser:
    # GitHub ids are integers
    claims = map_claims(payload, {"login": "login", "email": "email", "name": "name"})
    remote_id = payload.get("id")
    return RemoteUser(id=str(remote_id) if remote_id is not None else "", claims=claims)


GITHUB = OAuth2Provider(
    name="Github",
    authorize_url="https://github.com/login/oauth/authorize",
    token_url="https://github.com/login/oauth/access_token",
    user_url="https://api.github.com/user",
    scope="read:user,user:email",
    parse_user=parse_github_user,
)
