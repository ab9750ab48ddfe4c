"""Identity provider plugins, indexed by :class:`AuthenticatorType`."""

from typing import Dict

from ...exceptions import InvalidRequestException
from ...models import AuthenticatorType
from .base import IAuthenticator
from .facebook import FACEBOOK
from .github import GITHUB
from .google import GOOGLE
from .linkedin import LINKEDIN
from .oauth2 import OAuth2Authenticator
from .password import PasswordAuthenticator

AUTHENTICATORS: Dict[AuthenticatorType, IAuthenticator] = {
    AuthenticatorType.PASSWORD: PasswordAuthenticator(),
    AuthenticatorType.FACEBOOK: OAuth2Authenticator(FACEBOOK),
    AuthenticatorType.GOOGLE: OAuth2Authenticator(GOOGLE),
    AuthenticatorType.GITHUB: OAuth2Authenticator(GITHUB),
    AuthenticatorType.LINKEDIN: OAuth2Authenticator(LINKEDIN),
}


def get_authenticator(authenticator_type: AuthenticatorType) -> IAuthenticator:
    implementation = AUTHENTICATORS.get(authenticator_type)
    if implementation is None:
        raise InvalidRequestException("The requested authenticator is not available.")
    return implementation


__all__ = ["AUTHENTICATORS", "IAuthenticator", "get_authenticator"]
