from typing import Optional

from loguru import logger as log

from ...constants import PASSWORD, USERNAME
from ...exceptions import InvalidRequestException
from ...models import Authenticator, AuthenticatorType, Client, User, UserIdentity
from ...response import Response
from ...store import EntityStore
from ...tools import verify_password
from .base import IAuthenticator, Parameters


class PasswordAuthenticator(IAuthenticator):
    """Local username/password identities, checked synchronously."""

    def delegate(self, authenticator: Authenticator, callback: str) -> Response:
        raise InvalidRequestException("The password authenticator cannot be used in a redirect flow.")

    def validate(self, authenticator: Authenticator) -> None:
        # Nothing to configure
        return None

    def authenticate(
        self,
        authenticator: Authenticator,
        parameters: Parameters,
        callback: Optional[str],
        store: EntityStore,
    ) -> Optional[UserIdentity]:
        usernames = parameters.get(USERNAME) or []
        passwords = parameters.get(PASSWORD) or []
        if len(usernames) != 1 or len(passwords) != 1:
            raise InvalidRequestException("Exactly one username and password are required.")

        client = store.get(Client, authenticator.client_id)
        if client is None:
            return None

        for identity in store.find(UserIdentity, type=AuthenticatorType.PASSWORD, remote_id=usernames[0]):
            user = store.get(User, identity.user_id)
            if user is None or user.application_id != client.application_id:
                continue
            if verify_password(passwords[0], identity.password):
                return identity
            break

        log.debug("Password authentication failed", details={"client_id": client.id})
        return None
