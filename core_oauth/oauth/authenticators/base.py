from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ...models import Authenticator, UserIdentity
from ...response import Response
from ...store import EntityStore

Parameters = Dict[str, List[str]]


class IAuthenticator(ABC):
    """Capability interface every identity provider implements."""

    @abstractmethod
    def delegate(self, authenticator: Authenticator, callback: str) -> Response:
        """Send the user agent to the identity provider.

        Args:
            authenticator: The client's configuration for this provider.
            callback: Absolute URI the provider must return to. Its query
                string carries the ``state`` of the pending authorization.
        """

    @abstractmethod
    def validate(self, authenticator: Authenticator) -> None:
        """Raise MisconfiguredAuthenticatorException if the configuration is unusable."""

    @abstractmethod
    def authenticate(
        self,
        authenticator: Authenticator,
        parameters: Parameters,
        callback: str,
        store: EntityStore,
    ) -> Optional[UserIdentity]:
        """Resolve the provider's response into a local identity, or None."""
