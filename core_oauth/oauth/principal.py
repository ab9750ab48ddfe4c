"""The resolved caller of one request.

An :class:`O2Principal` is an immutable value. Each authentication filter
builds one from the credential it recognized and merges it into the
accumulated principal:

.. code-block:: python

    principal = O2Principal()
    principal = principal.merge(O2Principal(client=client))
    principal = principal.merge(O2Principal(client=client))  # same client, fine
    principal.merge(O2Principal(client=other))               # AccessDeniedException

A merge that would combine two different clients, two different tokens, or
two different authentication schemes is refused.
"""

from enum import Enum
from typing import Any, Optional, TypeVar

from loguru import logger as log

from ..exceptions import AccessDeniedException
from ..models import Client, Entity, OAuthToken


class O2AuthScheme(str, Enum):
    NONE = "None"
    CLIENT_PUBLIC = "ClientPublic"
    CLIENT_PRIVATE = "ClientPrivate"
    BEARER_TOKEN = "BearerToken"


E = TypeVar("E", bound=Entity)


def _with_id(entity: Optional[E]) -> Optional[E]:
    return entity if entity is not None and entity.id else None


def _same_or_one(left: Optional[E], right: Optional[E]) -> Optional[E]:
    if left is not None and right is not None:
        if left.id != right.id:
            log.debug("Principal merge conflict", details={"left": left.id, "right": right.id})
            raise AccessDeniedException()
        return left
    return left if left is not None else right


class O2Principal:
    __slots__ = ("_client", "_token")

    def __init__(self, client: Optional[Client] = None, token: Optional[OAuthToken] = None):
        self._client = _with_id(client)
        self._token = _with_id(token)

    @property
    def client(self) -> Optional[Client]:
        return self._client

    @property
    def token(self) -> Optional[OAuthToken]:
        return self._token

    @property
    def scheme(self) -> O2AuthScheme:
        if self._token is not None:
            return O2AuthScheme.BEARER_TOKEN
        if self._client is not None:
            return O2AuthScheme.CLIENT_PRIVATE if self._client.is_private else O2AuthScheme.CLIENT_PUBLIC
        return O2AuthScheme.NONE

    @property
    def name(self) -> Optional[str]:
        if self._token is not None:
            return self._token.id
        if self._client is not None:
            return self._client.id
        return None

    def merge(self, other: Any) -> "O2Principal":
        """Combine two principals into a new one.

        Raises:
            AccessDeniedException: The principals name different clients or
                tokens, or more than one authentication scheme.
        """
        if not isinstance(other, O2Principal):
            return O2Principal(self._client, self._token)

        client = _same_or_one(self._client, other._client)
        token = _same_or_one(self._token, other._token)

        schemes = {p.scheme for p in (self, other) if p.scheme != O2AuthScheme.NONE}
        if len(schemes) > 1:
            log.debug("Principal merge with mixed schemes", details={"schemes": sorted(s.value for s in schemes)})
            raise AccessDeniedException()

        return O2Principal(client, token)

    def _key(self):
        return (
            self.scheme,
            self._client.id if self._client is not None else None,
            self._token.id if self._token is not None else None,
        )

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, O2Principal):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"O2Principal(scheme={self.scheme.value}, name={self.name})"
