"""Transactional entity store.

Business logic never opens its own session. The request handler opens one
transaction per request and passes the yielded handle down:

.. code-block:: python

    with get_store().transaction() as store:
        client = store.get(Client, client_id)
        store.save(token)

Leaving the ``with`` block normally commits; raising rolls every write in the
block back.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type, TypeVar

from loguru import logger as log

from .models import Entity

E = TypeVar("E", bound=Entity)


class EntityStore(ABC):

    @abstractmethod
    def get(self, model: Type[E], entity_id: Optional[str]) -> Optional[E]:
        """Fetch one entity by id, or None."""

    @abstractmethod
    def save(self, entity: E) -> E:
        """Insert or replace an entity."""

    @abstractmethod
    def delete(self, entity: Entity) -> None:
        """Delete an entity. Deleting a missing entity is a no-op."""

    @abstractmethod
    def find(self, model: Type[E], **criteria: Any) -> List[E]:
        """Return every entity of ``model`` whose attributes equal ``criteria``."""

    @abstractmethod
    def transaction(self) -> Iterator["EntityStore"]:
        """Context manager delimiting one atomic unit of work."""

    def find_one(self, model: Type[E], **criteria: Any) -> Optional[E]:
        found = self.find(model, **criteria)
        return found[0] if found else None


class MemoryStore(EntityStore):
    """In-process store for local development and tests.

    Reads return copies so that callers mutating a record do not change the
    stored one until they ``save`` it. The lock guards single operations only;
    no cross-request locking is performed. Each thread records the prior value
    of every key it writes inside a transaction, and a failed outermost
    transaction restores those values in reverse order.
    """

    def __init__(self):
        self._data: Dict[Tuple[str, str], Entity] = {}
        self._lock = threading.RLock()
        self._local = threading.local()

    @staticmethod
    def _key(model: Type[Entity], entity_id: str) -> Tuple[str, str]:
        return model.__name__, entity_id

    def _record(self, key: Tuple[str, str]) -> None:
        undo: Optional[List[Tuple[Tuple[str, str], Optional[Entity]]]] = getattr(self._local, "undo", None)
        if undo is not None:
            undo.append((key, self._data.get(key)))

    def get(self, model: Type[E], entity_id: Optional[str]) -> Optional[E]:
        if not entity_id:
            return None
        with self._lock:
            entity = self._data.get(self._key(model, entity_id))
            return entity.model_copy(deep=True) if entity is not None else None

    def save(self, entity: E) -> E:
        key = self._key(type(entity), entity.id)
        with self._lock:
            self._record(key)
            self._data[key] = entity.model_copy(deep=True)
        return entity

    def delete(self, entity: Entity) -> None:
        key = self._key(type(entity), entity.id)
        with self._lock:
            if key in self._data:
                self._record(key)
                del self._data[key]

    def find(self, model: Type[E], **criteria: Any) -> List[E]:
        with self._lock:
            return [
                entity.model_copy(deep=True)
                for (name, _), entity in self._data.items()
                if name == model.__name__ and all(getattr(entity, k, None) == v for k, v in criteria.items())
            ]

    def _rollback(self, undo: List[Tuple[Tuple[str, str], Optional[Entity]]]) -> None:
        log.debug("Rolling back transaction", details={"writes": len(undo)})
        with self._lock:
            for key, previous in reversed(undo):
                if previous is None:
                    self._data.pop(key, None)
                else:
                    self._data[key] = previous

    @contextmanager
    def transaction(self) -> Iterator["MemoryStore"]:
        outermost = getattr(self._local, "undo", None) is None
        if outermost:
            self._local.undo = []
        try:
            yield self
        except BaseException:
            if outermost:
                self._rollback(self._local.undo)
            raise
        finally:
            if outermost:
                self._local.undo = None


__store: Optional[EntityStore] = None


def get_store() -> EntityStore:
    """Return the process-wide store, creating an in-memory one on first use."""
    global __store

    if __store is None:
        __store = MemoryStore()
    return __store


def set_store(store: Optional[EntityStore]) -> None:
    global __store

    __store = store
