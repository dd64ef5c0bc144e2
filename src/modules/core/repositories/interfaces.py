"""Generic repository interface (Dependency Inversion Principle).

Provides ``IRepository[T]``, the base abstract class that all
domain-specific repository interfaces extend.  Service-layer code
depends on this abstraction, never on Django ORM directly.

Every concrete repository is bound to one database alias at
construction time (see ``TransactionManager``); nothing reaches for
ambient connection state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Iterable, Optional, TypeVar
from uuid import UUID

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract.

    Type parameter ``T`` represents the domain entity managed by the
    repository (e.g. ``Order``, ``MerchItemOption``).
    """

    @abstractmethod
    def get_by_id(self, id: UUID | str) -> Optional[T]:
        """Retrieve an entity by its primary key, or ``None``."""

    @abstractmethod
    def batch_find_by_ids(self, ids: Iterable[UUID]) -> Dict[UUID, T]:
        """Retrieve several entities at once, keyed by primary key.

        Ids that do not resolve are simply absent from the result.
        """

    @abstractmethod
    def upsert(self, entity: T, changes: Optional[Dict[str, Any]] = None) -> T:
        """Apply ``changes`` to ``entity`` and persist it (create or update)."""

    @abstractmethod
    def delete(self, entity: T) -> None:
        """Remove an entity."""
