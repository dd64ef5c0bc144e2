"""Shared Django ORM behaviour for alias-bound repositories."""

from __future__ import annotations

from typing import Any, Dict, Generic, Iterable, Optional, Type, TypeVar
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import DEFAULT_DB_ALIAS, models

from modules.core.repositories.interfaces import IRepository

M = TypeVar("M", bound=models.Model)


class DjangoRepository(IRepository[M], Generic[M]):
    """``IRepository`` implementation over a single Django model.

    Subclasses set ``model`` and may override ``get_queryset`` to add
    ``select_related`` joins needed by their callers.
    """

    model: Type[M]

    def __init__(self, using: str = DEFAULT_DB_ALIAS) -> None:
        self._using = using

    @property
    def using(self) -> str:
        return self._using

    def get_queryset(self) -> models.QuerySet:
        return self.model.objects.using(self._using)

    def get_by_id(self, id: UUID | str) -> Optional[M]:
        """Returns ``None`` for non-existent or malformed IDs."""
        try:
            return self.get_queryset().filter(pk=id).first()
        except (ValueError, ValidationError):
            return None

    def batch_find_by_ids(self, ids: Iterable[UUID]) -> Dict[UUID, M]:
        ids = list(ids)
        if not ids:
            return {}
        return {entity.pk: entity for entity in self.get_queryset().filter(pk__in=ids)}

    def upsert(self, entity: M, changes: Optional[Dict[str, Any]] = None) -> M:
        for field, value in (changes or {}).items():
            setattr(entity, field, value)
        if changes and not entity._state.adding:
            entity.save(using=self._using, update_fields=list(changes))
        else:
            entity.save(using=self._using)
        return entity

    def delete(self, entity: M) -> None:
        entity.delete(using=self._using)
