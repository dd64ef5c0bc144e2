"""Transaction boundaries for the service layer.

``TransactionManager`` opens a database transaction and yields a unit of
work (an object carrying repositories bound to that transaction's
database alias).  Two modes exist:

- ``read_only()``  -> REPEATABLE READ, READ ONLY
- ``read_write()`` -> SERIALIZABLE

Serializable isolation is the only concurrency control used for the
contended counters (option stock, user credits, pickup-event capacity):
no ``select_for_update`` and no version columns.  When the database
aborts a transaction with a serialization failure (SQLSTATE 40001) or a
deadlock (40P01), the error is re-raised as ``TransactionConflict``.

Isolation levels are only issued on PostgreSQL and only for the
outermost block; nested calls join the caller's transaction.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Generic, Iterator, Optional, TypeVar

import structlog
from django.db import DEFAULT_DB_ALIAS, OperationalError, connections, transaction

from modules.core.exceptions import TransactionConflict

logger = structlog.get_logger(__name__)

U = TypeVar("U")

READ_ONLY_ISOLATION = "REPEATABLE READ READ ONLY"
READ_WRITE_ISOLATION = "SERIALIZABLE"

SERIALIZATION_FAILURE_CODES = frozenset({"40001", "40P01"})


def _sqlstate(exc: BaseException) -> Optional[str]:
    """Extract the SQLSTATE from a driver error wrapped by Django."""
    cause = exc.__cause__ or exc
    return getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)


def is_serialization_failure(exc: BaseException) -> bool:
    return _sqlstate(exc) in SERIALIZATION_FAILURE_CODES


class TransactionManager(Generic[U]):
    """Opens transactions and hands out units of work.

    ``uow_factory`` receives the database alias and returns the unit of
    work whose repositories are bound to it.
    """

    def __init__(
        self,
        uow_factory: Callable[[str], U],
        using: str = DEFAULT_DB_ALIAS,
    ) -> None:
        self._uow_factory = uow_factory
        self._using = using

    @property
    def using(self) -> str:
        return self._using

    @contextmanager
    def read_only(self) -> Iterator[U]:
        with self._open(READ_ONLY_ISOLATION) as uow:
            yield uow

    @contextmanager
    def read_write(self) -> Iterator[U]:
        with self._open(READ_WRITE_ISOLATION) as uow:
            yield uow

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _open(self, isolation: str) -> Iterator[U]:
        connection = connections[self._using]
        outermost = not connection.in_atomic_block
        try:
            with transaction.atomic(using=self._using):
                if outermost and connection.vendor == "postgresql":
                    with connection.cursor() as cursor:
                        cursor.execute(f"SET TRANSACTION ISOLATION LEVEL {isolation}")
                yield self._uow_factory(self._using)
        except OperationalError as exc:
            if not is_serialization_failure(exc):
                raise
            logger.warning(
                "transaction.conflict",
                using=self._using,
                isolation=isolation,
                sqlstate=_sqlstate(exc),
            )
            raise TransactionConflict(
                "The request conflicted with a concurrent update. Please try again."
            ) from exc
