"""Unit tests for ``TransactionManager`` and serialization-failure mapping."""

from __future__ import annotations

import pytest
from django.db import DEFAULT_DB_ALIAS, OperationalError

from modules.core.exceptions import TransactionConflict
from modules.core.transactions import TransactionManager, is_serialization_failure
from modules.merch.models import MerchCollection
from modules.merch.unit_of_work import MerchUnitOfWork, merch_transactions

pytestmark = pytest.mark.unit


class _DriverError(Exception):
    """Stands in for a psycopg error carrying a SQLSTATE."""

    def __init__(self, sqlstate: str) -> None:
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


def _wrapped(sqlstate: str) -> OperationalError:
    try:
        raise OperationalError("driver failure") from _DriverError(sqlstate)
    except OperationalError as exc:
        return exc


# ===========================================================================
# is_serialization_failure
# ===========================================================================


class TestIsSerializationFailure:
    @pytest.mark.parametrize("sqlstate", ["40001", "40P01"])
    def test_conflict_codes(self, sqlstate):
        assert is_serialization_failure(_wrapped(sqlstate)) is True

    def test_other_codes(self):
        assert is_serialization_failure(_wrapped("57014")) is False

    def test_no_driver_cause(self):
        assert is_serialization_failure(OperationalError("gone away")) is False


# ===========================================================================
# TransactionManager
# ===========================================================================


class TestTransactionManager:
    def test_yields_unit_of_work_bound_to_alias(self):
        with merch_transactions().read_write() as uow:
            assert isinstance(uow, MerchUnitOfWork)
            assert uow.using == DEFAULT_DB_ALIAS
            assert uow.orders.using == DEFAULT_DB_ALIAS

    def test_read_only_yields_unit_of_work(self):
        with merch_transactions().read_only() as uow:
            assert uow.collections.get_by_id("not-a-uuid") is None

    def test_serialization_failure_becomes_conflict(self):
        manager = TransactionManager(MerchUnitOfWork.bind)
        with pytest.raises(TransactionConflict) as exc_info:
            with manager.read_write():
                raise _wrapped("40001")

        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_deadlock_becomes_conflict(self):
        manager = TransactionManager(MerchUnitOfWork.bind)
        with pytest.raises(TransactionConflict):
            with manager.read_write():
                raise _wrapped("40P01")

    def test_other_operational_errors_propagate(self):
        manager = TransactionManager(MerchUnitOfWork.bind)
        with pytest.raises(OperationalError):
            with manager.read_write():
                raise _wrapped("57014")

    def test_error_rolls_back_writes(self):
        manager = TransactionManager(MerchUnitOfWork.bind)
        with pytest.raises(TransactionConflict):
            with manager.read_write() as uow:
                uow.collections.upsert(MerchCollection(title="Doomed"))
                raise _wrapped("40001")

        assert not MerchCollection.objects.filter(title="Doomed").exists()
