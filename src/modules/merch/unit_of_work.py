"""Unit of work for merch operations.

Bundles every repository a merch service touches, all bound to the
database alias of the open transaction.  Services receive one from
``TransactionManager.read_only()`` / ``read_write()`` and pass it
explicitly to helpers; nothing is looked up from ambient state.
"""

from __future__ import annotations

from dataclasses import dataclass

from django.db import DEFAULT_DB_ALIAS

from modules.core.transactions import TransactionManager
from modules.events.repositories.django_repository import EventDjangoRepository
from modules.events.repositories.interfaces import IEventRepository
from modules.merch.repositories.django_repository import (
    MerchCollectionDjangoRepository,
    MerchItemDjangoRepository,
    MerchItemOptionDjangoRepository,
    OrderDjangoRepository,
    OrderItemDjangoRepository,
    OrderPickupEventDjangoRepository,
)
from modules.merch.repositories.interfaces import (
    IMerchCollectionRepository,
    IMerchItemOptionRepository,
    IMerchItemRepository,
    IOrderItemRepository,
    IOrderPickupEventRepository,
    IOrderRepository,
)
from modules.users.repositories.django_repository import (
    ActivityDjangoRepository,
    UserDjangoRepository,
)
from modules.users.repositories.interfaces import IActivityRepository, IUserRepository


@dataclass(frozen=True)
class MerchUnitOfWork:
    using: str
    users: IUserRepository
    activities: IActivityRepository
    events: IEventRepository
    collections: IMerchCollectionRepository
    items: IMerchItemRepository
    options: IMerchItemOptionRepository
    orders: IOrderRepository
    order_items: IOrderItemRepository
    pickup_events: IOrderPickupEventRepository

    @classmethod
    def bind(cls, using: str = DEFAULT_DB_ALIAS) -> MerchUnitOfWork:
        """Build a unit of work whose Django repositories use ``using``."""
        return cls(
            using=using,
            users=UserDjangoRepository(using),
            activities=ActivityDjangoRepository(using),
            events=EventDjangoRepository(using),
            collections=MerchCollectionDjangoRepository(using),
            items=MerchItemDjangoRepository(using),
            options=MerchItemOptionDjangoRepository(using),
            orders=OrderDjangoRepository(using),
            order_items=OrderItemDjangoRepository(using),
            pickup_events=OrderPickupEventDjangoRepository(using),
        )


def merch_transactions(using: str = DEFAULT_DB_ALIAS) -> TransactionManager[MerchUnitOfWork]:
    return TransactionManager(MerchUnitOfWork.bind, using=using)
