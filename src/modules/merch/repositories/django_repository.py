"""Django ORM implementations of the merch repositories.

Every repository is bound to a database alias and queries through
``Model.objects.using(alias)`` so that all reads and writes of one
unit of work share its transaction.  No row locks are taken: writes
rely on the serializable isolation opened by ``TransactionManager``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List
from uuid import UUID

import structlog
from django.db import models

from modules.core.repositories.django_repository import DjangoRepository
from modules.merch.constants import OrderStatus
from modules.merch.models import (
    MerchCollection,
    MerchItem,
    MerchItemOption,
    Order,
    OrderItem,
    OrderPickupEvent,
)
from modules.merch.repositories.interfaces import (
    IMerchCollectionRepository,
    IMerchItemOptionRepository,
    IMerchItemRepository,
    IOrderItemRepository,
    IOrderPickupEventRepository,
    IOrderRepository,
)

logger = structlog.get_logger(__name__)


class MerchCollectionDjangoRepository(
    DjangoRepository[MerchCollection], IMerchCollectionRepository
):
    model = MerchCollection


class MerchItemDjangoRepository(DjangoRepository[MerchItem], IMerchItemRepository):
    model = MerchItem

    def get_queryset(self) -> models.QuerySet:
        return super().get_queryset().select_related("collection")


class MerchItemOptionDjangoRepository(
    DjangoRepository[MerchItemOption], IMerchItemOptionRepository
):
    model = MerchItemOption

    def get_queryset(self) -> models.QuerySet:
        return super().get_queryset().select_related("item")

    def list_for_item(self, item_id: UUID) -> List[MerchItemOption]:
        return list(self.get_queryset().filter(item_id=item_id))

    def create_many(self, options: List[MerchItemOption]) -> List[MerchItemOption]:
        return MerchItemOption.objects.using(self._using).bulk_create(options)

    def has_been_ordered(self, option_id: UUID) -> bool:
        return (
            OrderItem.objects.using(self._using).filter(option_id=option_id).exists()
        )


class OrderDjangoRepository(DjangoRepository[Order], IOrderRepository):
    model = Order

    def get_queryset(self) -> models.QuerySet:
        return super().get_queryset().select_related("user", "pickup_event")

    def list_for_user(self, user_id: UUID) -> List[Order]:
        return list(self.get_queryset().filter(user_id=user_id))

    def list_all(self, statuses: Iterable[str] = ()) -> List[Order]:
        queryset = self.get_queryset()
        statuses = list(statuses)
        if statuses:
            queryset = queryset.filter(status__in=statuses)
        return list(queryset)

    def list_for_pickup_event(self, pickup_event_id: UUID) -> List[Order]:
        return list(
            self.get_queryset()
            .filter(pickup_event_id=pickup_event_id)
            .order_by("ordered_at", "id")
        )

    def count_active_for_pickup_event(self, pickup_event_id: UUID) -> int:
        return (
            Order.objects.using(self._using)
            .filter(pickup_event_id=pickup_event_id)
            .exclude(status=OrderStatus.CANCELLED)
            .count()
        )

    def exists_for_pickup_event(self, pickup_event_id: UUID) -> bool:
        return (
            Order.objects.using(self._using)
            .filter(pickup_event_id=pickup_event_id)
            .exists()
        )


class OrderItemDjangoRepository(DjangoRepository[OrderItem], IOrderItemRepository):
    model = OrderItem

    def get_queryset(self) -> models.QuerySet:
        return super().get_queryset().select_related("option__item")

    def create_many(self, items: List[OrderItem]) -> List[OrderItem]:
        created = OrderItem.objects.using(self._using).bulk_create(items)
        logger.info("order_items.created", count=len(created))
        return created

    def list_for_order(self, order_id: UUID) -> List[OrderItem]:
        return list(self.get_queryset().filter(order_id=order_id))

    def list_for_orders(self, order_ids: Iterable[UUID]) -> List[OrderItem]:
        order_ids = list(order_ids)
        if not order_ids:
            return []
        return list(self.get_queryset().filter(order_id__in=order_ids))

    def list_purchase_history(
        self, user_id: UUID, item_ids: Iterable[UUID]
    ) -> List[OrderItem]:
        item_ids = list(item_ids)
        if not item_ids:
            return []
        return list(
            self.get_queryset()
            .select_related("order")
            .filter(order__user_id=user_id, option__item_id__in=item_ids)
        )


class OrderPickupEventDjangoRepository(
    DjangoRepository[OrderPickupEvent], IOrderPickupEventRepository
):
    model = OrderPickupEvent

    def get_queryset(self) -> models.QuerySet:
        return super().get_queryset().select_related("linked_event")

    def list_future(self, now: datetime) -> List[OrderPickupEvent]:
        return list(self.get_queryset().filter(end__gte=now).order_by("start"))

    def list_past(self, now: datetime) -> List[OrderPickupEvent]:
        return list(self.get_queryset().filter(end__lt=now).order_by("-start"))
