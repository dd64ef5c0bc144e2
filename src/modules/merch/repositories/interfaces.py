"""Merch repository interfaces.

Extend ``IRepository[T]`` with the named queries the merch services
need.  Related rows are always fetched through one of these calls at
the point of use; callers never rely on implicit relation loading.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.merch.models import (
        MerchCollection,
        MerchItem,
        MerchItemOption,
        Order,
        OrderItem,
        OrderPickupEvent,
    )


class IMerchCollectionRepository(IRepository["MerchCollection"]):
    """Repository contract for merch collections."""


class IMerchItemRepository(IRepository["MerchItem"]):
    """Repository contract for merch items."""


class IMerchItemOptionRepository(IRepository["MerchItemOption"]):
    """Repository contract for item options (the stock-holding SKUs).

    ``get_by_id`` and ``batch_find_by_ids`` return options with their
    item joined in.
    """

    @abstractmethod
    def list_for_item(self, item_id: UUID) -> List[MerchItemOption]:
        """All options of an item."""

    @abstractmethod
    def create_many(self, options: List[MerchItemOption]) -> List[MerchItemOption]:
        """Insert several new options."""

    @abstractmethod
    def has_been_ordered(self, option_id: UUID) -> bool:
        """``True`` if any order item references the option."""


class IOrderRepository(IRepository["Order"]):
    """Repository contract for orders.

    Returned orders carry their owner and pickup event joined in.
    """

    @abstractmethod
    def list_for_user(self, user_id: UUID) -> List[Order]:
        """Orders placed by a member, newest first."""

    @abstractmethod
    def list_all(self, statuses: Iterable[str] = ()) -> List[Order]:
        """All orders, optionally restricted to ``statuses``."""

    @abstractmethod
    def list_for_pickup_event(self, pickup_event_id: UUID) -> List[Order]:
        """Orders of any status scheduled against a pickup event."""

    @abstractmethod
    def count_active_for_pickup_event(self, pickup_event_id: UUID) -> int:
        """Number of non-cancelled orders scheduled against a pickup event."""

    @abstractmethod
    def exists_for_pickup_event(self, pickup_event_id: UUID) -> bool:
        """``True`` if any order of any status references the pickup event."""


class IOrderItemRepository(IRepository["OrderItem"]):
    """Repository contract for order items (one row per unit)."""

    @abstractmethod
    def create_many(self, items: List[OrderItem]) -> List[OrderItem]:
        """Insert the items of a freshly placed order."""

    @abstractmethod
    def list_for_order(self, order_id: UUID) -> List[OrderItem]:
        """Items of an order with option and item joined in."""

    @abstractmethod
    def list_for_orders(self, order_ids: Iterable[UUID]) -> List[OrderItem]:
        """Items of several orders with option and item joined in."""

    @abstractmethod
    def list_purchase_history(
        self, user_id: UUID, item_ids: Iterable[UUID]
    ) -> List[OrderItem]:
        """Every order item a member has bought of the given merch items.

        Items carry their order joined in (status and ``ordered_at`` are
        needed to decide whether an item counts toward purchase limits).
        """


class IOrderPickupEventRepository(IRepository["OrderPickupEvent"]):
    """Repository contract for pickup events."""

    @abstractmethod
    def list_future(self, now: datetime) -> List[OrderPickupEvent]:
        """Pickup events that have not ended yet, soonest first."""

    @abstractmethod
    def list_past(self, now: datetime) -> List[OrderPickupEvent]:
        """Pickup events that have ended, most recent first."""

    @abstractmethod
    def get_by_id(self, id: UUID | str) -> Optional[OrderPickupEvent]:
        """Pickup event with its linked calendar event joined in."""
