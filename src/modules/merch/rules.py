"""Pure merch business rules shared by the services.

Nothing here touches the database: callers pass in rows and counts
they already loaded inside their unit of work.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Dict, Iterable
from uuid import UUID

from modules.merch.constants import MONTHLY_LIMIT_WINDOW, PICKUP_EVENT_LEAD_TIME, OrderStatus

if TYPE_CHECKING:
    from modules.merch.models import OrderItem, OrderPickupEvent


@dataclass(frozen=True)
class PurchaseCounts:
    lifetime: int = 0
    monthly: int = 0


def counts_toward_limits(order_item: OrderItem) -> bool:
    """Items of cancelled orders are ignored unless they were handed out first."""
    return order_item.order.status != OrderStatus.CANCELLED or order_item.fulfilled


def count_purchases(
    history: Iterable[OrderItem], now: datetime
) -> Dict[UUID, PurchaseCounts]:
    """Lifetime and trailing-30-day purchase counts per merch item.

    ``history`` items need their order and option joined in.
    """
    window_start = now - MONTHLY_LIMIT_WINDOW
    lifetime: Dict[UUID, int] = defaultdict(int)
    monthly: Dict[UUID, int] = defaultdict(int)
    for order_item in history:
        if not counts_toward_limits(order_item):
            continue
        item_id = order_item.option.item_id
        lifetime[item_id] += 1
        if order_item.order.ordered_at >= window_start:
            monthly[item_id] += 1
    return {
        item_id: PurchaseCounts(lifetime=count, monthly=monthly[item_id])
        for item_id, count in lifetime.items()
    }


def remaining_allowance(limit: int | None, used: int) -> int | None:
    if limit is None:
        return None
    return max(limit - used, 0)


def starts_within_lead_time(pickup_event: OrderPickupEvent, now: datetime) -> bool:
    """``True`` once ``now`` is later than two days before the event's start."""
    return now > pickup_event.start - PICKUP_EVENT_LEAD_TIME


def is_full(active_order_count: int, order_limit: int) -> bool:
    return active_order_count >= order_limit
