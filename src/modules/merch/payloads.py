"""Builders for merch notification payloads.

Order items must carry their option and item joined in (as returned by
``IOrderItemRepository``); nothing here queries the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from modules.notifications.payloads import (
    OrderInfo,
    OrderLineItemInfo,
    PartialFulfillmentInfo,
    PickupEventInfo,
)

if TYPE_CHECKING:
    from modules.merch.models import Order, OrderItem, OrderPickupEvent


def build_line_items(items: Iterable[OrderItem]) -> List[OrderLineItemInfo]:
    """Collapse per-unit rows into one line per option and sale price."""
    grouped: Dict[Tuple[UUID, int], List[OrderItem]] = {}
    for item in items:
        grouped.setdefault((item.option_id, item.sale_price_at_purchase), []).append(item)

    lines = []
    for (_, sale_price), units in grouped.items():
        option = units[0].option
        lines.append(
            OrderLineItemInfo(
                item_name=option.item.name,
                variant=(option.metadata or {}).get("value"),
                picture_url=option.item.picture_url,
                quantity_requested=len(units),
                sale_price=sale_price,
                total=sale_price * len(units),
            )
        )
    return lines


def build_pickup_event_info(
    pickup_event: Optional[OrderPickupEvent],
) -> Optional[PickupEventInfo]:
    if pickup_event is None:
        return None
    return PickupEventInfo.build(
        title=pickup_event.title,
        description=pickup_event.description,
        location=pickup_event.location,
        start=pickup_event.start,
        end=pickup_event.end,
    )


def build_order_info(
    order: Order,
    items: Iterable[OrderItem],
    pickup_event: Optional[OrderPickupEvent],
) -> OrderInfo:
    """``total_cost`` is the sum over ``items``: the refund for a cancellation."""
    items = list(items)
    return OrderInfo(
        order_id=order.id,
        items=build_line_items(items),
        total_cost=sum(item.sale_price_at_purchase for item in items),
        pickup_event=build_pickup_event_info(pickup_event),
    )


def build_partial_fulfillment_info(
    order: Order,
    items: Iterable[OrderItem],
    pickup_event: Optional[OrderPickupEvent],
) -> PartialFulfillmentInfo:
    items = list(items)
    return PartialFulfillmentInfo(
        order_id=order.id,
        fulfilled_items=build_line_items(i for i in items if i.fulfilled),
        unfulfilled_items=build_line_items(i for i in items if not i.fulfilled),
        pickup_event=build_pickup_event_info(pickup_event),
    )
