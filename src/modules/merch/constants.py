"""Merch store domain constants.

Defines status choices and valid status transitions for the order
and pickup-event state machines.
"""

from datetime import timedelta

from django.db import models


class OrderStatus(models.TextChoices):
    PLACED = "PLACED", "Placed"
    FULFILLED = "FULFILLED", "Fulfilled"
    PARTIALLY_FULFILLED = "PARTIALLY_FULFILLED", "Partially fulfilled"
    PICKUP_MISSED = "PICKUP_MISSED", "Pickup missed"
    PICKUP_CANCELLED = "PICKUP_CANCELLED", "Pickup cancelled"
    CANCELLED = "CANCELLED", "Cancelled"


class OrderPickupEventStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    COMPLETED = "COMPLETED", "Completed"
    CANCELLED = "CANCELLED", "Cancelled"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PLACED: {
        OrderStatus.FULFILLED,
        OrderStatus.PARTIALLY_FULFILLED,
        OrderStatus.PICKUP_MISSED,
        OrderStatus.PICKUP_CANCELLED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PARTIALLY_FULFILLED: {
        OrderStatus.FULFILLED,
        OrderStatus.PICKUP_MISSED,
        OrderStatus.PICKUP_CANCELLED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PICKUP_MISSED: {OrderStatus.PLACED, OrderStatus.CANCELLED},
    OrderStatus.PICKUP_CANCELLED: {OrderStatus.PLACED, OrderStatus.CANCELLED},
    OrderStatus.FULFILLED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.FULFILLED, OrderStatus.CANCELLED}

# Swept by ``cancel_all_pending_orders``.
PENDING_ORDER_STATUSES: set[str] = {
    OrderStatus.PARTIALLY_FULFILLED,
    OrderStatus.PICKUP_CANCELLED,
    OrderStatus.PICKUP_MISSED,
}

# A partially fulfilled order keeps handing out items at the same pickup.
FULFILLABLE_STATES: set[str] = {OrderStatus.PLACED, OrderStatus.PARTIALLY_FULFILLED}

PICKUP_EVENT_LEAD_TIME = timedelta(days=2)

MONTHLY_LIMIT_WINDOW = timedelta(days=30)
