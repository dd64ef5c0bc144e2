"""Merch store domain exceptions.

Raised by the Service Layer when business rules are violated.  Each
extends one kind of the shared taxonomy (``NotFound``, ``Forbidden``,
``UserError``) so the API layer can map it without knowing the
specific class.
"""

from __future__ import annotations

from modules.core.exceptions import Forbidden, NotFound, UserError

# ---------------------------------------------------------------------------
# NotFound
# ---------------------------------------------------------------------------


class OrderNotFound(NotFound):
    """The requested order does not exist or is not visible to the caller."""


class OrderItemNotFound(NotFound):
    """A fulfillment update names an item that is not part of the order."""


class MerchItemNotFound(NotFound):
    """The requested merch item does not exist."""


class MerchItemOptionNotFound(NotFound):
    """One or more requested item options do not exist."""


class ItemNotOrderable(NotFound):
    """A requested option belongs to a hidden item."""


class MerchCollectionNotFound(NotFound):
    """The requested merch collection does not exist."""


class PickupEventNotFound(NotFound):
    """The requested pickup event does not exist."""


class LinkedEventNotFound(NotFound):
    """The calendar event a pickup event links to does not exist."""


# ---------------------------------------------------------------------------
# Forbidden
# ---------------------------------------------------------------------------


class NotOrderOwner(Forbidden):
    """The actor tried to modify an order placed by another member."""


class MerchPermissionDenied(Forbidden):
    """The actor's access type does not allow this merch operation."""


# ---------------------------------------------------------------------------
# UserError
# ---------------------------------------------------------------------------


class PurchaseLimitExceeded(UserError):
    """The order would exceed an item's lifetime or monthly limit."""

    def __init__(self, item_name: str, window: str) -> None:
        super().__init__(f"This order exceeds the {window} limit for {item_name}")
        self.item_name = item_name
        self.window = window


class InsufficientStock(UserError):
    """Not enough units of an option are in stock."""


class InsufficientCredits(UserError):
    """The member's credit balance does not cover the order."""


class PickupEventFull(UserError):
    """The pickup event already holds ``order_limit`` active orders."""


class PickupEventTooSoon(UserError):
    """The pickup event starts less than two days from now."""


class PickupEventNotActive(UserError):
    """The pickup event is completed or cancelled."""


class PickupEventNotStarted(UserError):
    """The operation requires the pickup event to have started."""


class InvalidPickupEventTimes(UserError):
    """A pickup event's start is not before its end."""


class OrderLimitBelowBooked(UserError):
    """A pickup event's order limit would drop below its booked orders."""


class PickupEventHasOrders(UserError):
    """A pickup event cannot be deleted while orders reference it."""


class InvalidOrderStatus(UserError):
    """The order's current status does not allow the requested transition."""


class InactiveOrder(UserError):
    """The order is already fulfilled or cancelled."""


class ItemAlreadyFulfilled(UserError):
    """An item marked for fulfillment has already been fulfilled."""


class InvalidItemOptions(UserError):
    """An item's options break the variant rules."""


class InvalidItemEdit(UserError):
    """An item edit would leave the catalog in an invalid state."""


class OptionInUse(UserError):
    """An option cannot be deleted once ordered or while it is the last visible one."""
