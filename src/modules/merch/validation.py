"""Order validation engine.

``OrderValidator.validate`` checks a candidate order against the
catalog, the member's purchase history, stock, the target pickup event
and the member's credit balance, in that order.  The first failing
check raises; nothing is written.  It runs inside the caller's unit of
work so the checks and a subsequent placement see the same snapshot.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.utils import timezone

from modules.merch.exceptions import (
    InsufficientCredits,
    InsufficientStock,
    ItemNotOrderable,
    MerchItemOptionNotFound,
    PickupEventFull,
    PickupEventNotActive,
    PickupEventNotFound,
    PickupEventTooSoon,
    PurchaseLimitExceeded,
)
from modules.merch.rules import PurchaseCounts, count_purchases, is_full, starts_within_lead_time
from modules.users.exceptions import UserNotFound

if TYPE_CHECKING:
    from modules.merch.dtos import OrderLineDTO
    from modules.merch.models import MerchItemOption, OrderPickupEvent
    from modules.merch.unit_of_work import MerchUnitOfWork
    from modules.users.models import User

logger = structlog.get_logger(__name__)

PLACEMENT_TOO_SOON = "Cannot pickup order at an event that starts in less than 2 days"


@dataclass(frozen=True)
class ValidatedOrder:
    """Rows loaded while validating, reused by placement."""

    user: User
    options: Dict[UUID, MerchItemOption]
    pickup_event: Optional[OrderPickupEvent]
    total_cost: int


def _format_ids(ids: Iterable[UUID]) -> str:
    return ", ".join(sorted(str(i) for i in ids))


def ensure_pickup_event_open(
    uow: MerchUnitOfWork,
    pickup_event_id: UUID,
    now: datetime,
    too_soon_message: str = PLACEMENT_TOO_SOON,
) -> OrderPickupEvent:
    """Load a pickup event that can still take new orders.

    Raises:
        PickupEventNotFound: no such pickup event.
        PickupEventNotActive: the event was completed or cancelled.
        PickupEventTooSoon: the event starts less than 2 days from ``now``.
        PickupEventFull: the event already holds ``order_limit`` active orders.
    """
    pickup_event = uow.pickup_events.get_by_id(pickup_event_id)
    if pickup_event is None:
        raise PickupEventNotFound("Pickup event requested is not found")
    if not pickup_event.is_active:
        raise PickupEventNotActive(
            f"Pickup event {pickup_event.title} is {pickup_event.status.lower()} "
            "and no longer takes orders"
        )
    if starts_within_lead_time(pickup_event, now):
        raise PickupEventTooSoon(too_soon_message)
    active = uow.orders.count_active_for_pickup_event(pickup_event.id)
    if is_full(active, pickup_event.order_limit):
        raise PickupEventFull(
            "This merch pickup event is full! Please choose a different pickup event"
        )
    return pickup_event


class OrderValidator:
    """Validates candidate orders inside a unit of work."""

    def __init__(self, uow: MerchUnitOfWork) -> None:
        self._uow = uow

    def validate(
        self,
        user: User,
        lines: List[OrderLineDTO],
        pickup_event_id: Optional[UUID] = None,
    ) -> ValidatedOrder:
        """Run every check; return the loaded rows or raise the first failure.

        The member row is re-read so the credit check sees the balance of
        this transaction, not of the request.

        Raises:
            UserNotFound: the member no longer exists.
            MerchItemOptionNotFound: some option ids do not resolve.
            ItemNotOrderable: some options belong to hidden items.
            PurchaseLimitExceeded: a lifetime or monthly limit would be exceeded.
            InsufficientStock: an option has fewer units than requested.
            PickupEventNotFound, PickupEventNotActive, PickupEventTooSoon,
                PickupEventFull: the pickup event cannot take the order.
            InsufficientCredits: the member cannot afford the order.
        """
        now = timezone.now()
        log = logger.bind(user_id=str(user.pk), line_count=len(lines))

        fresh_user = self._uow.users.get_by_id(user.pk)
        if fresh_user is None:
            raise UserNotFound(f"User {user.pk} not found.")

        options = self._check_existence(lines)
        self._check_purchase_limits(fresh_user, lines, options, now)
        self._check_stock(lines, options)
        pickup_event = None
        if pickup_event_id is not None:
            pickup_event = ensure_pickup_event_open(self._uow, pickup_event_id, now)
        total_cost = self._check_credits(fresh_user, lines, options)

        log.info("merch.order_validated", total_cost=total_cost)
        return ValidatedOrder(
            user=fresh_user,
            options=options,
            pickup_event=pickup_event,
            total_cost=total_cost,
        )

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_existence(self, lines: List[OrderLineDTO]) -> Dict[UUID, MerchItemOption]:
        requested = {line.option_id for line in lines}
        options = self._uow.options.batch_find_by_ids(requested)

        missing = requested - set(options)
        if missing:
            raise MerchItemOptionNotFound(
                f"The following items were not found: {_format_ids(missing)}"
            )
        hidden = {option_id for option_id, option in options.items() if option.item.hidden}
        if hidden:
            raise ItemNotOrderable(f"Not allowed to order: {_format_ids(hidden)}")
        return options

    def _check_purchase_limits(
        self,
        user: User,
        lines: List[OrderLineDTO],
        options: Dict[UUID, MerchItemOption],
        now: datetime,
    ) -> None:
        requested_per_item: Dict[UUID, int] = defaultdict(int)
        items = {}
        for line in lines:
            item = options[line.option_id].item
            requested_per_item[item.id] += line.quantity
            items[item.id] = item

        history = self._uow.order_items.list_purchase_history(user.pk, items.keys())
        counts = count_purchases(history, now)

        for item_id, requested in requested_per_item.items():
            item = items[item_id]
            used = counts.get(item_id, PurchaseCounts())
            if item.lifetime_limit is not None and used.lifetime + requested > item.lifetime_limit:
                raise PurchaseLimitExceeded(item.name, "lifetime")
            if item.monthly_limit is not None and used.monthly + requested > item.monthly_limit:
                raise PurchaseLimitExceeded(item.name, "monthly")

    def _check_stock(
        self, lines: List[OrderLineDTO], options: Dict[UUID, MerchItemOption]
    ) -> None:
        for line in lines:
            option = options[line.option_id]
            if option.quantity < line.quantity:
                raise InsufficientStock(
                    f"There aren't enough units of {option.item.name} in stock"
                )

    def _check_credits(
        self,
        user: User,
        lines: List[OrderLineDTO],
        options: Dict[UUID, MerchItemOption],
    ) -> int:
        total_cost = sum(
            options[line.option_id].effective_price * line.quantity for line in lines
        )
        if user.credits < total_cost:
            raise InsufficientCredits("You don't have enough credits for this order")
        return total_cost
