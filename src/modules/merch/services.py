"""Merch order service layer (Use Cases).

Orchestrates order placement and every later transition of an order:
fulfillment, cancellation, rescheduling, missed pickups and the
pending-order sweep.

Every command runs in one serializable read-write transaction opened
through ``TransactionManager``; validation and the writes it guards see
the same snapshot, and concurrent conflicting commands are aborted by
the database (surfaced as ``TransactionConflict``).  Notifications are
queued to run after commit and never fail the command.

Order state machine (see ``constants.VALID_TRANSITIONS``)::

    PLACED -> FULFILLED | PARTIALLY_FULFILLED | PICKUP_MISSED
              | PICKUP_CANCELLED | CANCELLED
    PARTIALLY_FULFILLED -> FULFILLED | PICKUP_MISSED | PICKUP_CANCELLED | CANCELLED
    PICKUP_MISSED, PICKUP_CANCELLED -> PLACED (reschedule) | CANCELLED
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Tuple
from uuid import UUID

import structlog
from django.utils import timezone

from modules.merch.constants import (
    FULFILLABLE_STATES,
    PENDING_ORDER_STATUSES,
    OrderStatus,
)
from modules.merch.dtos import OrderOutputDTO, OrderSummaryDTO
from modules.merch.exceptions import (
    InactiveOrder,
    InvalidOrderStatus,
    ItemAlreadyFulfilled,
    MerchPermissionDenied,
    NotOrderOwner,
    OrderItemNotFound,
    OrderNotFound,
    PickupEventNotStarted,
    PickupEventTooSoon,
)
from modules.merch.models import Order, OrderItem
from modules.merch.payloads import build_order_info, build_partial_fulfillment_info
from modules.merch.rules import starts_within_lead_time
from modules.merch.validation import OrderValidator, ensure_pickup_event_open
from modules.notifications.dispatch import send_after_commit
from modules.users.constants import ActivityType
from modules.users.permissions import (
    can_cancel_all_pending_orders,
    can_manage_merch_orders,
    can_see_all_merch_orders,
    is_admin,
)

if TYPE_CHECKING:
    from modules.core.transactions import TransactionManager
    from modules.merch.dtos import FulfillOrderDTO, PlaceOrderDTO, VerifyOrderDTO
    from modules.merch.unit_of_work import MerchUnitOfWork
    from modules.notifications.dispatcher import INotificationDispatcher
    from modules.users.models import User

logger = structlog.get_logger(__name__)


class MerchOrderService:
    """Application service for merch order use-cases.

    Receives its transaction manager and notification dispatcher via
    constructor injection.  Commands return output DTOs built inside the
    transaction from rows it already loaded.
    """

    def __init__(
        self,
        transactions: TransactionManager[MerchUnitOfWork],
        notifier: INotificationDispatcher,
    ) -> None:
        self._transactions = transactions
        self._notifier = notifier

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def verify_order(self, dto: VerifyOrderDTO, user: User) -> None:
        """Run the placement checks without placing anything.

        Raises:
            See ``OrderValidator.validate``.
        """
        with self._transactions.read_only() as uow:
            OrderValidator(uow).validate(user, dto.lines, dto.pickup_event_id)

    def place_order(self, dto: PlaceOrderDTO, user: User) -> OrderOutputDTO:
        """Validate and place an order.

        Steps:
        1. Validate lines, limits, stock, pickup event and credits.
        2. Decrement each option's stock by the ordered quantity.
        3. Create the order (PLACED) and one item per unit with price and
           discount snapshotted from the option.
        4. Deduct the total from the member's credits.
        5. Log ORDER_PLACED; email a confirmation after commit.

        Raises:
            See ``OrderValidator.validate``.
        """
        log = logger.bind(
            user_id=str(user.pk), pickup_event_id=str(dto.pickup_event_id)
        )
        log.info("merch.order_placement_started")

        with self._transactions.read_write() as uow:
            validated = OrderValidator(uow).validate(user, dto.lines, dto.pickup_event_id)
            customer = validated.user

            order = uow.orders.upsert(
                Order(
                    user=customer,
                    pickup_event=validated.pickup_event,
                    total_cost=validated.total_cost,
                    status=OrderStatus.PLACED,
                    ordered_at=timezone.now(),
                )
            )

            units: List[OrderItem] = []
            for line in dto.lines:
                option = validated.options[line.option_id]
                uow.options.upsert(option, {"quantity": option.quantity - line.quantity})
                log.info(
                    "merch.stock_reserved",
                    option_id=str(option.id),
                    quantity=line.quantity,
                    remaining=option.quantity,
                )
                units.extend(
                    OrderItem(
                        order=order,
                        option=option,
                        sale_price_at_purchase=option.effective_price,
                        discount_percentage_at_purchase=option.discount_percentage,
                    )
                    for _ in range(line.quantity)
                )
            items = uow.order_items.create_many(units)

            uow.users.upsert(customer, {"credits": customer.credits - order.total_cost})
            uow.activities.log_activity(
                customer, ActivityType.ORDER_PLACED, description=f"Order {order.id}"
            )

            send_after_commit(
                uow.using,
                self._notifier.send_order_confirmation,
                customer.email,
                customer.first_name,
                build_order_info(order, items, validated.pickup_event),
            )
            log.info(
                "merch.order_placed",
                order_id=str(order.id),
                total_cost=order.total_cost,
                unit_count=len(items),
            )
            return OrderOutputDTO.from_entity(order, items, validated.pickup_event)

    def fulfill_order_items(self, dto: FulfillOrderDTO, actor: User) -> OrderOutputDTO:
        """Hand out some or all of an order's pending items.

        Items not named in ``dto`` are left untouched.  The order becomes
        FULFILLED once every item is fulfilled, PARTIALLY_FULFILLED
        otherwise.

        Raises:
            MerchPermissionDenied: actor cannot manage merch orders.
            OrderNotFound: order does not exist.
            InvalidOrderStatus: order is not PLACED or PARTIALLY_FULFILLED.
            PickupEventNotStarted: the order's pickup event has not started.
            OrderItemNotFound: an item is not part of the order.
            ItemAlreadyFulfilled: an item was fulfilled before.
        """
        if not can_manage_merch_orders(actor):
            raise MerchPermissionDenied("You are not allowed to fulfill merch orders")

        now = timezone.now()
        with self._transactions.read_write() as uow:
            order = self._get_order(uow, dto.order_id)
            log = logger.bind(order_id=str(order.id), actor_id=str(actor.pk))

            if order.status not in FULFILLABLE_STATES:
                raise InvalidOrderStatus(
                    "This order is not able to be fulfilled. Order state must be "
                    f"PLACED or PARTIALLY_FULFILLED, is {order.status}"
                )
            pickup_event = order.pickup_event
            if pickup_event is None or not pickup_event.has_started(now):
                raise PickupEventNotStarted(
                    "Cannot fulfill items of an order that has a pickup event "
                    "that hasn't started yet"
                )

            items = uow.order_items.list_for_order(order.id)
            by_id = {item.id: item for item in items}
            unknown = [u.item_id for u in dto.items if u.item_id not in by_id]
            if unknown:
                raise OrderItemNotFound(
                    f"The following items are not part of order {order.id}: "
                    + ", ".join(str(i) for i in unknown)
                )
            if any(by_id[u.item_id].fulfilled for u in dto.items):
                raise ItemAlreadyFulfilled(
                    "At least one order item marked to be fulfilled has already been fulfilled"
                )

            for update in dto.items:
                changes: Dict[str, Any] = {"fulfilled": True, "fulfilled_at": now}
                if update.notes is not None:
                    changes["notes"] = update.notes
                uow.order_items.upsert(by_id[update.item_id], changes)

            customer = order.user
            if all(item.fulfilled for item in items):
                self._transition(uow, order, OrderStatus.FULFILLED)
                uow.activities.log_activity(
                    customer,
                    ActivityType.ORDER_FULFILLED,
                    description=f"Order {order.id} fulfilled by {actor}",
                )
                send_after_commit(
                    uow.using,
                    self._notifier.send_order_fulfillment,
                    customer.email,
                    customer.first_name,
                    build_order_info(order, items, pickup_event),
                )
            else:
                self._transition(uow, order, OrderStatus.PARTIALLY_FULFILLED)
                uow.activities.log_activity(
                    customer,
                    ActivityType.ORDER_PARTIALLY_FULFILLED,
                    description=f"Order {order.id} partially fulfilled by {actor}",
                )
                send_after_commit(
                    uow.using,
                    self._notifier.send_partial_order_fulfillment,
                    customer.email,
                    customer.first_name,
                    build_partial_fulfillment_info(order, items, pickup_event),
                )

            log.info(
                "merch.order_items_fulfilled",
                fulfilled=len(dto.items),
                status=order.status,
            )
            return OrderOutputDTO.from_entity(order, items, pickup_event)

    def cancel_merch_order(self, order_id: UUID, actor: User) -> OrderOutputDTO:
        """Cancel an order, restocking and refunding its unfulfilled items.

        Fulfilled items are neither restocked nor refunded.

        Raises:
            OrderNotFound: order does not exist.
            NotOrderOwner: actor is neither the owner nor an admin.
            InactiveOrder: order is already fulfilled or cancelled.
            PickupEventTooSoon: a PLACED order's pickup is less than 2 days away.
        """
        now = timezone.now()
        with self._transactions.read_write() as uow:
            order = self._get_order(uow, order_id)
            log = logger.bind(order_id=str(order.id), actor_id=str(actor.pk))

            if order.user_id != actor.pk and not is_admin(actor):
                raise NotOrderOwner("Members cannot cancel other members' orders")
            if order.is_terminal:
                raise InactiveOrder("Cannot cancel an inactive order")
            if (
                order.status == OrderStatus.PLACED
                and order.pickup_event is not None
                and starts_within_lead_time(order.pickup_event, now)
            ):
                raise PickupEventTooSoon(
                    "Cannot cancel an order with a pickup date less than 2 days away"
                )

            items = uow.order_items.list_for_order(order.id)
            owner, refunded = self._refund_and_restock(uow, order, items)
            self._transition(uow, order, OrderStatus.CANCELLED)
            uow.activities.log_activity(
                actor,
                ActivityType.ORDER_CANCELLED,
                description=f"Order {order.id} cancelled and refunded to {owner} by {actor}",
            )
            send_after_commit(
                uow.using,
                self._notifier.send_order_cancellation,
                owner.email,
                owner.first_name,
                build_order_info(order, refunded, order.pickup_event),
            )
            log.info("merch.order_cancelled", refunded_units=len(refunded))
            return OrderOutputDTO.from_entity(order, items, order.pickup_event)

    def reschedule_order_pickup(
        self, order_id: UUID, pickup_event_id: UUID, user: User
    ) -> OrderOutputDTO:
        """Move an order to another pickup event and put it back to PLACED.

        The 2-day rule on the *current* event only applies to PLACED
        orders; missed or pickup-cancelled orders have no upcoming event.

        Raises:
            OrderNotFound: order does not exist.
            NotOrderOwner: user did not place the order.
            InactiveOrder: order is already fulfilled or cancelled.
            InvalidOrderStatus: order is partially fulfilled.
            PickupEventTooSoon: current or new event is less than 2 days away.
            PickupEventNotFound, PickupEventNotActive, PickupEventFull:
                the new event cannot take the order.
        """
        now = timezone.now()
        with self._transactions.read_write() as uow:
            order = self._get_order(uow, order_id)
            log = logger.bind(order_id=str(order.id), pickup_event_id=str(pickup_event_id))

            if order.user_id != user.pk:
                raise NotOrderOwner("Cannot edit the order of a different user")
            if order.is_terminal:
                raise InactiveOrder("Cannot modify pickup for inactive orders")
            if order.status != OrderStatus.PLACED and not order.can_transition_to(
                OrderStatus.PLACED
            ):
                raise InvalidOrderStatus(
                    f"Cannot reschedule the pickup of an order that is {order.status}"
                )
            if (
                order.status == OrderStatus.PLACED
                and order.pickup_event is not None
                and starts_within_lead_time(order.pickup_event, now)
            ):
                raise PickupEventTooSoon(
                    "Cannot reschedule an order pickup within 2 days of the event"
                )

            new_event = ensure_pickup_event_open(
                uow,
                pickup_event_id,
                now,
                too_soon_message=(
                    "Cannot change order pickup to an event that starts in less than 2 days"
                ),
            )
            self._transition(uow, order, OrderStatus.PLACED, pickup_event=new_event)

            items = uow.order_items.list_for_order(order.id)
            customer = order.user
            send_after_commit(
                uow.using,
                self._notifier.send_order_pickup_updated,
                customer.email,
                customer.first_name,
                build_order_info(order, items, new_event),
            )
            log.info("merch.order_rescheduled")
            return OrderOutputDTO.from_entity(order, items, new_event)

    def mark_order_as_missed(self, order_id: UUID, actor: User) -> OrderOutputDTO:
        """Mark a PLACED order whose pickup has started as missed.

        Raises:
            MerchPermissionDenied: actor cannot manage merch orders.
            OrderNotFound: order does not exist.
            InvalidOrderStatus: order is not PLACED.
            PickupEventNotStarted: the pickup event has not started.
        """
        if not can_manage_merch_orders(actor):
            raise MerchPermissionDenied("You are not allowed to mark orders as missed")

        now = timezone.now()
        with self._transactions.read_write() as uow:
            order = self._get_order(uow, order_id)
            if order.status != OrderStatus.PLACED:
                raise InvalidOrderStatus(
                    "Cannot mark an order as missed if it's already been "
                    "cancelled, missed, or fulfilled"
                )
            pickup_event = order.pickup_event
            if pickup_event is None or not pickup_event.has_started(now):
                raise PickupEventNotStarted(
                    "Cannot mark an order as missed if its pickup event hasn't started yet"
                )

            self._transition(uow, order, OrderStatus.PICKUP_MISSED)
            customer = order.user
            uow.activities.log_activity(
                customer,
                ActivityType.ORDER_MISSED,
                description=f"Order {order.id} pickup missed",
            )
            items = uow.order_items.list_for_order(order.id)
            send_after_commit(
                uow.using,
                self._notifier.send_order_pickup_missed,
                customer.email,
                customer.first_name,
                build_order_info(order, items, pickup_event),
            )
            logger.info("merch.order_missed", order_id=str(order.id), actor_id=str(actor.pk))
            return OrderOutputDTO.from_entity(order, items, pickup_event)

    def cancel_all_pending_orders(self, actor: User) -> List[OrderSummaryDTO]:
        """Cancel and refund every order stuck in a pending status.

        Raises:
            MerchPermissionDenied: actor is not an admin or store manager.
        """
        if not can_cancel_all_pending_orders(actor):
            raise MerchPermissionDenied("You are not allowed to cancel all pending orders")

        with self._transactions.read_write() as uow:
            orders = uow.orders.list_all(PENDING_ORDER_STATUSES)
            items_by_order: Dict[UUID, List[OrderItem]] = defaultdict(list)
            for item in uow.order_items.list_for_orders(o.id for o in orders):
                items_by_order[item.order_id].append(item)

            for order in orders:
                owner, refunded = self._refund_and_restock(
                    uow, order, items_by_order[order.id]
                )
                self._transition(uow, order, OrderStatus.CANCELLED)
                send_after_commit(
                    uow.using,
                    self._notifier.send_automated_order_cancellation,
                    owner.email,
                    owner.first_name,
                    build_order_info(order, refunded, order.pickup_event),
                )

            uow.activities.log_activity(
                actor,
                ActivityType.PENDING_ORDERS_CANCELLED,
                description=f"{len(orders)} pending orders cancelled by {actor}",
            )
            logger.info(
                "merch.pending_orders_cancelled",
                actor_id=str(actor.pk),
                count=len(orders),
            )
            return [OrderSummaryDTO.from_entity(order) for order in orders]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: UUID | str, viewer: User) -> OrderOutputDTO:
        """Retrieve one order.

        Members only see their own orders; merch staff see every order.

        Raises:
            OrderNotFound: order does not exist or is not visible to ``viewer``.
        """
        with self._transactions.read_only() as uow:
            order = uow.orders.get_by_id(order_id)
            if order is None or (
                order.user_id != viewer.pk and not can_see_all_merch_orders(viewer)
            ):
                raise OrderNotFound("Order not found")
            items = uow.order_items.list_for_order(order.id)
            return OrderOutputDTO.from_entity(order, items, order.pickup_event)

    def get_orders_for_user(self, user: User) -> List[OrderSummaryDTO]:
        with self._transactions.read_only() as uow:
            return [
                OrderSummaryDTO.from_entity(order)
                for order in uow.orders.list_for_user(user.pk)
            ]

    def get_all_orders(
        self, actor: User, statuses: Iterable[str] = ()
    ) -> List[OrderSummaryDTO]:
        """Every order, optionally restricted to ``statuses``.

        Raises:
            MerchPermissionDenied: actor cannot see all merch orders.
        """
        if not can_see_all_merch_orders(actor):
            raise MerchPermissionDenied("You are not allowed to see all merch orders")
        with self._transactions.read_only() as uow:
            return [
                OrderSummaryDTO.from_entity(order)
                for order in uow.orders.list_all(statuses)
            ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _get_order(uow: MerchUnitOfWork, order_id: UUID | str) -> Order:
        order = uow.orders.get_by_id(order_id)
        if order is None:
            raise OrderNotFound("Order not found")
        return order

    @staticmethod
    def _transition(
        uow: MerchUnitOfWork, order: Order, new_status: str, **changes: Any
    ) -> None:
        """Persist a status change validated against the state machine.

        Staying in the same status (a second partial fulfillment, a
        reschedule of a PLACED order) is not a transition and is allowed.
        """
        old_status = order.status
        if new_status != old_status and not order.can_transition_to(new_status):
            logger.warning(
                "merch.invalid_transition",
                order_id=str(order.id),
                current_status=old_status,
                new_status=new_status,
            )
            raise InvalidOrderStatus(f"Cannot transition from {old_status} to {new_status}.")
        uow.orders.upsert(order, {"status": new_status, **changes})
        logger.info(
            "merch.order_status_changed",
            order_id=str(order.id),
            old_status=old_status,
            new_status=new_status,
        )

    @staticmethod
    def _refund_and_restock(
        uow: MerchUnitOfWork, order: Order, items: List[OrderItem]
    ) -> Tuple[User, List[OrderItem]]:
        """Return unfulfilled units to stock and their price to the owner.

        Option and owner rows are re-read so several orders touching the
        same option or member in one transaction accumulate correctly.
        """
        refunded = [item for item in items if not item.fulfilled]
        per_option = Counter(item.option_id for item in refunded)
        options = uow.options.batch_find_by_ids(per_option.keys())
        for option_id, count in per_option.items():
            option = options[option_id]
            uow.options.upsert(option, {"quantity": option.quantity + count})

        owner = uow.users.get_by_id(order.user_id)
        refund = sum(item.sale_price_at_purchase for item in refunded)
        if refund:
            uow.users.upsert(owner, {"credits": owner.credits + refund})
        logger.info(
            "merch.order_refunded",
            order_id=str(order.id),
            refund=refund,
            restocked=len(refunded),
        )
        return owner, refunded
