"""Pickup event manager.

Owns the capacity-bounded events orders are collected at, and the
cascades their lifecycle triggers on orders:

- cancelling an ACTIVE event moves its open orders to PICKUP_CANCELLED
  and detaches them, then queues an email to every affected member;
- completing a started ACTIVE event marks its PLACED orders as
  PICKUP_MISSED (partially fulfilled orders are left alone).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List
from uuid import UUID

import structlog
from django.utils import timezone

from modules.merch.constants import OrderPickupEventStatus, OrderStatus
from modules.merch.dtos import OrderSummaryDTO, PickupEventAdminDTO, PickupEventPublicDTO
from modules.merch.exceptions import (
    InvalidPickupEventTimes,
    LinkedEventNotFound,
    OrderLimitBelowBooked,
    PickupEventHasOrders,
    PickupEventNotActive,
    PickupEventNotFound,
    PickupEventNotStarted,
    PickupEventTooSoon,
)
from modules.merch.models import OrderPickupEvent
from modules.merch.payloads import build_order_info
from modules.merch.rules import starts_within_lead_time
from modules.notifications import tasks as notification_tasks
from modules.notifications.dispatch import queue_after_commit, send_after_commit
from modules.users.constants import ActivityType

if TYPE_CHECKING:
    from modules.core.transactions import TransactionManager
    from modules.events.models import Event
    from modules.merch.dtos import PickupEventDTO, PickupEventEditDTO
    from modules.merch.models import Order, OrderItem
    from modules.merch.unit_of_work import MerchUnitOfWork
    from modules.notifications.dispatcher import INotificationDispatcher

logger = structlog.get_logger(__name__)


class PickupEventService:
    """Application service for pickup event use-cases."""

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

    def create_pickup_event(self, dto: PickupEventDTO) -> PickupEventAdminDTO:
        """Raises:
        InvalidPickupEventTimes: start is not before end.
        PickupEventTooSoon: start is less than 2 days away.
        LinkedEventNotFound: the linked calendar event does not exist.
        """
        if dto.start >= dto.end:
            raise InvalidPickupEventTimes(
                "Order pickup event start time must come before the end time"
            )
        with self._transactions.read_write() as uow:
            pickup_event = OrderPickupEvent(
                title=dto.title,
                description=dto.description,
                location=dto.location,
                start=dto.start,
                end=dto.end,
                order_limit=dto.order_limit,
                status=OrderPickupEventStatus.ACTIVE,
            )
            if starts_within_lead_time(pickup_event, timezone.now()):
                raise PickupEventTooSoon(
                    "Cannot create a pickup event that starts in less than 2 days"
                )
            if dto.linked_event_id is not None:
                pickup_event.linked_event = self._get_linked_event(uow, dto.linked_event_id)
            uow.pickup_events.upsert(pickup_event)
            logger.info("merch.pickup_event_created", pickup_event_id=str(pickup_event.id))
            return PickupEventAdminDTO.from_entity(pickup_event)

    def edit_pickup_event(
        self, pickup_event_id: UUID, dto: PickupEventEditDTO
    ) -> PickupEventAdminDTO:
        """Apply the fields set on ``dto``.

        Raises:
            PickupEventNotFound: event does not exist.
            InvalidPickupEventTimes: merged start is not before merged end.
            OrderLimitBelowBooked: new limit is below the active order count.
            LinkedEventNotFound: the new linked calendar event does not exist.
        """
        with self._transactions.read_write() as uow:
            pickup_event = self._get_pickup_event(uow, pickup_event_id)
            changes = {
                field: value
                for field, value in dto.model_dump(exclude_unset=True).items()
                if value is not None or field == "linked_event_id"
            }

            if "linked_event_id" in changes:
                linked_event_id = changes.pop("linked_event_id")
                changes["linked_event"] = (
                    self._get_linked_event(uow, linked_event_id)
                    if linked_event_id is not None
                    else None
                )

            start = changes.get("start", pickup_event.start)
            end = changes.get("end", pickup_event.end)
            if start >= end:
                raise InvalidPickupEventTimes(
                    "Order pickup event start time must come before the end time"
                )

            orders = uow.orders.list_for_pickup_event(pickup_event.id)
            if "order_limit" in changes:
                active = sum(1 for o in orders if o.status != OrderStatus.CANCELLED)
                if changes["order_limit"] < active:
                    raise OrderLimitBelowBooked(
                        "Pickup event cannot have order limit lower than the number "
                        "of orders booked in it"
                    )

            if changes:
                uow.pickup_events.upsert(pickup_event, changes)
            logger.info(
                "merch.pickup_event_edited",
                pickup_event_id=str(pickup_event.id),
                fields=sorted(changes),
            )
            return PickupEventAdminDTO.from_entity(pickup_event, orders)

    def delete_pickup_event(self, pickup_event_id: UUID) -> None:
        """Raises:
        PickupEventNotFound: event does not exist.
        PickupEventHasOrders: some order (of any status) references the event.
        """
        with self._transactions.read_write() as uow:
            pickup_event = self._get_pickup_event(uow, pickup_event_id)
            if uow.orders.exists_for_pickup_event(pickup_event.id):
                raise PickupEventHasOrders(
                    "Cannot delete a pickup event that has order pickups scheduled for it"
                )
            uow.pickup_events.delete(pickup_event)
            logger.info("merch.pickup_event_deleted", pickup_event_id=str(pickup_event_id))

    def cancel_pickup_event(self, pickup_event_id: UUID) -> PickupEventAdminDTO:
        """Cancel an ACTIVE event and release its open orders.

        Orders that may move to PICKUP_CANCELLED are moved and detached;
        one email per owner is queued after commit.  Fulfilled,
        cancelled and missed orders keep their status and reference.

        Raises:
            PickupEventNotFound: event does not exist.
            PickupEventNotActive: event is already completed or cancelled.
        """
        with self._transactions.read_write() as uow:
            pickup_event = self._get_pickup_event(uow, pickup_event_id)
            if not pickup_event.is_active:
                raise PickupEventNotActive(
                    "Cannot cancel a pickup event that isn't currently active"
                )

            orders = uow.orders.list_for_pickup_event(pickup_event.id)
            affected = [
                o for o in orders if o.can_transition_to(OrderStatus.PICKUP_CANCELLED)
            ]
            items_by_order = self._items_by_order(uow, affected)

            notices = []
            for order in affected:
                notices.append(
                    (
                        order.user.email,
                        order.user.first_name,
                        build_order_info(
                            order, items_by_order.get(order.id, []), pickup_event
                        ).model_dump(mode="json"),
                    )
                )
                uow.orders.upsert(
                    order, {"status": OrderStatus.PICKUP_CANCELLED, "pickup_event": None}
                )

            uow.pickup_events.upsert(pickup_event, {"status": OrderPickupEventStatus.CANCELLED})
            queue_after_commit(
                uow.using, notification_tasks.send_order_pickup_cancelled, notices
            )
            logger.info(
                "merch.pickup_event_cancelled",
                pickup_event_id=str(pickup_event.id),
                affected_orders=len(affected),
            )
            remaining = [o for o in orders if o not in affected]
            return PickupEventAdminDTO.from_entity(pickup_event, remaining)

    def complete_pickup_event(self, pickup_event_id: UUID) -> List[OrderSummaryDTO]:
        """Close a started event, marking untouched orders as missed.

        Returns the orders that were marked PICKUP_MISSED.

        Raises:
            PickupEventNotFound: event does not exist.
            PickupEventNotActive: event is already completed or cancelled.
            PickupEventNotStarted: event has not started yet.
        """
        with self._transactions.read_write() as uow:
            pickup_event = self._get_pickup_event(uow, pickup_event_id)
            if not pickup_event.is_active:
                raise PickupEventNotActive(
                    "Cannot complete a pickup event that isn't currently active"
                )
            if not pickup_event.has_started():
                raise PickupEventNotStarted(
                    "Cannot complete a pickup event that hasn't happened yet"
                )

            orders = uow.orders.list_for_pickup_event(pickup_event.id)
            missed = [o for o in orders if o.status == OrderStatus.PLACED]
            items_by_order = self._items_by_order(uow, missed)

            for order in missed:
                uow.orders.upsert(order, {"status": OrderStatus.PICKUP_MISSED})
                send_after_commit(
                    uow.using,
                    self._notifier.send_order_pickup_missed,
                    order.user.email,
                    order.user.first_name,
                    build_order_info(order, items_by_order.get(order.id, []), pickup_event),
                )
            uow.activities.log_activity_batch(
                (order.user, ActivityType.ORDER_MISSED, f"Order {order.id} pickup missed")
                for order in missed
            )
            uow.pickup_events.upsert(pickup_event, {"status": OrderPickupEventStatus.COMPLETED})
            logger.info(
                "merch.pickup_event_completed",
                pickup_event_id=str(pickup_event.id),
                missed_orders=len(missed),
            )
            return [OrderSummaryDTO.from_entity(order) for order in missed]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_pickup_event(self, pickup_event_id: UUID | str) -> PickupEventAdminDTO:
        """Raises:
        PickupEventNotFound: event does not exist.
        """
        with self._transactions.read_only() as uow:
            pickup_event = self._get_pickup_event(uow, pickup_event_id)
            orders = uow.orders.list_for_pickup_event(pickup_event.id)
            return PickupEventAdminDTO.from_entity(pickup_event, orders)

    def get_future_pickup_events(self) -> List[PickupEventPublicDTO]:
        with self._transactions.read_only() as uow:
            return [
                PickupEventPublicDTO.from_entity(event)
                for event in uow.pickup_events.list_future(timezone.now())
            ]

    def get_past_pickup_events(self) -> List[PickupEventPublicDTO]:
        with self._transactions.read_only() as uow:
            return [
                PickupEventPublicDTO.from_entity(event)
                for event in uow.pickup_events.list_past(timezone.now())
            ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _get_pickup_event(
        uow: MerchUnitOfWork, pickup_event_id: UUID | str
    ) -> OrderPickupEvent:
        pickup_event = uow.pickup_events.get_by_id(pickup_event_id)
        if pickup_event is None:
            raise PickupEventNotFound("Order pickup event not found")
        return pickup_event

    @staticmethod
    def _get_linked_event(uow: MerchUnitOfWork, event_id: UUID) -> Event:
        event = uow.events.get_by_id(event_id)
        if event is None:
            raise LinkedEventNotFound("Linked event not found!")
        return event

    @staticmethod
    def _items_by_order(
        uow: MerchUnitOfWork, orders: List[Order]
    ) -> Dict[UUID, List[OrderItem]]:
        grouped: Dict[UUID, List[OrderItem]] = {}
        for item in uow.order_items.list_for_orders(o.id for o in orders):
            grouped.setdefault(item.order_id, []).append(item)
        return grouped
