"""Unit tests for ``MerchOrderService.reschedule_order_pickup``."""

from __future__ import annotations

from uuid import uuid4

import pytest
from django.core import mail

from modules.merch.constants import OrderStatus
from modules.merch.exceptions import (
    InactiveOrder,
    InvalidOrderStatus,
    NotOrderOwner,
    PickupEventFull,
    PickupEventNotFound,
    PickupEventTooSoon,
)
from modules.merch.models import Order

pytestmark = pytest.mark.unit


@pytest.fixture()
def placed_order(place, member, option, pickup_event):
    return place(member, option, pickup_event)


@pytest.fixture()
def new_event(make_pickup_event):
    return make_pickup_event(days_ahead=10, title="Later Pickup")


class TestReschedule:
    def test_placed_order_moves_to_new_event(
        self, order_service, placed_order, member, new_event
    ):
        result = order_service.reschedule_order_pickup(placed_order.id, new_event.id, member)

        assert result.status == OrderStatus.PLACED
        assert result.pickup_event.id == new_event.id
        assert Order.objects.get(pk=placed_order.id).pickup_event_id == new_event.id

    def test_pickup_cancelled_order_is_placed_again(
        self, order_service, pickup_service, placed_order, member, pickup_event, new_event
    ):
        pickup_service.cancel_pickup_event(pickup_event.id)
        assert Order.objects.get(pk=placed_order.id).status == OrderStatus.PICKUP_CANCELLED

        result = order_service.reschedule_order_pickup(placed_order.id, new_event.id, member)

        assert result.status == OrderStatus.PLACED
        assert result.pickup_event.id == new_event.id

    def test_missed_order_is_placed_again(
        self, order_service, placed_order, member, distributor, pickup_event,
        start_pickup, new_event,
    ):
        start_pickup(pickup_event)
        order_service.mark_order_as_missed(placed_order.id, distributor)

        result = order_service.reschedule_order_pickup(placed_order.id, new_event.id, member)

        assert result.status == OrderStatus.PLACED

    def test_pickup_updated_email(
        self, order_service, placed_order, member, new_event,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            order_service.reschedule_order_pickup(placed_order.id, new_event.id, member)

        assert mail.outbox[0].subject == "ACM UCSD Merch Store - Order Pickup Event Updated"
        assert "Later Pickup" in mail.outbox[0].alternatives[0][0]


class TestRescheduleRejections:
    def test_only_owner_can_reschedule(
        self, order_service, placed_order, other_member, new_event
    ):
        with pytest.raises(NotOrderOwner):
            order_service.reschedule_order_pickup(placed_order.id, new_event.id, other_member)

    def test_new_event_too_soon(self, order_service, placed_order, member, make_pickup_event):
        soon = make_pickup_event(days_ahead=1)

        with pytest.raises(PickupEventTooSoon) as exc_info:
            order_service.reschedule_order_pickup(placed_order.id, soon.id, member)
        assert str(exc_info.value).startswith("Cannot change order pickup")

    def test_new_event_full(
        self, order_service, place, placed_order, member, other_member, option,
        make_pickup_event,
    ):
        full = make_pickup_event(days_ahead=10, order_limit=1)
        place(other_member, option, full)

        with pytest.raises(PickupEventFull):
            order_service.reschedule_order_pickup(placed_order.id, full.id, member)

    def test_unknown_event(self, order_service, placed_order, member):
        with pytest.raises(PickupEventNotFound):
            order_service.reschedule_order_pickup(placed_order.id, uuid4(), member)

    def test_cancelled_order(self, order_service, placed_order, member, new_event):
        order_service.cancel_merch_order(placed_order.id, member)

        with pytest.raises(InactiveOrder):
            order_service.reschedule_order_pickup(placed_order.id, new_event.id, member)

    def test_partially_fulfilled_order(
        self, order_service, place, fulfill, member, option, pickup_event,
        start_pickup, distributor, new_event,
    ):
        order = place(member, option, pickup_event, quantity=2)
        start_pickup(pickup_event)
        fulfill(order, distributor, [order.items[0].id])

        with pytest.raises(InvalidOrderStatus):
            order_service.reschedule_order_pickup(order.id, new_event.id, member)
