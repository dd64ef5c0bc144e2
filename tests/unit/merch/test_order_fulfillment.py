"""Unit tests for ``MerchOrderService.fulfill_order_items``.

Covers:
- Full and partial fulfillment, including a follow-up partial pass.
- Permission, status and pickup-started checks.
- Unknown and already-fulfilled items leave the order untouched.
- Activity and email per outcome.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from django.core import mail

from modules.core.exceptions import Forbidden
from modules.merch.constants import OrderStatus
from modules.merch.dtos import FulfillOrderDTO
from modules.merch.exceptions import (
    InvalidOrderStatus,
    ItemAlreadyFulfilled,
    MerchPermissionDenied,
    OrderItemNotFound,
    PickupEventNotStarted,
)
from modules.merch.models import Order, OrderItem
from modules.users.constants import ActivityType
from modules.users.models import Activity

pytestmark = pytest.mark.unit


@pytest.fixture()
def placed_order(place, member, option, pickup_event):
    return place(member, option, pickup_event, quantity=3)


@pytest.fixture()
def started_order(placed_order, pickup_event, start_pickup):
    start_pickup(pickup_event)
    return placed_order


# ===========================================================================
# Full fulfillment
# ===========================================================================


class TestFullFulfillment:
    def test_all_items_fulfills_order(self, fulfill, started_order, distributor):
        result = fulfill(started_order, distributor, [i.id for i in started_order.items])

        assert result.status == OrderStatus.FULFILLED
        assert all(item.fulfilled for item in result.items)
        assert all(item.fulfilled_at is not None for item in result.items)

    def test_notes_are_saved(self, order_service, started_order, distributor):
        first, *rest = started_order.items
        dto = FulfillOrderDTO(
            order_id=started_order.id,
            items=[{"item_id": first.id, "notes": "Picked up by roommate"}]
            + [{"item_id": item.id} for item in rest],
        )

        order_service.fulfill_order_items(dto, distributor)

        assert OrderItem.objects.get(pk=first.id).notes == "Picked up by roommate"

    def test_activity_and_email(
        self, fulfill, started_order, distributor, member, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            fulfill(started_order, distributor, [i.id for i in started_order.items])

        assert Activity.objects.filter(user=member, type=ActivityType.ORDER_FULFILLED).exists()
        assert [m.subject for m in mail.outbox] == [
            "ACM UCSD Merch Store - Order Fulfilled"
        ]

    def test_fulfillment_does_not_change_credits_or_stock(
        self, fulfill, started_order, distributor, member, option
    ):
        member.refresh_from_db()
        option.refresh_from_db()
        credits, stock = member.credits, option.quantity

        fulfill(started_order, distributor, [i.id for i in started_order.items])

        member.refresh_from_db()
        option.refresh_from_db()
        assert (member.credits, option.quantity) == (credits, stock)


# ===========================================================================
# Partial fulfillment
# ===========================================================================


class TestPartialFulfillment:
    def test_subset_partially_fulfills(self, fulfill, started_order, distributor):
        result = fulfill(started_order, distributor, [started_order.items[0].id])

        assert result.status == OrderStatus.PARTIALLY_FULFILLED
        assert sum(item.fulfilled for item in result.items) == 1

    def test_second_pass_completes_order(self, fulfill, started_order, distributor):
        fulfill(started_order, distributor, [started_order.items[0].id])
        second = fulfill(started_order, distributor, [i.id for i in started_order.items[1:]])

        assert second.status == OrderStatus.FULFILLED

    def test_second_partial_pass_keeps_status(self, fulfill, started_order, distributor):
        fulfill(started_order, distributor, [started_order.items[0].id])
        second = fulfill(started_order, distributor, [started_order.items[1].id])

        assert second.status == OrderStatus.PARTIALLY_FULFILLED

    def test_partial_email_lists_both_sides(
        self, fulfill, started_order, distributor, member, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            fulfill(started_order, distributor, [started_order.items[0].id])

        assert Activity.objects.filter(
            user=member, type=ActivityType.ORDER_PARTIALLY_FULFILLED
        ).exists()
        assert mail.outbox[0].subject == "ACM UCSD Merch Store - Order Partially Fulfilled"


# ===========================================================================
# Rejections
# ===========================================================================


class TestFulfillmentRejections:
    def test_member_cannot_fulfill(self, fulfill, started_order, other_member):
        with pytest.raises(MerchPermissionDenied) as exc_info:
            fulfill(started_order, other_member, [started_order.items[0].id])
        assert isinstance(exc_info.value, Forbidden)

    def test_pickup_not_started(self, fulfill, placed_order, distributor):
        with pytest.raises(PickupEventNotStarted):
            fulfill(placed_order, distributor, [placed_order.items[0].id])

    def test_cancelled_order(
        self, order_service, fulfill, placed_order, member, distributor,
        pickup_event, start_pickup,
    ):
        order_service.cancel_merch_order(placed_order.id, member)
        start_pickup(pickup_event)

        with pytest.raises(InvalidOrderStatus) as exc_info:
            fulfill(placed_order, distributor, [placed_order.items[0].id])

        assert "PLACED or PARTIALLY_FULFILLED" in str(exc_info.value)

    def test_unknown_item(self, fulfill, started_order, distributor):
        with pytest.raises(OrderItemNotFound):
            fulfill(started_order, distributor, [started_order.items[0].id, uuid4()])

        assert not OrderItem.objects.filter(order_id=started_order.id, fulfilled=True).exists()

    def test_item_of_another_order(
        self, fulfill, place, placed_order, other_member, option, pickup_event,
        start_pickup, distributor,
    ):
        other = place(other_member, option, pickup_event)
        start_pickup(pickup_event)

        with pytest.raises(OrderItemNotFound):
            fulfill(placed_order, distributor, [other.items[0].id])

    def test_already_fulfilled_item(self, fulfill, started_order, distributor):
        first = started_order.items[0].id
        fulfill(started_order, distributor, [first])

        with pytest.raises(ItemAlreadyFulfilled):
            fulfill(started_order, distributor, [first, started_order.items[1].id])

        assert not OrderItem.objects.get(pk=started_order.items[1].id).fulfilled
        assert Order.objects.get(pk=started_order.id).status == OrderStatus.PARTIALLY_FULFILLED
