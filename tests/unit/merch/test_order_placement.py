"""Unit tests for ``MerchOrderService.place_order``.

Covers:
- Stock, credits and order rows after a successful placement.
- Price and discount snapshot on every unit.
- Activity log and confirmation email after commit.
- Failed validation leaves stock, credits and orders untouched.
"""

from __future__ import annotations

import pytest
from django.core import mail

from modules.merch.constants import OrderStatus
from modules.merch.dtos import OrderLineDTO, PlaceOrderDTO
from modules.merch.exceptions import InsufficientCredits
from modules.merch.models import Order, OrderItem
from modules.users.constants import ActivityType
from modules.users.models import Activity

pytestmark = pytest.mark.unit


# ===========================================================================
# Successful placement
# ===========================================================================


class TestPlaceOrder:
    def test_order_is_placed_with_one_row_per_unit(
        self, place, member, option, pickup_event
    ):
        order = place(member, option, pickup_event, quantity=3)

        assert order.status == OrderStatus.PLACED
        assert order.total_cost == 1500
        assert len(order.items) == 3
        assert order.pickup_event.id == pickup_event.id
        assert OrderItem.objects.filter(order_id=order.id).count() == 3

    def test_stock_is_decremented(self, place, member, option, pickup_event):
        place(member, option, pickup_event, quantity=4)

        option.refresh_from_db()
        assert option.quantity == 6

    def test_credits_are_deducted(self, place, member, option, pickup_event):
        place(member, option, pickup_event, quantity=2)

        member.refresh_from_db()
        assert member.credits == 10_000 - 1000

    def test_discounted_price_is_snapshotted(
        self, place, member, make_option, pickup_event
    ):
        discounted = make_option(price=1000, discount_percentage=25)

        order = place(member, discounted, pickup_event, quantity=2)

        assert order.total_cost == 1500
        for item in order.items:
            assert item.sale_price_at_purchase == 750
            assert item.discount_percentage_at_purchase == 25

    def test_snapshot_survives_price_change(self, place, member, option, pickup_event):
        order = place(member, option, pickup_event)

        option.price = 9999
        option.save()

        item = OrderItem.objects.get(order_id=order.id)
        assert item.sale_price_at_purchase == 500

    def test_multiple_lines(self, order_service, member, make_option, pickup_event):
        sticker = make_option(price=100, name="Sticker")
        shirt = make_option(price=1200, name="Shirt")
        dto = PlaceOrderDTO(
            lines=[
                OrderLineDTO(option_id=sticker.id, quantity=2),
                OrderLineDTO(option_id=shirt.id, quantity=1),
            ],
            pickup_event_id=pickup_event.id,
        )

        order = order_service.place_order(dto, member)

        assert order.total_cost == 1400
        assert sorted(i.item_name for i in order.items) == ["Shirt", "Sticker", "Sticker"]

    def test_activity_logged_for_customer(self, place, member, option, pickup_event):
        order = place(member, option, pickup_event)

        activity = Activity.objects.get(user=member, type=ActivityType.ORDER_PLACED)
        assert str(order.id) in activity.description


# ===========================================================================
# Notifications
# ===========================================================================


class TestPlacementEmail:
    def test_confirmation_sent_after_commit(
        self, place, member, option, pickup_event, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            place(member, option, pickup_event, quantity=2)

        assert len(callbacks) == 1
        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.subject == "ACM UCSD Merch Store - Order Confirmation"
        assert message.to == [member.email]
        assert "Sticker" in message.alternatives[0][0]

    def test_nothing_sent_before_commit(self, place, member, option, pickup_event):
        place(member, option, pickup_event)
        assert mail.outbox == []


# ===========================================================================
# Failed placement
# ===========================================================================


class TestFailedPlacement:
    def test_failed_validation_writes_nothing(
        self, place, make_user, option, pickup_event, django_capture_on_commit_callbacks
    ):
        poor = make_user(credits=100)

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(InsufficientCredits):
                place(poor, option, pickup_event, quantity=2)

        option.refresh_from_db()
        poor.refresh_from_db()
        assert option.quantity == 10
        assert poor.credits == 100
        assert not Order.objects.exists()
        assert callbacks == []
        assert mail.outbox == []
