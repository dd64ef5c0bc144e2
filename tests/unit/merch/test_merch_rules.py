"""Unit tests for the pure merch rules (pricing, limits, lead time)."""

from __future__ import annotations

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from uuid import uuid4

import pytest

from modules.merch.constants import OrderStatus
from modules.merch.models import (
    MerchItemOption,
    Order,
    OrderItem,
    OrderPickupEvent,
    compute_effective_price,
)
from modules.merch.rules import (
    PurchaseCounts,
    count_purchases,
    is_full,
    remaining_allowance,
    starts_within_lead_time,
)

pytestmark = pytest.mark.unit

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=dt_timezone.utc)


def _unit(item_id, status=OrderStatus.PLACED, days_ago=0, fulfilled=False) -> OrderItem:
    order = Order(status=status, ordered_at=NOW - timedelta(days=days_ago), total_cost=0)
    option = MerchItemOption(item_id=item_id, price=100)
    return OrderItem(order=order, option=option, sale_price_at_purchase=100, fulfilled=fulfilled)


class TestEffectivePrice:
    @pytest.mark.parametrize(
        "price,discount,expected",
        [
            (1000, 0, 1000),
            (1000, 25, 750),
            (999, 15, 849),
            (5, 10, 5),
            (15, 10, 14),
            (1200, 100, 0),
        ],
    )
    def test_rounds_half_up(self, price, discount, expected):
        assert compute_effective_price(price, discount) == expected


class TestCountPurchases:
    def test_lifetime_and_monthly(self):
        item = uuid4()
        history = [_unit(item, days_ago=1), _unit(item, days_ago=29), _unit(item, days_ago=31)]

        assert count_purchases(history, NOW)[item] == PurchaseCounts(lifetime=3, monthly=2)

    def test_cancelled_unfulfilled_ignored(self):
        item = uuid4()
        history = [_unit(item, status=OrderStatus.CANCELLED)]

        assert count_purchases(history, NOW) == {}

    def test_cancelled_but_fulfilled_counts(self):
        item = uuid4()
        history = [_unit(item, status=OrderStatus.CANCELLED, fulfilled=True)]

        assert count_purchases(history, NOW)[item] == PurchaseCounts(lifetime=1, monthly=1)

    def test_missed_orders_count(self):
        item = uuid4()
        history = [_unit(item, status=OrderStatus.PICKUP_MISSED)]

        assert count_purchases(history, NOW)[item].lifetime == 1


class TestRemainingAllowance:
    def test_unlimited(self):
        assert remaining_allowance(None, 5) is None

    def test_never_negative(self):
        assert remaining_allowance(2, 5) == 0

    def test_remaining(self):
        assert remaining_allowance(5, 2) == 3


class TestLeadTimeAndCapacity:
    def _event(self, start):
        return OrderPickupEvent(start=start, end=start + timedelta(hours=2), order_limit=1)

    def test_exactly_two_days_is_not_too_soon(self):
        assert not starts_within_lead_time(self._event(NOW + timedelta(days=2)), NOW)

    def test_just_under_two_days_is_too_soon(self):
        event = self._event(NOW + timedelta(days=2) - timedelta(seconds=1))
        assert starts_within_lead_time(event, NOW)

    def test_is_full(self):
        assert is_full(3, 3)
        assert not is_full(2, 3)
