from __future__ import annotations

import itertools
from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from modules.merch.catalog import MerchCatalogService
from modules.merch.constants import OrderPickupEventStatus
from modules.merch.dtos import FulfillOrderDTO, OrderLineDTO, PlaceOrderDTO
from modules.merch.models import (
    MerchCollection,
    MerchItem,
    MerchItemOption,
    OrderPickupEvent,
)
from modules.merch.pickup_events import PickupEventService
from modules.merch.services import MerchOrderService
from modules.merch.unit_of_work import merch_transactions
from modules.notifications.emails import EmailNotificationDispatcher
from modules.users.constants import UserAccessType, UserState
from modules.users.models import User


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_user():
    counter = itertools.count(1)

    def _make(
        access_type: str = UserAccessType.STANDARD,
        credits: int = 10_000,
        email: str | None = None,
        **extra,
    ) -> User:
        n = next(counter)
        extra.setdefault("state", UserState.ACTIVE)
        return User.objects.create_user(
            email or f"member{n}@ucsd.edu",
            password="testpass123",
            first_name=f"Member{n}",
            last_name="Tester",
            access_type=access_type,
            credits=credits,
            **extra,
        )

    return _make


@pytest.fixture()
def member(make_user):
    return make_user()


@pytest.fixture()
def other_member(make_user):
    return make_user()


@pytest.fixture()
def admin(make_user):
    return make_user(access_type=UserAccessType.ADMIN, email="admin@acmucsd.org")


@pytest.fixture()
def manager(make_user):
    return make_user(
        access_type=UserAccessType.MERCH_STORE_MANAGER, email="manager@acmucsd.org"
    )


@pytest.fixture()
def distributor(make_user):
    return make_user(
        access_type=UserAccessType.MERCH_STORE_DISTRIBUTOR, email="distributor@ucsd.edu"
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def collection():
    return MerchCollection.objects.create(title="Fall Collection")


@pytest.fixture()
def make_option(collection):
    def _make(
        price: int = 500,
        quantity: int = 10,
        discount_percentage: int = 0,
        item: MerchItem | None = None,
        metadata: dict | None = None,
        **item_fields,
    ) -> MerchItemOption:
        if item is None:
            item_fields.setdefault("name", "Sticker")
            item = MerchItem.objects.create(collection=collection, **item_fields)
        return MerchItemOption.objects.create(
            item=item,
            price=price,
            quantity=quantity,
            discount_percentage=discount_percentage,
            metadata=metadata,
        )

    return _make


@pytest.fixture()
def option(make_option):
    return make_option()


# ---------------------------------------------------------------------------
# Pickup events
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_pickup_event():
    def _make(
        days_ahead: float = 5,
        order_limit: int = 10,
        status: str = OrderPickupEventStatus.ACTIVE,
        title: str = "Merch Pickup",
    ) -> OrderPickupEvent:
        start = timezone.now() + timedelta(days=days_ahead)
        return OrderPickupEvent.objects.create(
            title=title,
            location="CSE Basement",
            start=start,
            end=start + timedelta(hours=2),
            order_limit=order_limit,
            status=status,
        )

    return _make


@pytest.fixture()
def pickup_event(make_pickup_event):
    return make_pickup_event()


@pytest.fixture()
def start_pickup():
    """Move a pickup event's start into the past."""

    def _start(event: OrderPickupEvent) -> None:
        OrderPickupEvent.objects.filter(pk=event.pk).update(
            start=timezone.now() - timedelta(minutes=5)
        )

    return _start


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_service():
    return MerchOrderService(
        transactions=merch_transactions(),
        notifier=EmailNotificationDispatcher(),
    )


@pytest.fixture()
def pickup_service():
    return PickupEventService(
        transactions=merch_transactions(),
        notifier=EmailNotificationDispatcher(),
    )


@pytest.fixture()
def catalog_service():
    return MerchCatalogService(transactions=merch_transactions())


@pytest.fixture()
def place(order_service):
    """Place an order of ``quantity`` units of one option."""

    def _place(user, option, pickup_event, quantity: int = 1):
        dto = PlaceOrderDTO(
            lines=[OrderLineDTO(option_id=option.id, quantity=quantity)],
            pickup_event_id=pickup_event.id,
        )
        return order_service.place_order(dto, user)

    return _place


@pytest.fixture()
def fulfill(order_service):
    """Fulfill the given item ids of an order as ``actor``."""

    def _fulfill(order, actor, item_ids):
        dto = FulfillOrderDTO(
            order_id=order.id,
            items=[{"item_id": item_id} for item_id in item_ids],
        )
        return order_service.fulfill_order_items(dto, actor)

    return _fulfill
