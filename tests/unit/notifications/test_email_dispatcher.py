"""Unit tests for email notifications and after-commit delivery."""

from __future__ import annotations

import logging
from datetime import datetime, timezone as dt_timezone
from uuid import uuid4

import pytest
import structlog
from django.core import mail
from django.db import transaction

from modules.notifications.dispatch import queue_after_commit, send_after_commit, send_safely
from modules.notifications.emails import EmailNotificationDispatcher
from modules.notifications.payloads import (
    OrderInfo,
    OrderLineItemInfo,
    PartialFulfillmentInfo,
    PickupEventInfo,
    format_display_time,
)
from modules.notifications.tasks import send_order_pickup_cancelled

pytestmark = pytest.mark.unit


@pytest.fixture()
def dispatcher():
    return EmailNotificationDispatcher()


@pytest.fixture()
def pickup_info():
    return PickupEventInfo.build(
        title="Fall Pickup",
        start=datetime(2026, 10, 21, 22, 30, tzinfo=dt_timezone.utc),
        end=datetime(2026, 10, 22, 0, 30, tzinfo=dt_timezone.utc),
        location="CSE Basement",
    )


@pytest.fixture()
def order_info(pickup_info):
    return OrderInfo(
        order_id=uuid4(),
        items=[
            OrderLineItemInfo(
                item_name="Hoodie",
                variant="M",
                quantity_requested=2,
                sale_price=1500,
                total=3000,
            )
        ],
        total_cost=3000,
        pickup_event=pickup_info,
    )


def _html(message) -> str:
    return message.alternatives[0][0]


# ===========================================================================
# Payloads
# ===========================================================================


class TestDisplayTime:
    def test_formats_in_store_timezone(self):
        value = datetime(2026, 10, 21, 22, 30, tzinfo=dt_timezone.utc)
        assert format_display_time(value) == "October 21, 3:30 PM"

    def test_standard_time(self):
        value = datetime(2026, 12, 1, 18, 5, tzinfo=dt_timezone.utc)
        assert format_display_time(value) == "December 1, 10:05 AM"

    def test_pickup_info_formats_both_ends(self, pickup_info):
        assert pickup_info.start == "October 21, 3:30 PM"
        assert pickup_info.end == "October 21, 5:30 PM"


# ===========================================================================
# EmailNotificationDispatcher
# ===========================================================================


class TestEmailNotificationDispatcher:
    def test_order_confirmation(self, dispatcher, order_info):
        dispatcher.send_order_confirmation("member1@ucsd.edu", "Ada", order_info)

        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.subject == "ACM UCSD Merch Store - Order Confirmation"
        assert message.to == ["member1@ucsd.edu"]
        assert message.from_email == "merch@acmucsd.org"
        html = _html(message)
        assert "Hi Ada" in html
        assert "Hoodie (M)" in html
        assert "October 21, 3:30 PM" in html
        assert "https://members.example.org/store/orders" in html
        assert str(order_info.order_id) in html

    def test_plain_text_body_has_no_tags(self, dispatcher, order_info):
        dispatcher.send_order_confirmation("member1@ucsd.edu", "Ada", order_info)
        assert "<table>" not in mail.outbox[0].body
        assert "Hoodie" in mail.outbox[0].body

    @pytest.mark.parametrize(
        "method,subject",
        [
            ("send_order_cancellation", "Order Cancellation"),
            ("send_automated_order_cancellation", "Automated Order Cancellation"),
            ("send_order_fulfillment", "Order Fulfilled"),
            ("send_order_pickup_missed", "Order Pickup Missed"),
            ("send_order_pickup_cancelled", "Order Pickup Event Cancelled"),
            ("send_order_pickup_updated", "Order Pickup Event Updated"),
        ],
    )
    def test_subjects(self, dispatcher, order_info, method, subject):
        getattr(dispatcher, method)("member1@ucsd.edu", "Ada", order_info)
        assert mail.outbox[0].subject == f"ACM UCSD Merch Store - {subject}"

    def test_partial_fulfillment_lists_both_groups(self, dispatcher, pickup_info):
        fulfillment = PartialFulfillmentInfo(
            order_id=uuid4(),
            fulfilled_items=[
                OrderLineItemInfo(item_name="Sticker", quantity_requested=1, sale_price=500, total=500)
            ],
            unfulfilled_items=[
                OrderLineItemInfo(item_name="Mug", quantity_requested=1, sale_price=800, total=800)
            ],
            pickup_event=pickup_info,
        )

        dispatcher.send_partial_order_fulfillment("member1@ucsd.edu", "Ada", fulfillment)

        html = _html(mail.outbox[0])
        assert mail.outbox[0].subject == "ACM UCSD Merch Store - Order Partially Fulfilled"
        assert html.index("Sticker") < html.index("Items still pending") < html.index("Mug")

    def test_overridden_sender(self, order_info):
        EmailNotificationDispatcher(from_email="store@acmucsd.org").send_order_fulfillment(
            "member1@ucsd.edu", "Ada", order_info
        )
        assert mail.outbox[0].from_email == "store@acmucsd.org"


# ===========================================================================
# Delivery
# ===========================================================================


class TestSendSafely:
    def test_returns_true_on_success(self):
        calls = []
        assert send_safely(calls.append, "x") is True
        assert calls == ["x"]

    def test_failure_is_logged_not_raised(self, caplog):
        def explode(email):
            raise ConnectionError("smtp down")

        with caplog.at_level(logging.ERROR):
            assert send_safely(explode, "member1@ucsd.edu") is False

        assert any("notification.send_failed" in r.getMessage() for r in caplog.records)


class TestAfterCommit:
    def test_sends_after_commit(self, dispatcher, order_info, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            send_after_commit(
                "default",
                dispatcher.send_order_confirmation,
                "member1@ucsd.edu",
                "Ada",
                order_info,
            )
            assert mail.outbox == []

        assert len(mail.outbox) == 1

    def test_nothing_sent_on_rollback(self, dispatcher, order_info, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(RuntimeError):
                with transaction.atomic():
                    send_after_commit(
                        "default",
                        dispatcher.send_order_confirmation,
                        "member1@ucsd.edu",
                        "Ada",
                        order_info,
                    )
                    raise RuntimeError("abort")

        assert callbacks == []
        assert mail.outbox == []

# ===========================================================================
# Queued fan-out
# ===========================================================================


class TestQueueAfterCommit:
    @pytest.fixture()
    def batch(self, order_info):
        payload = order_info.model_dump(mode="json")
        return [(f"member{n}@ucsd.edu", f"Member{n}", payload) for n in range(1, 6)]

    @pytest.fixture()
    def flaky_send(self, monkeypatch):
        """Reject one address and record the correlation id of every send."""
        seen = []
        original = EmailNotificationDispatcher.send_order_pickup_cancelled

        def send(self, email, first_name, order):
            seen.append(structlog.contextvars.get_contextvars().get("correlation_id"))
            if email == "bad@ucsd.edu":
                raise ConnectionError("rejected")
            original(self, email, first_name, order)

        monkeypatch.setattr(EmailNotificationDispatcher, "send_order_pickup_cancelled", send)
        return seen

    def test_one_email_per_recipient(self, batch, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            queue_after_commit("default", send_order_pickup_cancelled, batch)
            assert mail.outbox == []

        assert len(callbacks) == 1
        assert sorted(m.to[0] for m in mail.outbox) == [args[0] for args in batch]
        assert {m.subject for m in mail.outbox} == {
            "ACM UCSD Merch Store - Order Pickup Event Cancelled"
        }

    def test_failures_do_not_stop_others(
        self, order_info, flaky_send, caplog, django_capture_on_commit_callbacks
    ):
        payload = order_info.model_dump(mode="json")
        batch = [(email, "Member", payload) for email in ("a@ucsd.edu", "bad@ucsd.edu", "c@ucsd.edu")]

        with caplog.at_level(logging.ERROR):
            with django_capture_on_commit_callbacks(execute=True):
                queue_after_commit("default", send_order_pickup_cancelled, batch)

        assert sorted(m.to[0] for m in mail.outbox) == ["a@ucsd.edu", "c@ucsd.edu"]
        assert any("notification.send_failed" in r.getMessage() for r in caplog.records)

    def test_sends_carry_caller_correlation_id(
        self, order_info, flaky_send, caplog, django_capture_on_commit_callbacks
    ):
        payload = order_info.model_dump(mode="json")
        batch = [("a@ucsd.edu", "Ada", payload), ("bad@ucsd.edu", "Bob", payload)]

        structlog.contextvars.bind_contextvars(correlation_id="cid-123")
        try:
            with django_capture_on_commit_callbacks() as callbacks:
                queue_after_commit("default", send_order_pickup_cancelled, batch)
        finally:
            structlog.contextvars.clear_contextvars()

        with caplog.at_level(logging.ERROR):
            for callback in callbacks:
                callback()

        assert flaky_send == ["cid-123", "cid-123"]
        failures = [r.getMessage() for r in caplog.records if "notification.send_failed" in r.getMessage()]
        assert failures and all("cid-123" in message for message in failures)
        assert structlog.contextvars.get_contextvars() == {}

    def test_task_rebuilds_payload(self, order_info):
        sent = send_order_pickup_cancelled.apply(
            args=("member1@ucsd.edu", "Ada", order_info.model_dump(mode="json"))
        ).get()

        assert sent is True
        assert "Hoodie" in _html(mail.outbox[0])

    def test_empty_batch_registers_nothing(self, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks() as callbacks:
            queue_after_commit("default", send_order_pickup_cancelled, [])
        assert callbacks == []
