"""Email implementation of the notification dispatcher.

Renders Django templates under ``templates/notifications/`` and sends
them through Django's configured mail backend.
"""

from __future__ import annotations

from typing import Any, Dict

import structlog
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string
from django.utils.html import strip_tags

from modules.notifications.dispatcher import INotificationDispatcher
from modules.notifications.payloads import OrderInfo, PartialFulfillmentInfo

logger = structlog.get_logger(__name__)

SUBJECT_PREFIX = "ACM UCSD Merch Store"


class EmailNotificationDispatcher(INotificationDispatcher):
    def __init__(self, from_email: str | None = None, client_url: str | None = None) -> None:
        self._from_email = from_email or settings.MERCH_STORE_FROM_EMAIL
        self._client_url = client_url or settings.CLIENT_URL

    # ------------------------------------------------------------------
    # Notification kinds
    # ------------------------------------------------------------------

    def send_order_confirmation(self, email: str, first_name: str, order: OrderInfo) -> None:
        self._send(email, "Order Confirmation", "order_confirmation", first_name, order=order)

    def send_order_cancellation(self, email: str, first_name: str, order: OrderInfo) -> None:
        self._send(email, "Order Cancellation", "order_cancellation", first_name, order=order)

    def send_automated_order_cancellation(
        self, email: str, first_name: str, order: OrderInfo
    ) -> None:
        self._send(
            email,
            "Automated Order Cancellation",
            "order_automated_cancellation",
            first_name,
            order=order,
        )

    def send_order_fulfillment(self, email: str, first_name: str, order: OrderInfo) -> None:
        self._send(email, "Order Fulfilled", "order_fulfilled", first_name, order=order)

    def send_partial_order_fulfillment(
        self, email: str, first_name: str, fulfillment: PartialFulfillmentInfo
    ) -> None:
        self._send(
            email,
            "Order Partially Fulfilled",
            "order_partially_fulfilled",
            first_name,
            fulfillment=fulfillment,
        )

    def send_order_pickup_missed(self, email: str, first_name: str, order: OrderInfo) -> None:
        self._send(email, "Order Pickup Missed", "order_pickup_missed", first_name, order=order)

    def send_order_pickup_cancelled(
        self, email: str, first_name: str, order: OrderInfo
    ) -> None:
        self._send(
            email,
            "Order Pickup Event Cancelled",
            "order_pickup_cancelled",
            first_name,
            order=order,
        )

    def send_order_pickup_updated(self, email: str, first_name: str, order: OrderInfo) -> None:
        self._send(
            email,
            "Order Pickup Event Updated",
            "order_pickup_updated",
            first_name,
            order=order,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _send(
        self,
        email: str,
        subject: str,
        template: str,
        first_name: str,
        **context: Any,
    ) -> None:
        ctx: Dict[str, Any] = {
            "first_name": first_name,
            "link": f"{self._client_url}/store/orders",
            **context,
        }
        html = render_to_string(f"notifications/{template}.html", ctx)
        send_mail(
            subject=f"{SUBJECT_PREFIX} - {subject}",
            message=strip_tags(html),
            from_email=self._from_email,
            recipient_list=[email],
            html_message=html,
        )
        logger.info("notification.email_sent", template=template)
