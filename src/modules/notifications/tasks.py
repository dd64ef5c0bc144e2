"""Background email delivery.

Tasks take JSON payloads (``model_dump(mode="json")``) and rebuild the
notification models before sending.  Delivery failures are logged by
``send_safely`` and reported through the task's return value.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from celery import shared_task

from modules.notifications.dispatch import send_safely
from modules.notifications.emails import EmailNotificationDispatcher
from modules.notifications.payloads import OrderInfo


@shared_task(name="notifications.send_order_pickup_cancelled")
def send_order_pickup_cancelled(
    email: str,
    first_name: str,
    order: Dict[str, Any],
    correlation_id: Optional[str] = None,
) -> bool:
    """Tell one member their pickup event was cancelled."""
    context = {"correlation_id": correlation_id} if correlation_id else {}
    with structlog.contextvars.bound_contextvars(**context):
        return send_safely(
            EmailNotificationDispatcher().send_order_pickup_cancelled,
            email,
            first_name,
            OrderInfo.model_validate(order),
        )
