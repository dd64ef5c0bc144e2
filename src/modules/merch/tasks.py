"""Background tasks for the merch store."""

import structlog
from celery import shared_task

from modules.merch.services import MerchOrderService
from modules.merch.unit_of_work import merch_transactions
from modules.notifications.emails import EmailNotificationDispatcher
from modules.users.exceptions import UserNotFound
from modules.users.models import User

logger = structlog.get_logger(__name__)


@shared_task(name="merch.cancel_pending_orders")
def cancel_pending_orders(actor_id: str) -> dict:
    """Cancel and refund every pending order on behalf of ``actor_id``.

    Used for the end-of-term store cleanup.  Domain errors propagate so
    the task is recorded as failed.
    """
    actor = User.objects.filter(pk=actor_id).first()
    if actor is None:
        raise UserNotFound(f"User {actor_id} not found")

    service = MerchOrderService(
        transactions=merch_transactions(),
        notifier=EmailNotificationDispatcher(),
    )
    cancelled = service.cancel_all_pending_orders(actor)
    logger.info(
        "merch.cancel_pending_orders.executed",
        actor_id=actor_id,
        cancelled=len(cancelled),
    )
    return {"status": "ok", "cancelled": [str(order.id) for order in cancelled]}
