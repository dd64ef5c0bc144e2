"""Best-effort, after-commit notification delivery.

Notifications are registered with ``transaction.on_commit`` so they are
only sent when the mutation that produced them has committed, and a
rolled-back transaction sends nothing.  Delivery failures are logged
and never propagate to the caller.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Sequence, Tuple

import structlog
from celery import group
from django.db import transaction

if TYPE_CHECKING:
    from celery import Task

logger = structlog.get_logger(__name__)


def send_safely(send: Callable[..., Any], *args: Any) -> bool:
    """Call ``send``; log and return ``False`` if it raises."""
    try:
        send(*args)
    except Exception:
        logger.exception(
            "notification.send_failed",
            notification=getattr(send, "__name__", repr(send)),
        )
        return False
    return True


def send_after_commit(using: str, send: Callable[..., Any], *args: Any) -> None:
    transaction.on_commit(partial(send_safely, send, *args), using=using)


def queue_after_commit(
    using: str,
    task: Task,
    batch: Sequence[Tuple[Any, ...]],
) -> None:
    """Queue one ``task`` per argument tuple after commit.

    Arguments must be JSON serializable.  The caller's ``correlation_id``
    is passed along so worker logs can be traced back to the request.
    """
    if not batch:
        return
    correlation_id = structlog.contextvars.get_contextvars().get("correlation_id")

    def _enqueue() -> None:
        group([task.s(*args, correlation_id=correlation_id) for args in batch]).apply_async()
        logger.info("notification.fan_out_queued", notification=task.name, queued=len(batch))

    transaction.on_commit(_enqueue, using=using)
