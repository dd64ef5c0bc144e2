from __future__ import annotations

from typing import TYPE_CHECKING

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.events.models import Event


class IEventRepository(IRepository["Event"]):
    """Repository contract for calendar events."""
