"""User and activity repository interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.users.models import Activity, User


class IUserRepository(IRepository["User"]):
    """Repository contract for members."""


class IActivityRepository(ABC):
    """Append-only activity log, written inside the caller's transaction."""

    @abstractmethod
    def log_activity(
        self,
        user: User,
        type: str,
        description: Optional[str] = None,
        points_earned: int = 0,
    ) -> Activity:
        """Record a single activity for ``user``."""

    @abstractmethod
    def log_activity_batch(
        self, entries: Iterable[Tuple[User, str, Optional[str]]]
    ) -> List[Activity]:
        """Record one activity per ``(user, type, description)`` entry."""

    @abstractmethod
    def list_for_user(self, user: User) -> List[Activity]:
        """Activities of ``user``, newest first."""
