"""Django ORM implementations of the user and activity repositories."""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

import structlog
from django.db import DEFAULT_DB_ALIAS

from modules.core.repositories.django_repository import DjangoRepository
from modules.users.constants import scope_for
from modules.users.models import Activity, User
from modules.users.repositories.interfaces import IActivityRepository, IUserRepository

logger = structlog.get_logger(__name__)


class UserDjangoRepository(DjangoRepository[User], IUserRepository):
    model = User


class ActivityDjangoRepository(IActivityRepository):
    def __init__(self, using: str = DEFAULT_DB_ALIAS) -> None:
        self._using = using

    def log_activity(
        self,
        user: User,
        type: str,
        description: Optional[str] = None,
        points_earned: int = 0,
    ) -> Activity:
        activity = Activity(
            user=user,
            type=type,
            scope=scope_for(type),
            description=description,
            points_earned=points_earned,
        )
        activity.save(using=self._using)
        logger.info("activity.logged", user_id=str(user.pk), type=type)
        return activity

    def log_activity_batch(
        self, entries: Iterable[Tuple[User, str, Optional[str]]]
    ) -> List[Activity]:
        activities = [
            Activity(user=user, type=type, scope=scope_for(type), description=description)
            for user, type, description in entries
        ]
        if not activities:
            return []
        created = Activity.objects.using(self._using).bulk_create(activities)
        logger.info("activity.batch_logged", count=len(created))
        return created

    def list_for_user(self, user: User) -> List[Activity]:
        return list(Activity.objects.using(self._using).filter(user=user))
