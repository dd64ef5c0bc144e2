"""Member accounts and the activity log.

``User`` is the project's ``AUTH_USER_MODEL``.  It is keyed by email and
carries the two balances the merch store reads and writes:

- ``credits``: spendable store currency (integer minor units).
- ``points``: leaderboard points (not touched by merch orders).
"""

from __future__ import annotations

from typing import Any

from django.conf import settings
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.users.constants import (
    ActivityScope,
    ActivityType,
    UserAccessType,
    UserState,
)


class UserManager(BaseUserManager):
    use_in_migrations = True

    def create_user(self, email: str, password: str | None = None, **extra: Any):
        if not email:
            raise ValueError("Users must have an email address.")
        user = self.model(email=self.normalize_email(email), **extra)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email: str, password: str | None = None, **extra: Any):
        extra.setdefault("is_staff", True)
        extra.setdefault("is_superuser", True)
        extra.setdefault("access_type", UserAccessType.ADMIN)
        extra.setdefault("state", UserState.ACTIVE)
        return self.create_user(email, password, **extra)


class User(BaseModel, AbstractUser):
    """Organization member."""

    username = None  # type: ignore[assignment]
    email: models.EmailField = models.EmailField(unique=True)
    access_type: models.CharField = models.CharField(
        max_length=32,
        choices=UserAccessType.choices,
        default=UserAccessType.STANDARD,
    )
    state: models.CharField = models.CharField(
        max_length=20,
        choices=UserState.choices,
        default=UserState.PENDING,
    )
    credits: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    points: models.PositiveIntegerField = models.PositiveIntegerField(default=0)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["first_name", "last_name"]

    objects = UserManager()

    class Meta:
        db_table = "users"
        ordering = ["email"]

    def __str__(self) -> str:
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email


class Activity(BaseModel):
    """Append-only record of something a member did (or had done to them)."""

    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="activities",
    )
    type: models.CharField = models.CharField(
        max_length=40, choices=ActivityType.choices
    )
    scope: models.CharField = models.CharField(
        max_length=10,
        choices=ActivityScope.choices,
        default=ActivityScope.PRIVATE,
    )
    description: models.TextField = models.TextField(  # noqa: DJ01
        null=True, blank=True, default=None
    )
    points_earned: models.IntegerField = models.IntegerField(default=0)
    timestamp: models.DateTimeField = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "activities"
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["user", "-timestamp"], name="activities_user_ts_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} {self.type}"
