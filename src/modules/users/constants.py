"""User and activity enumerations."""

from django.db import models


class UserAccessType(models.TextChoices):
    RESTRICTED = "RESTRICTED", "Restricted"
    STANDARD = "STANDARD", "Standard"
    STAFF = "STAFF", "Staff"
    ADMIN = "ADMIN", "Admin"
    MARKETING = "MARKETING", "Marketing"
    MERCH_STORE_MANAGER = "MERCH_STORE_MANAGER", "Merch store manager"
    MERCH_STORE_DISTRIBUTOR = "MERCH_STORE_DISTRIBUTOR", "Merch store distributor"
    SPONSORSHIP_MANAGER = "SPONSORSHIP_MANAGER", "Sponsorship manager"


class UserState(models.TextChoices):
    PENDING = "PENDING", "Pending"
    ACTIVE = "ACTIVE", "Active"
    BLOCKED = "BLOCKED", "Blocked"
    PASSWORD_RESET = "PASSWORD_RESET", "Password reset"


class ActivityType(models.TextChoices):
    ACCOUNT_CREATE = "ACCOUNT_CREATE", "Account created"
    ACCOUNT_ACTIVATE = "ACCOUNT_ACTIVATE", "Account activated"
    ACCOUNT_UPDATE_INFO = "ACCOUNT_UPDATE_INFO", "Account info updated"
    ACCOUNT_LOGIN = "ACCOUNT_LOGIN", "Logged in"
    ATTEND_EVENT = "ATTEND_EVENT", "Attended event"
    BONUS_POINTS = "BONUS_POINTS", "Bonus points"
    ORDER_PLACED = "ORDER_PLACED", "Order placed"
    ORDER_CANCELLED = "ORDER_CANCELLED", "Order cancelled"
    ORDER_FULFILLED = "ORDER_FULFILLED", "Order fulfilled"
    ORDER_PARTIALLY_FULFILLED = "ORDER_PARTIALLY_FULFILLED", "Order partially fulfilled"
    ORDER_MISSED = "ORDER_MISSED", "Order pickup missed"
    PENDING_ORDERS_CANCELLED = "PENDING_ORDERS_CANCELLED", "Pending orders cancelled"


class ActivityScope(models.TextChoices):
    PUBLIC = "PUBLIC", "Public"
    PRIVATE = "PRIVATE", "Private"
    HIDDEN = "HIDDEN", "Hidden"


PUBLIC_ACTIVITIES: set[str] = {ActivityType.ATTEND_EVENT, ActivityType.BONUS_POINTS}

HIDDEN_ACTIVITIES: set[str] = {
    ActivityType.ACCOUNT_LOGIN,
    ActivityType.PENDING_ORDERS_CANCELLED,
}


def scope_for(activity_type: str) -> str:
    """Visibility of an activity in the member's feed."""
    if activity_type in PUBLIC_ACTIVITIES:
        return ActivityScope.PUBLIC
    if activity_type in HIDDEN_ACTIVITIES:
        return ActivityScope.HIDDEN
    return ActivityScope.PRIVATE


MERCH_STORE_EMAIL_DOMAINS: tuple[str, ...] = ("ucsd.edu", "acmucsd.org")
