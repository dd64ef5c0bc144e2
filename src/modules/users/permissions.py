"""Access rules for the merch store.

Plain predicates over a ``User`` are used by the service layer; the DRF
permission classes at the bottom wrap the same predicates for views.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework.permissions import BasePermission

from modules.users.constants import MERCH_STORE_EMAIL_DOMAINS, UserAccessType, UserState

if TYPE_CHECKING:
    from modules.users.models import User

MERCH_ADMINS = {UserAccessType.ADMIN, UserAccessType.MERCH_STORE_MANAGER}
MERCH_STAFF = MERCH_ADMINS | {UserAccessType.MERCH_STORE_DISTRIBUTOR}


def is_admin(user: User) -> bool:
    return user.access_type == UserAccessType.ADMIN


def can_edit_merch_store(user: User) -> bool:
    return user.access_type in MERCH_ADMINS


def can_manage_merch_orders(user: User) -> bool:
    """Fulfill orders and mark them as missed."""
    return user.access_type in MERCH_STAFF


def can_manage_pickup_events(user: User) -> bool:
    return user.access_type in MERCH_STAFF


def can_see_all_merch_orders(user: User) -> bool:
    return user.access_type in MERCH_STAFF


def can_cancel_all_pending_orders(user: User) -> bool:
    return user.access_type in MERCH_ADMINS


def can_access_merch_store(user: User) -> bool:
    """Active members with an organization email may shop."""
    if user.state not in (UserState.ACTIVE, UserState.PASSWORD_RESET):
        return False
    domain = user.email.rsplit("@", 1)[-1].lower()
    return domain in MERCH_STORE_EMAIL_DOMAINS


# ---------------------------------------------------------------------------
# DRF permission classes
# ---------------------------------------------------------------------------


class CanAccessMerchStore(BasePermission):
    message = "Only active members with an organization email can access the store."

    def has_permission(self, request, view) -> bool:
        return bool(request.user and request.user.is_authenticated) and (
            can_access_merch_store(request.user)
        )


class CanManagePickupEvents(BasePermission):
    message = "You are not allowed to manage pickup events."

    def has_permission(self, request, view) -> bool:
        return bool(request.user and request.user.is_authenticated) and (
            can_manage_pickup_events(request.user)
        )


class CanEditMerchStore(BasePermission):
    message = "You are not allowed to edit the merch store."

    def has_permission(self, request, view) -> bool:
        return bool(request.user and request.user.is_authenticated) and (
            can_edit_merch_store(request.user)
        )
