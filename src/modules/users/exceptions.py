"""User domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import NotFound


class UserNotFound(NotFound):
    """The referenced member does not exist."""
