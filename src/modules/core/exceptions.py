"""Error taxonomy shared by all service layers.

Services raise these (or module-specific subclasses); the API layer
maps each kind onto a transport status:

- ``NotFound``   -> 404
- ``Forbidden``  -> 403
- ``UserError``  -> 400
- ``TransactionConflict`` -> 409

``TransactionConflict`` does not extend ``DomainError``:
it signals an aborted serializable transaction, not a rule violation.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for business-rule failures with a user-facing message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(DomainError):
    """The referenced entity does not exist or is not visible to the caller."""


class Forbidden(DomainError):
    """The actor lacks permission for the requested mutation."""


class UserError(DomainError):
    """A business rule was violated by the request."""


class TransactionConflict(Exception):
    """The database aborted the transaction (serialization failure or deadlock).

    Retrying the whole operation is safe.
    """
