# exception hierarchy shared by the core, the repositories and the screens
from decimal import Decimal
from typing import Optional


class PosError(Exception):
    """Base class for every error surfaced to the user."""


class ValidationError(PosError, ValueError):
    """
    Raised when user input is missing or out of range.
    Nothing has been written when this is raised.
    """


class InsufficientStockError(ValidationError):
    def __init__(self, message: str, available: Optional[Decimal] = None):
        super().__init__(message)
        self.available = available


class BackendError(PosError):
    """
    Raised when the storage backend fails (connection, constraint, ...).
    """


class NotFoundError(BackendError):
    pass


class AuthError(PosError):
    """Invalid login credentials."""
