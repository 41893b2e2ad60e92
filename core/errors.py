# core/errors.py
"""
Error taxonomy shared by the stores, services and screens.

Screens catch CrmError around a single user action and show the message;
nothing here is meant to stop the app.
"""
from __future__ import annotations
from typing import Iterable, List, Optional


class CrmError(Exception):
    """Base class for every error a user action can surface."""


class ValidationError(CrmError):
    """Malformed or incomplete input. Never partially applied."""

    def __init__(self, message: str, errors: Optional[Iterable[str]] = None):
        self.errors: List[str] = list(errors) if errors else [message]
        super().__init__(message)


class NotFoundError(CrmError):
    pass


class InvalidStateError(CrmError):
    """Transition attempted on a record that is no longer in the required state."""


class ConcurrentUpdateError(InvalidStateError):
    """Optimistic version check failed: someone else changed the row first."""


class StoreUnavailableError(CrmError):
    """Backing database unreachable or the statement failed at the driver level."""


class AuthenticationError(CrmError):
    pass
