"""Exceptions for the registration lifecycle.

These are business errors: the caller can recover from them, and they reach
the API boundary unmodified.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from examhub.state_store import RegistrationStatus


class LifecycleError(Exception):
    """Base exception for lifecycle errors."""

    pass


class ForbiddenError(LifecycleError):
    """Caller does not own the course, or the student is not enrolled."""

    pass


class ConflictError(LifecycleError):
    """Precondition on the current state of the data is not met."""

    pass


class AlreadyRegisteredError(ConflictError):
    """Student is already registered for the exam call."""

    pass


class InvalidStateError(ConflictError):
    """Registration status does not allow the requested transition."""

    def __init__(self, message: str, status: RegistrationStatus | None = None) -> None:
        super().__init__(message)
        self.status = status


class NoOpError(ConflictError):
    """A bulk transition found no eligible registrations."""

    pass


class NothingToPublishError(NoOpError):
    pass


class NothingToFinalizeError(NoOpError):
    pass


class InvalidResultError(LifecycleError):
    """Result code is unknown or cannot be written by a professor."""

    pass


class NotVisibleError(LifecycleError):
    """Result has not been published to the student yet."""

    pass
