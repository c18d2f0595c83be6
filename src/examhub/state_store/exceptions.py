"""Custom exceptions for State Store."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from examhub.state_store.models import ExamResult, RegistrationStatus


class StateStoreError(Exception):
    """Base exception for State Store errors."""


class ReferenceDataError(StateStoreError):
    """Status or result reference data is missing from the database."""


class EntityNotFoundError(StateStoreError):
    """Base exception for lookups of rows that do not exist."""


class StudentNotFoundError(EntityNotFoundError):
    """Student with given ID does not exist."""


class ProfessorNotFoundError(EntityNotFoundError):
    """Professor with given ID does not exist."""


class CourseNotFoundError(EntityNotFoundError):
    """Course with given ID does not exist."""


class ExamNotFoundError(EntityNotFoundError):
    """Exam call with given ID does not exist."""


class RegistrationNotFoundError(EntityNotFoundError):
    """Registration does not exist."""


class ReportNotFoundError(EntityNotFoundError):
    """Report with given ID does not exist."""


class RegistrationExistsError(StateStoreError):
    """Student is already registered for this exam call."""


class TransitionRejectedError(StateStoreError):
    """The registration's current status does not allow the transition.

    Attributes:
        status: Status observed inside the rejected transaction.
        result: Result observed inside the rejected transaction.
    """

    def __init__(self, message: str, status: RegistrationStatus, result: ExamResult) -> None:
        super().__init__(message)
        self.status = status
        self.result = result
