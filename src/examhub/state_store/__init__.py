"""State Store - Persistent storage for exam calls, registrations and reports."""

from examhub.state_store.exceptions import (
    CourseNotFoundError,
    EntityNotFoundError,
    ExamNotFoundError,
    ProfessorNotFoundError,
    ReferenceDataError,
    RegistrationExistsError,
    RegistrationNotFoundError,
    ReportNotFoundError,
    StateStoreError,
    StudentNotFoundError,
    TransitionRejectedError,
)
from examhub.state_store.models import (
    MIN_PASSING_GRADE,
    Course,
    Exam,
    ExamResult,
    FinalizeOutcome,
    Professor,
    Registration,
    RegistrationStatus,
    Report,
    ResultEntry,
    StatusEntry,
    Student,
)
from examhub.state_store.store import StateStore

__all__ = [
    "MIN_PASSING_GRADE",
    "Course",
    "CourseNotFoundError",
    "EntityNotFoundError",
    "Exam",
    "ExamNotFoundError",
    "ExamResult",
    "FinalizeOutcome",
    "Professor",
    "ProfessorNotFoundError",
    "ReferenceDataError",
    "Registration",
    "RegistrationExistsError",
    "RegistrationNotFoundError",
    "RegistrationStatus",
    "Report",
    "ReportNotFoundError",
    "ResultEntry",
    "StateStore",
    "StateStoreError",
    "StatusEntry",
    "Student",
    "StudentNotFoundError",
    "TransitionRejectedError",
]
