"""Lifecycle - Exam result state machine and report assembly."""

from examhub.lifecycle.engine import RegistrationLifecycle
from examhub.lifecycle.exceptions import (
    AlreadyRegisteredError,
    ConflictError,
    ForbiddenError,
    InvalidResultError,
    InvalidStateError,
    LifecycleError,
    NoOpError,
    NothingToFinalizeError,
    NothingToPublishError,
    NotVisibleError,
)
from examhub.lifecycle.models import (
    ExamSnapshot,
    RegistrationSnapshot,
    ReportSnapshot,
    ResultOption,
    ResultUpdate,
    StudentResultView,
    StudentSnapshot,
)
from examhub.lifecycle.reports import ReportService
from examhub.lifecycle.sorting import RegistrationSort, resolve_sort

__all__ = [
    "AlreadyRegisteredError",
    "ConflictError",
    "ExamSnapshot",
    "ForbiddenError",
    "InvalidResultError",
    "InvalidStateError",
    "LifecycleError",
    "NoOpError",
    "NotVisibleError",
    "NothingToFinalizeError",
    "NothingToPublishError",
    "RegistrationLifecycle",
    "RegistrationSnapshot",
    "RegistrationSort",
    "ReportService",
    "ReportSnapshot",
    "ResultOption",
    "ResultUpdate",
    "StudentResultView",
    "StudentSnapshot",
    "resolve_sort",
]
