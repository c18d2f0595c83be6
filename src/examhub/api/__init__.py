"""REST API for ExamHub."""

from examhub.api.app import app, create_app, register_exception_handlers
from examhub.api.models import (
    APIResponse,
    ExamCreate,
    ExamResponse,
    RegistrationResponse,
    ReportResponse,
    ResultEdit,
)

__all__ = [
    "APIResponse",
    "ExamCreate",
    "ExamResponse",
    "RegistrationResponse",
    "ReportResponse",
    "ResultEdit",
    "app",
    "create_app",
    "register_exception_handlers",
]
