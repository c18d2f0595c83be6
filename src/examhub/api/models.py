"""Pydantic models for REST API."""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from examhub.state_store import ExamResult, RegistrationStatus

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    data: T | None = None
    error: str | None = None


# Exam models


class ExamCreate(BaseModel):
    """Request model for scheduling an exam call."""

    date: datetime


class ExamResponse(BaseModel):
    """Response model for an exam call."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    date: datetime
    course_id: int
    course_name: str


def exam_to_response(exam: Any) -> ExamResponse:
    """Convert an ExamSnapshot to ExamResponse."""
    return ExamResponse.model_validate(exam)


# Registration models


class StudentResponse(BaseModel):
    """Response model for a registered student."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    number: int
    name: str
    surname: str
    email: str
    major: str | None


class RegistrationResponse(BaseModel):
    """Response model for a registration."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    student: StudentResponse
    exam: ExamResponse
    status: RegistrationStatus
    result: ExamResult
    report_id: int | None
    can_be_declined: bool


def registration_to_response(registration: Any) -> RegistrationResponse:
    """Convert a RegistrationSnapshot to RegistrationResponse."""
    return RegistrationResponse.model_validate(registration)


class StudentResultResponse(BaseModel):
    """Response model for the student's view of a result."""

    model_config = ConfigDict(from_attributes=True)

    registration: RegistrationResponse | None
    is_published: bool
    can_be_declined: bool
    message: str


def student_result_to_response(view: Any) -> StudentResultResponse:
    """Convert a StudentResultView to StudentResultResponse."""
    return StudentResultResponse.model_validate(view)


# Result models


class ResultEdit(BaseModel):
    """Request model for editing one result."""

    result: str = Field(..., min_length=1, max_length=20)


class BulkResultEditItem(BaseModel):
    """One item of a bulk result edit."""

    registration_id: int
    result: str = Field(..., min_length=1, max_length=20)


class ResultOptionResponse(BaseModel):
    """Response model for an assignable result."""

    model_config = ConfigDict(from_attributes=True)

    code: ExamResult
    label: str
    rank: int


def result_option_to_response(option: Any) -> ResultOptionResponse:
    """Convert a ResultOption to ResultOptionResponse."""
    return ResultOptionResponse.model_validate(option)


class PublishResponse(BaseModel):
    """Response model for a publish action."""

    published: int


class FinalizeResponse(BaseModel):
    """Response model for a finalize action."""

    report_id: int


# Report models


class ReportResponse(BaseModel):
    """Response model for a report."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    exam: ExamResponse
    created_at: datetime
    registrations: list[RegistrationResponse]


def report_to_response(report: Any) -> ReportResponse:
    """Convert a ReportSnapshot to ReportResponse."""
    return ReportResponse.model_validate(report)
