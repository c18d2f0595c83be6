"""Data models for the registration lifecycle.

Read-only snapshots projected from state store rows, handed back to callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from examhub.state_store import ExamResult, RegistrationStatus

if TYPE_CHECKING:
    from datetime import datetime

    from examhub.state_store import Exam, Registration, Report, Student


@dataclass(frozen=True)
class StudentSnapshot:
    id: int
    number: int
    name: str
    surname: str
    email: str
    major: str | None

    @classmethod
    def from_model(cls, student: Student) -> StudentSnapshot:
        return cls(
            id=student.id,
            number=student.number,
            name=student.name,
            surname=student.surname,
            email=student.email,
            major=student.major,
        )


@dataclass(frozen=True)
class ExamSnapshot:
    """An exam call.

    Attributes:
        id: The exam call's ID.
        date: Scheduled date of the sitting.
        course_id: ID of the course the exam belongs to.
        course_name: Name of that course.
    """

    id: int
    date: datetime
    course_id: int
    course_name: str

    @classmethod
    def from_model(cls, exam: Exam) -> ExamSnapshot:
        return cls(
            id=exam.id,
            date=exam.date,
            course_id=exam.course_id,
            course_name=exam.course.name,
        )


@dataclass(frozen=True)
class RegistrationSnapshot:
    """A student's registration for an exam call.

    Attributes:
        id: The registration's ID.
        student: The registered student.
        exam: The exam call.
        status: Current lifecycle status.
        result: Current result.
        report_id: Report that sealed the registration, if recorded.
        can_be_declined: Whether the student may decline the result now.
    """

    id: int
    student: StudentSnapshot
    exam: ExamSnapshot
    status: RegistrationStatus
    result: ExamResult
    report_id: int | None
    can_be_declined: bool

    @classmethod
    def from_model(cls, registration: Registration) -> RegistrationSnapshot:
        status = registration.registration_status
        result = registration.exam_result
        return cls(
            id=registration.id,
            student=StudentSnapshot.from_model(registration.student),
            exam=ExamSnapshot.from_model(registration.exam),
            status=status,
            result=result,
            report_id=registration.report_id,
            can_be_declined=(
                status.is_declinable and result.is_passing and registration.report_id is None
            ),
        )


@dataclass(frozen=True)
class ReportSnapshot:
    """A report and, when requested, the registrations it sealed."""

    id: int
    exam: ExamSnapshot
    created_at: datetime
    registrations: list[RegistrationSnapshot] = field(default_factory=list)

    @classmethod
    def from_model(
        cls, report: Report, registrations: list[Registration] | None = None
    ) -> ReportSnapshot:
        return cls(
            id=report.id,
            exam=ExamSnapshot.from_model(report.exam),
            created_at=report.created_at,
            registrations=[RegistrationSnapshot.from_model(r) for r in registrations or []],
        )


@dataclass(frozen=True)
class ResultUpdate:
    """One item of a bulk result edit."""

    registration_id: int
    result: ExamResult | str


@dataclass(frozen=True)
class ResultOption:
    """A result a professor can assign."""

    code: ExamResult
    label: str
    rank: int


@dataclass(frozen=True)
class StudentResultView:
    """What a student sees for one exam call.

    Attributes:
        registration: The registration, or None when not published yet.
        is_published: Whether the result is visible.
        can_be_declined: Whether the student may decline it.
        message: Why the result is not visible, empty otherwise.
    """

    registration: RegistrationSnapshot | None
    is_published: bool
    can_be_declined: bool
    message: str = ""
