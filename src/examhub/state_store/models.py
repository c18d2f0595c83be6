"""SQLAlchemy models for State Store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


class RegistrationStatus(StrEnum):
    """Lifecycle status of a registration."""

    NOT_ENTERED = "not_entered"
    ENTERED = "entered"
    PUBLISHED = "published"
    DECLINED = "declined"
    RECORDED = "recorded"

    @property
    def position(self) -> int:
        """Position in the lifecycle, used for sorting."""
        return list(RegistrationStatus).index(self)

    @property
    def is_editable(self) -> bool:
        """A result may be written or overwritten."""
        return self in (RegistrationStatus.NOT_ENTERED, RegistrationStatus.ENTERED)

    @property
    def is_visible_to_student(self) -> bool:
        return self in (
            RegistrationStatus.PUBLISHED,
            RegistrationStatus.DECLINED,
            RegistrationStatus.RECORDED,
        )

    @property
    def is_declinable(self) -> bool:
        return self is RegistrationStatus.PUBLISHED

    @property
    def is_finalizable(self) -> bool:
        return self in (RegistrationStatus.PUBLISHED, RegistrationStatus.DECLINED)


class ExamResult(StrEnum):
    """Result of a registration. Declaration order is the rank order."""

    EMPTY = "empty"
    ABSENT = "absent"
    FAILED = "failed"
    POSTPONED = "postponed"
    GRADE_18 = "18"
    GRADE_19 = "19"
    GRADE_20 = "20"
    GRADE_21 = "21"
    GRADE_22 = "22"
    GRADE_23 = "23"
    GRADE_24 = "24"
    GRADE_25 = "25"
    GRADE_26 = "26"
    GRADE_27 = "27"
    GRADE_28 = "28"
    GRADE_29 = "29"
    GRADE_30 = "30"
    GRADE_30_LAUDE = "30L"

    @property
    def rank(self) -> int:
        return list(ExamResult).index(self)

    @property
    def is_passing(self) -> bool:
        return self.rank >= MIN_PASSING_GRADE.rank


MIN_PASSING_GRADE = ExamResult.GRADE_18


def to_utc_naive(value: datetime) -> datetime:
    """Convert an offset-aware datetime to naive UTC, the form DateTime columns store."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


# Vocabulary tables


class StatusEntry(Base):
    """Lookup row for a RegistrationStatus."""

    __tablename__ = "statuses"

    code: Mapped[str] = mapped_column(String(20), primary_key=True)
    label: Mapped[str] = mapped_column(String(50), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<StatusEntry(code={self.code!r}, label={self.label!r})>"


class ResultEntry(Base):
    """Lookup row for an ExamResult."""

    __tablename__ = "results"

    code: Mapped[str] = mapped_column(String(20), primary_key=True)
    label: Mapped[str] = mapped_column(String(50), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<ResultEntry(code={self.code!r}, label={self.label!r}, rank={self.rank})>"


# Catalog

course_students = Table(
    "course_students",
    Base.metadata,
    Column("course_id", Integer, ForeignKey("courses.id"), primary_key=True),
    Column("student_id", Integer, ForeignKey("students.id"), primary_key=True),
)


class Professor(Base):
    """Professor model - owns courses."""

    __tablename__ = "professors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    courses: Mapped[list[Course]] = relationship("Course", back_populates="professor")

    def __init__(self, name: str, surname: str, email: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.name = name
        self.surname = surname
        self.email = email

    def __repr__(self) -> str:
        return f"<Professor(id={self.id!r}, email={self.email!r})>"


class Student(Base):
    """Student model."""

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    major: Mapped[str | None] = mapped_column(String(100), nullable=True)

    courses: Mapped[list[Course]] = relationship(
        "Course", secondary=course_students, back_populates="students"
    )

    def __init__(
        self,
        number: int,
        name: str,
        surname: str,
        email: str,
        major: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.number = number
        self.name = name
        self.surname = surname
        self.email = email
        self.major = major

    def __repr__(self) -> str:
        return f"<Student(id={self.id!r}, number={self.number!r})>"


class Course(Base):
    """Course model - taught by one professor, attended by enrolled students."""

    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    cfu: Mapped[int] = mapped_column(Integer, nullable=False)
    professor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("professors.id"), nullable=False
    )

    professor: Mapped[Professor] = relationship("Professor", back_populates="courses")
    students: Mapped[list[Student]] = relationship(
        "Student", secondary=course_students, back_populates="courses"
    )
    exams: Mapped[list[Exam]] = relationship("Exam", back_populates="course")

    def __init__(self, name: str, professor_id: int, cfu: int = 6, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.name = name
        self.professor_id = professor_id
        self.cfu = cfu

    def __repr__(self) -> str:
        return f"<Course(id={self.id!r}, name={self.name!r})>"


# Exam calls, registrations and reports


class Exam(Base):
    """Exam call - a single scheduled sitting of a course's exam."""

    __tablename__ = "exams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id"), nullable=False, index=True
    )
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    course: Mapped[Course] = relationship("Course", back_populates="exams")
    registrations: Mapped[list[Registration]] = relationship(
        "Registration", back_populates="exam"
    )
    reports: Mapped[list[Report]] = relationship(
        "Report", back_populates="exam", order_by="Report.created_at"
    )

    def __init__(self, course_id: int, date: datetime, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.course_id = course_id
        self.date = date

    def __repr__(self) -> str:
        return f"<Exam(id={self.id!r}, course_id={self.course_id!r}, date={self.date!r})>"


class Report(Base):
    """Report model - immutable record of one finalize operation."""

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    exam_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exams.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    exam: Mapped[Exam] = relationship("Exam", back_populates="reports")
    registrations: Mapped[list[Registration]] = relationship(
        "Registration", back_populates="report"
    )

    def __init__(self, exam_id: int, created_at: datetime | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.exam_id = exam_id
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:
        return f"<Report(id={self.id!r}, exam_id={self.exam_id!r})>"


class Registration(Base):
    """Registration model - one student's entry for one exam call."""

    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("student_id", "exam_id", name="uq_registration_student_exam"),
        CheckConstraint(
            f"status = '{RegistrationStatus.NOT_ENTERED.value}' "
            f"OR result != '{ExamResult.EMPTY.value}'",
            name="ck_registration_result_entered",
        ),
        CheckConstraint(
            f"report_id IS NULL OR status = '{RegistrationStatus.RECORDED.value}'",
            name="ck_registration_report_recorded",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id"), nullable=False, index=True
    )
    exam_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exams.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), ForeignKey("statuses.code"), nullable=False)
    result: Mapped[str] = mapped_column(String(20), ForeignKey("results.code"), nullable=False)
    report_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("reports.id"), nullable=True, index=True
    )

    student: Mapped[Student] = relationship("Student")
    exam: Mapped[Exam] = relationship("Exam", back_populates="registrations")
    report: Mapped[Report | None] = relationship("Report", back_populates="registrations")
    status_entry: Mapped[StatusEntry] = relationship("StatusEntry", viewonly=True)
    result_entry: Mapped[ResultEntry] = relationship("ResultEntry", viewonly=True)

    def __init__(
        self,
        student_id: int,
        exam_id: int,
        status: str | None = None,
        result: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.student_id = student_id
        self.exam_id = exam_id
        self.status = status if status is not None else RegistrationStatus.NOT_ENTERED.value
        self.result = result if result is not None else ExamResult.EMPTY.value

    @property
    def registration_status(self) -> RegistrationStatus:
        """Get status as RegistrationStatus enum."""
        return RegistrationStatus(self.status)

    @registration_status.setter
    def registration_status(self, value: RegistrationStatus) -> None:
        """Set status from RegistrationStatus enum."""
        self.status = value.value

    @property
    def exam_result(self) -> ExamResult:
        """Get result as ExamResult enum."""
        return ExamResult(self.result)

    @exam_result.setter
    def exam_result(self, value: ExamResult) -> None:
        """Set result from ExamResult enum."""
        self.result = value.value

    def __repr__(self) -> str:
        return (
            f"<Registration(id={self.id!r}, student_id={self.student_id!r}, "
            f"exam_id={self.exam_id!r}, status={self.status!r}, result={self.result!r})>"
        )


@dataclass
class FinalizeOutcome:
    """Outcome of the two-phase finalize of one exam call."""

    recorded: int
    linked: int
    report: Report | None
