"""StateStore - Main API for State Store operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from examhub.state_store.database import Database
from examhub.state_store.exceptions import (
    CourseNotFoundError,
    ExamNotFoundError,
    ProfessorNotFoundError,
    RegistrationExistsError,
    RegistrationNotFoundError,
    ReportNotFoundError,
    StudentNotFoundError,
    TransitionRejectedError,
)
from examhub.state_store.models import (
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
    course_students,
    to_utc_naive,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from sqlalchemy import ColumnElement, Select
    from sqlalchemy.orm import Session


class StateStore:
    """Main API for State Store operations.

    Provides catalog CRUD, the existence queries behind access control, and
    the registration transitions. Every transition is a conditional UPDATE
    whose WHERE clause carries the expected status and ``report_id IS NULL``,
    so a row that changed concurrently is never overwritten.
    """

    def __init__(self, db_path: str = "examhub.db") -> None:
        """Initialize State Store with SQLite database.

        Creates database, tables and reference data if they don't exist.

        Args:
            db_path: Path to SQLite database file

        Raises:
            ReferenceDataError: If the status/result vocabularies are incomplete
        """
        self._db = Database(db_path)
        self._db.create_tables()
        self._db.verify_reference_data()

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    # --- Catalog Operations ---

    def create_professor(self, name: str, surname: str, email: str) -> Professor:
        """Create a new professor."""
        session = self._db.get_session(write=True)
        try:
            with session.begin():
                professor = Professor(name=name, surname=surname, email=email)
                session.add(professor)
            return professor
        finally:
            session.close()

    def get_professor(self, professor_id: int) -> Professor:
        """Get professor by ID.

        Raises:
            ProfessorNotFoundError: If professor doesn't exist
        """
        session = self._db.get_session()
        try:
            professor = session.get(Professor, professor_id)
            if professor is None:
                raise ProfessorNotFoundError(f"Professor with id '{professor_id}' not found")
            return professor
        finally:
            session.close()

    def create_student(
        self,
        number: int,
        name: str,
        surname: str,
        email: str,
        major: str | None = None,
    ) -> Student:
        """Create a new student."""
        session = self._db.get_session(write=True)
        try:
            with session.begin():
                student = Student(
                    number=number, name=name, surname=surname, email=email, major=major
                )
                session.add(student)
            return student
        finally:
            session.close()

    def get_student(self, student_id: int) -> Student:
        """Get student by ID.

        Raises:
            StudentNotFoundError: If student doesn't exist
        """
        session = self._db.get_session()
        try:
            student = session.get(Student, student_id)
            if student is None:
                raise StudentNotFoundError(f"Student with id '{student_id}' not found")
            return student
        finally:
            session.close()

    def create_course(self, name: str, professor_id: int, cfu: int = 6) -> Course:
        """Create a course taught by the given professor.

        Raises:
            ProfessorNotFoundError: If professor doesn't exist
        """
        session = self._db.get_session(write=True)
        try:
            with session.begin():
                if session.get(Professor, professor_id) is None:
                    raise ProfessorNotFoundError(f"Professor with id '{professor_id}' not found")
                course = Course(name=name, professor_id=professor_id, cfu=cfu)
                session.add(course)
            return course
        finally:
            session.close()

    def get_course(self, course_id: int) -> Course:
        """Get course by ID.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        session = self._db.get_session()
        try:
            course = session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError(f"Course with id '{course_id}' not found")
            return course
        finally:
            session.close()

    def enroll_student(self, course_id: int, student_id: int) -> None:
        """Enroll a student in a course. Enrolling twice is a no-op.

        Raises:
            CourseNotFoundError: If course doesn't exist
            StudentNotFoundError: If student doesn't exist
        """
        session = self._db.get_session(write=True)
        try:
            with session.begin():
                course = session.get(Course, course_id)
                if course is None:
                    raise CourseNotFoundError(f"Course with id '{course_id}' not found")
                student = session.get(Student, student_id)
                if student is None:
                    raise StudentNotFoundError(f"Student with id '{student_id}' not found")
                if student not in course.students:
                    course.students.append(student)
        finally:
            session.close()

    def create_exam(self, course_id: int, date: datetime) -> Exam:
        """Create an exam call for a course.

        Offset-aware dates are converted to UTC; naive dates are taken as UTC.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        session = self._db.get_session(write=True)
        try:
            with session.begin():
                if session.get(Course, course_id) is None:
                    raise CourseNotFoundError(f"Course with id '{course_id}' not found")
                exam = Exam(course_id=course_id, date=to_utc_naive(date))
                session.add(exam)
            return exam
        finally:
            session.close()

    def get_exam(self, exam_id: int) -> Exam:
        """Get exam call by ID, with its course loaded.

        Raises:
            ExamNotFoundError: If exam doesn't exist
        """
        session = self._db.get_session()
        try:
            exam = session.get(Exam, exam_id, options=[selectinload(Exam.course)])
            if exam is None:
                raise ExamNotFoundError(f"Exam with id '{exam_id}' not found")
            return exam
        finally:
            session.close()

    def list_exams_for_course(self, course_id: int) -> list[Exam]:
        """List exam calls of a course, most recent first."""
        session = self._db.get_session()
        try:
            stmt = (
                select(Exam)
                .where(Exam.course_id == course_id)
                .options(selectinload(Exam.course))
                .order_by(Exam.date.desc(), Exam.id.desc())
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    # --- Access Control Queries ---

    def professor_owns_course(self, professor_id: int, course_id: int) -> bool:
        """Check whether the professor teaches the course.

        Args:
            professor_id: The professor's ID
            course_id: The course's ID

        Returns:
            True if the course exists and is taught by the professor
        """
        return self._exists(
            select(Course.id).where(Course.id == course_id, Course.professor_id == professor_id)
        )

    def professor_owns_exam(self, professor_id: int, exam_id: int) -> bool:
        """Check whether the professor teaches the course of an exam call.

        Args:
            professor_id: The professor's ID
            exam_id: The exam call's ID

        Returns:
            True if the exam exists and its course is taught by the professor
        """
        return self._exists(
            select(Exam.id)
            .join(Exam.course)
            .where(Exam.id == exam_id, Course.professor_id == professor_id)
        )

    def professor_owns_registration(self, professor_id: int, registration_id: int) -> bool:
        """Check whether a registration belongs to an exam the professor owns.

        Args:
            professor_id: The professor's ID
            registration_id: The registration's ID

        Returns:
            True if the registration exists and its exam's course is taught by the professor
        """
        return self._exists(
            select(Registration.id)
            .join(Registration.exam)
            .join(Exam.course)
            .where(Registration.id == registration_id, Course.professor_id == professor_id)
        )

    def professor_owns_report(self, professor_id: int, report_id: int) -> bool:
        """Check whether a report belongs to an exam the professor owns.

        Args:
            professor_id: The professor's ID
            report_id: The report's ID

        Returns:
            True if the report exists and its exam's course is taught by the professor
        """
        return self._exists(
            select(Report.id)
            .join(Report.exam)
            .join(Exam.course)
            .where(Report.id == report_id, Course.professor_id == professor_id)
        )

    def student_enrolled_for_exam(self, student_id: int, exam_id: int) -> bool:
        """Check whether the student is enrolled in the course of an exam call.

        Args:
            student_id: The student's ID
            exam_id: The exam call's ID

        Returns:
            True if the exam exists and the student is enrolled in its course
        """
        return self._exists(
            select(Exam.id)
            .join(course_students, course_students.c.course_id == Exam.course_id)
            .where(Exam.id == exam_id, course_students.c.student_id == student_id)
        )

    def registration_exists(self, student_id: int, exam_id: int) -> bool:
        """Check whether the student is already registered for an exam call.

        Args:
            student_id: The student's ID
            exam_id: The exam call's ID

        Returns:
            True if a registration exists for the pair
        """
        return self._exists(
            select(Registration.id).where(
                Registration.student_id == student_id, Registration.exam_id == exam_id
            )
        )

    def _exists(self, stmt: Select) -> bool:
        """Run ``SELECT EXISTS (stmt)`` in a read-only session."""
        session = self._db.get_session()
        try:
            return bool(session.execute(select(stmt.exists())).scalar())
        finally:
            session.close()

    # --- Registration Queries ---

    def create_registration(self, student_id: int, exam_id: int) -> Registration:
        """Register a student for an exam call.

        The new registration starts as NOT_ENTERED with an EMPTY result.

        Raises:
            RegistrationExistsError: If the student is already registered
        """
        session = self._db.get_session(write=True)
        try:
            with session.begin():
                registration = Registration(student_id=student_id, exam_id=exam_id)
                session.add(registration)
            return registration
        except IntegrityError as e:
            if "UNIQUE constraint failed" in str(e) or "uq_registration_student_exam" in str(e):
                raise RegistrationExistsError(
                    f"Student '{student_id}' is already registered for exam '{exam_id}'"
                ) from e
            raise
        finally:
            session.close()

    def get_registration(self, registration_id: int) -> Registration:
        """Get registration by ID with student, exam and course loaded.

        Raises:
            RegistrationNotFoundError: If registration doesn't exist
        """
        session = self._db.get_session()
        try:
            stmt = _registration_query().where(Registration.id == registration_id)
            registration = session.execute(stmt).scalar_one_or_none()
            if registration is None:
                raise RegistrationNotFoundError(
                    f"Registration with id '{registration_id}' not found"
                )
            return registration
        finally:
            session.close()

    def get_registration_by_student(self, student_id: int, exam_id: int) -> Registration:
        """Get the registration of a student for an exam call.

        Raises:
            RegistrationNotFoundError: If the student is not registered
        """
        session = self._db.get_session()
        try:
            stmt = _registration_query().where(
                Registration.student_id == student_id, Registration.exam_id == exam_id
            )
            registration = session.execute(stmt).scalar_one_or_none()
            if registration is None:
                raise RegistrationNotFoundError(
                    f"No registration found for student '{student_id}' on exam '{exam_id}'"
                )
            return registration
        finally:
            session.close()

    def list_registrations_for_exam(
        self,
        exam_id: int,
        order_by: Sequence[ColumnElement] = (),
    ) -> list[Registration]:
        """List registrations of an exam call.

        Args:
            exam_id: The exam call's ID
            order_by: Ordering over Registration, Student, StatusEntry and ResultEntry
                columns. Registration id is always the final tie-breaker.
        """
        return self._list_registrations(Registration.exam_id == exam_id, order_by)

    def list_registrations_for_report(
        self,
        report_id: int,
        order_by: Sequence[ColumnElement] = (),
    ) -> list[Registration]:
        """List registrations sealed by a report. See list_registrations_for_exam."""
        return self._list_registrations(Registration.report_id == report_id, order_by)

    def _list_registrations(
        self, criterion: ColumnElement[bool], order_by: Sequence[ColumnElement]
    ) -> list[Registration]:
        session = self._db.get_session()
        try:
            stmt = (
                _registration_query()
                .join(Registration.student)
                .join(StatusEntry, StatusEntry.code == Registration.status)
                .join(ResultEntry, ResultEntry.code == Registration.result)
                .where(criterion)
                .order_by(*order_by, Registration.id.asc())
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def registered_exam_ids(self, student_id: int, course_id: int) -> set[int]:
        """IDs of the course's exam calls the student is registered for."""
        session = self._db.get_session()
        try:
            stmt = (
                select(Registration.exam_id)
                .join(Registration.exam)
                .where(Registration.student_id == student_id, Exam.course_id == course_id)
            )
            return set(session.execute(stmt).scalars().all())
        finally:
            session.close()

    # --- Registration Transitions ---

    def set_result(self, registration_id: int, result: ExamResult) -> Registration:
        """Write a result on an editable registration.

        NOT_ENTERED is promoted to ENTERED; ENTERED stays ENTERED.

        Raises:
            RegistrationNotFoundError: If registration doesn't exist
            TransitionRejectedError: If the registration is not editable
        """
        session = self._db.get_session(write=True)
        try:
            with session.begin():
                return _write_result(session, registration_id, result)
        finally:
            session.close()

    def set_results(self, updates: Sequence[tuple[int, ExamResult]]) -> list[Registration]:
        """Write several results in one transaction.

        Updates are applied in order; the first failure rolls back the whole batch.

        Args:
            updates: (registration_id, result) pairs

        Raises:
            RegistrationNotFoundError: If a registration doesn't exist
            TransitionRejectedError: If a registration is not editable
        """
        session = self._db.get_session(write=True)
        try:
            with session.begin():
                return [
                    _write_result(session, registration_id, result)
                    for registration_id, result in updates
                ]
        finally:
            session.close()

    def decline_result(self, student_id: int, exam_id: int) -> Registration:
        """Move a published passing result to DECLINED.

        Raises:
            RegistrationNotFoundError: If the student is not registered
            TransitionRejectedError: If the status is not PUBLISHED or the result
                is below the minimum passing grade
        """
        session = self._db.get_session(write=True)
        try:
            with session.begin():
                stmt = (
                    _registration_query()
                    .where(Registration.student_id == student_id, Registration.exam_id == exam_id)
                    .with_for_update()
                )
                registration = session.execute(stmt).scalar_one_or_none()
                if registration is None:
                    raise RegistrationNotFoundError(
                        f"No registration found for student '{student_id}' on exam '{exam_id}'"
                    )
                if not _is_declinable(registration):
                    raise _rejected(registration, "cannot be declined")

                rows = session.execute(
                    update(Registration)
                    .where(
                        Registration.id == registration.id,
                        Registration.status == RegistrationStatus.PUBLISHED.value,
                        Registration.result == registration.result,
                        Registration.report_id.is_(None),
                    )
                    .values(status=RegistrationStatus.DECLINED.value)
                ).rowcount
                if rows == 0:
                    session.refresh(registration)
                    raise _rejected(registration, "cannot be declined")
                return registration
        finally:
            session.close()

    def publish_entered(self, exam_id: int) -> int:
        """Publish every ENTERED registration of an exam call.

        Returns:
            Number of registrations published
        """
        session = self._db.get_session(write=True)
        try:
            with session.begin():
                return session.execute(
                    update(Registration)
                    .where(
                        Registration.exam_id == exam_id,
                        Registration.status == RegistrationStatus.ENTERED.value,
                        Registration.report_id.is_(None),
                    )
                    .values(status=RegistrationStatus.PUBLISHED.value)
                    .execution_options(synchronize_session=False)
                ).rowcount
        finally:
            session.close()

    def finalize_exam(self, exam_id: int, created_at: datetime) -> FinalizeOutcome:
        """Record finalizable registrations and seal them into a new report.

        Runs in one transaction:
        1. PUBLISHED/DECLINED rows without a report become RECORDED; DECLINED rows
           get the POSTPONED result.
        2. A report is created, unless step 1 touched no rows.
        3. RECORDED rows without a report are linked to the new report.

        Args:
            exam_id: The exam call's ID
            created_at: Report timestamp

        Returns:
            FinalizeOutcome; its report is None when nothing was finalizable
        """
        session = self._db.get_session(write=True)
        try:
            with session.begin():
                recorded = session.execute(
                    update(Registration)
                    .where(
                        Registration.exam_id == exam_id,
                        Registration.status.in_(
                            [s.value for s in RegistrationStatus if s.is_finalizable]
                        ),
                        Registration.report_id.is_(None),
                    )
                    .values(
                        result=case(
                            (
                                Registration.status == RegistrationStatus.DECLINED.value,
                                ExamResult.POSTPONED.value,
                            ),
                            else_=Registration.result,
                        ),
                        status=RegistrationStatus.RECORDED.value,
                    )
                    .execution_options(synchronize_session=False)
                ).rowcount
                if recorded == 0:
                    return FinalizeOutcome(recorded=0, linked=0, report=None)

                report = Report(exam_id=exam_id, created_at=to_utc_naive(created_at))
                session.add(report)
                session.flush()

                linked = session.execute(
                    update(Registration)
                    .where(
                        Registration.exam_id == exam_id,
                        Registration.status == RegistrationStatus.RECORDED.value,
                        Registration.report_id.is_(None),
                    )
                    .values(report_id=report.id)
                    .execution_options(synchronize_session=False)
                ).rowcount
            return FinalizeOutcome(recorded=recorded, linked=linked, report=report)
        finally:
            session.close()

    # --- Report Queries ---

    def get_report(self, report_id: int) -> Report:
        """Get report by ID with its exam and course loaded.

        Raises:
            ReportNotFoundError: If report doesn't exist
        """
        session = self._db.get_session()
        try:
            report = session.get(
                Report,
                report_id,
                options=[selectinload(Report.exam).selectinload(Exam.course)],
            )
            if report is None:
                raise ReportNotFoundError(f"Report with id '{report_id}' not found")
            return report
        finally:
            session.close()

    def list_reports_for_course(self, course_id: int, professor_id: int) -> list[Report]:
        """List reports of a course owned by the professor, by exam date ascending."""
        session = self._db.get_session()
        try:
            stmt = (
                select(Report)
                .join(Report.exam)
                .join(Exam.course)
                .where(Exam.course_id == course_id, Course.professor_id == professor_id)
                .options(selectinload(Report.exam).selectinload(Exam.course))
                .order_by(Exam.date.asc(), Report.created_at.asc(), Report.id.asc())
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()


def _registration_query() -> Select:
    return select(Registration).options(
        selectinload(Registration.student),
        selectinload(Registration.exam).selectinload(Exam.course),
    )


def _is_declinable(registration: Registration) -> bool:
    return (
        registration.registration_status.is_declinable
        and registration.report_id is None
        and registration.exam_result.is_passing
    )


def _write_result(session: Session, registration_id: int, result: ExamResult) -> Registration:
    stmt = _registration_query().where(Registration.id == registration_id).with_for_update()
    registration = session.execute(stmt).scalar_one_or_none()
    if registration is None:
        raise RegistrationNotFoundError(f"Registration with id '{registration_id}' not found")

    current = registration.registration_status
    if not current.is_editable or registration.report_id is not None:
        raise _rejected(registration, f"is {current.value}")

    if current is RegistrationStatus.NOT_ENTERED:
        new_status = RegistrationStatus.ENTERED
    else:
        new_status = current

    rows = session.execute(
        update(Registration)
        .where(
            Registration.id == registration_id,
            Registration.status == current.value,
            Registration.report_id.is_(None),
        )
        .values(status=new_status.value, result=result.value)
    ).rowcount
    if rows == 0:
        # Changed by a concurrent bulk transition
        session.refresh(registration)
        raise _rejected(registration, f"is {registration.status}")
    return registration


def _rejected(registration: Registration, reason: str) -> TransitionRejectedError:
    return TransitionRejectedError(
        f"Registration '{registration.id}' {reason}",
        status=registration.registration_status,
        result=registration.exam_result,
    )
