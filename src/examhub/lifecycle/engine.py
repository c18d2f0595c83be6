"""Registration lifecycle - exam result state machine.

Status transitions of a registration::

    not_entered --set result--> entered --publish--> published
    published --decline--> declined
    published / declined --finalize--> recorded (declined results become postponed)

Professors edit results only while a registration is not_entered or entered.
Publish and finalize act on every eligible registration of an exam call at
once, through conditional bulk updates in the state store.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from examhub.lifecycle.exceptions import (
    AlreadyRegisteredError,
    ForbiddenError,
    InvalidResultError,
    InvalidStateError,
    NothingToFinalizeError,
    NothingToPublishError,
    NotVisibleError,
)
from examhub.lifecycle.models import (
    ExamSnapshot,
    RegistrationSnapshot,
    ResultOption,
    ResultUpdate,
    StudentResultView,
)
from examhub.lifecycle.sorting import resolve_sort
from examhub.state_store import (
    ExamResult,
    RegistrationExistsError,
    RegistrationNotFoundError,
    TransitionRejectedError,
)
from examhub.state_store.vocabulary import result_label, status_label

if TYPE_CHECKING:
    from collections.abc import Sequence

    from examhub.state_store import Registration, StateStore

logger = logging.getLogger(__name__)

NOT_OWNER_MESSAGE = "Make sure you are the professor of this course"


class RegistrationLifecycle:
    """Drives registrations through their lifecycle.

    Checks ownership and enrollment, validates results, and maps state store
    rejections to lifecycle errors. All writes go through conditional updates
    in the StateStore.
    """

    def __init__(self, state_store: StateStore) -> None:
        """Initialize the lifecycle engine.

        Args:
            state_store: StateStore instance for persistence.
        """
        self.state_store = state_store

    # --- Exam calls ---

    def add_exam_call(self, professor_id: int, course_id: int, date: datetime) -> ExamSnapshot:
        """Schedule a new exam call for a course the professor teaches.

        Raises:
            CourseNotFoundError: If the course doesn't exist.
            ForbiddenError: If the professor doesn't own the course.
        """
        self.state_store.get_course(course_id)
        if not self.state_store.professor_owns_course(professor_id, course_id):
            raise ForbiddenError(NOT_OWNER_MESSAGE)

        exam = self.state_store.create_exam(course_id, date)
        logger.info("Exam %s scheduled for course %s on %s", exam.id, course_id, date)
        return ExamSnapshot.from_model(self.state_store.get_exam(exam.id))

    def get_exams_for_course(self, course_id: int) -> list[ExamSnapshot]:
        """List a course's exam calls, most recent first."""
        return [
            ExamSnapshot.from_model(e) for e in self.state_store.list_exams_for_course(course_id)
        ]

    # --- Student operations ---

    def get_registered_exam_ids(self, student_id: int, course_id: int) -> set[int]:
        return self.state_store.registered_exam_ids(student_id, course_id)

    def register_student_for_exam(self, student_id: int, exam_id: int) -> None:
        """Register a student for an exam call.

        Raises:
            StudentNotFoundError: If the student doesn't exist.
            ExamNotFoundError: If the exam call doesn't exist.
            ForbiddenError: If the student is not enrolled in the exam's course.
            AlreadyRegisteredError: If the student is already registered.
        """
        self.state_store.get_student(student_id)
        self.state_store.get_exam(exam_id)

        if not self.state_store.student_enrolled_for_exam(student_id, exam_id):
            raise ForbiddenError("You must be enrolled in the course to register for its exams")
        if self.state_store.registration_exists(student_id, exam_id):
            raise AlreadyRegisteredError("You are already registered for this exam")

        try:
            registration = self.state_store.create_registration(student_id, exam_id)
        except RegistrationExistsError as e:
            raise AlreadyRegisteredError("You are already registered for this exam") from e

        logger.info(
            "Student %s registered for exam %s (registration %s)",
            student_id,
            exam_id,
            registration.id,
        )

    def get_result_by_student_id_and_exam_id(
        self, student_id: int, exam_id: int
    ) -> RegistrationSnapshot:
        """Get a student's result once it has been published.

        Raises:
            RegistrationNotFoundError: If the student is not registered.
            NotVisibleError: If the result is not published yet.
        """
        registration = self.state_store.get_registration_by_student(student_id, exam_id)
        if not registration.registration_status.is_visible_to_student:
            raise NotVisibleError("The result has not been published yet")
        return RegistrationSnapshot.from_model(registration)

    def get_student_result_view(self, student_id: int, exam_id: int) -> StudentResultView:
        """Like get_result_by_student_id_and_exam_id, but never raises for hidden results."""
        try:
            registration = self.get_result_by_student_id_and_exam_id(student_id, exam_id)
        except (NotVisibleError, RegistrationNotFoundError) as e:
            return StudentResultView(
                registration=None, is_published=False, can_be_declined=False, message=str(e)
            )
        return StudentResultView(
            registration=registration,
            is_published=True,
            can_be_declined=registration.can_be_declined,
        )

    def decline_exam_result(self, student_id: int, exam_id: int) -> None:
        """Decline a published passing result.

        Raises:
            RegistrationNotFoundError: If the student is not registered.
            InvalidStateError: If the result is not published or not a passing grade.
        """
        try:
            self.state_store.decline_result(student_id, exam_id)
        except TransitionRejectedError as e:
            logger.warning(
                "Student %s cannot decline exam %s: status=%s result=%s",
                student_id,
                exam_id,
                e.status.value,
                e.result.value,
            )
            raise InvalidStateError("You cannot decline this result", status=e.status) from e

        logger.info("Student %s declined result of exam %s", student_id, exam_id)

    # --- Professor operations ---

    def get_registrations_for_exam(
        self,
        professor_id: int,
        exam_id: int,
        sort_by: str | None = None,
        sort_dir: str | None = None,
    ) -> list[RegistrationSnapshot]:
        """List an exam call's registrations in the requested order.

        Raises:
            ForbiddenError: If the professor doesn't own the exam's course.
        """
        self._assert_professor_owns_exam(professor_id, exam_id)
        sort = resolve_sort(sort_by, sort_dir)
        registrations = self.state_store.list_registrations_for_exam(exam_id, sort.order_by())
        return [RegistrationSnapshot.from_model(r) for r in registrations]

    def get_registration(self, professor_id: int, registration_id: int) -> RegistrationSnapshot:
        """Get one registration of an exam the professor owns.

        Raises:
            RegistrationNotFoundError: If the registration doesn't exist.
            ForbiddenError: If the professor doesn't own the exam's course.
        """
        return RegistrationSnapshot.from_model(
            self._get_owned_registration(professor_id, registration_id)
        )

    def get_registrations(
        self, professor_id: int, registration_ids: Sequence[int]
    ) -> list[RegistrationSnapshot]:
        return [self.get_registration(professor_id, rid) for rid in registration_ids]

    def get_valid_results(self) -> list[ResultOption]:
        """Results a professor can assign, in rank order."""
        return [
            ResultOption(code=r, label=result_label(r), rank=r.rank)
            for r in ExamResult
            if r is not ExamResult.EMPTY
        ]

    def set_result(
        self, professor_id: int, registration_id: int, result: ExamResult | str
    ) -> None:
        """Write a result on an editable registration.

        Raises:
            InvalidResultError: If the result is unknown or EMPTY.
            RegistrationNotFoundError: If the registration doesn't exist.
            ForbiddenError: If the professor doesn't own the exam's course.
            InvalidStateError: If the registration is no longer editable.
        """
        exam_result = _parse_result(result)
        self._get_owned_registration(professor_id, registration_id)

        try:
            self.state_store.set_result(registration_id, exam_result)
        except TransitionRejectedError as e:
            raise _not_editable(e) from e

        logger.info("Registration %s result set to %s", registration_id, exam_result.value)

    def set_result_bulk(self, professor_id: int, updates: Sequence[ResultUpdate]) -> None:
        """Write several results, all or nothing.

        Every item is validated and checked for ownership before anything is
        written; the writes then run in one transaction, in the given order.
        The first failing item aborts the batch.

        Raises:
            Same as set_result, for the first failing item.
        """
        parsed = [(u.registration_id, _parse_result(u.result)) for u in updates]
        for registration_id, _ in parsed:
            self._get_owned_registration(professor_id, registration_id)

        if not parsed:
            return

        try:
            self.state_store.set_results(parsed)
        except TransitionRejectedError as e:
            logger.warning("Bulk result edit rolled back")
            raise _not_editable(e) from e

        logger.info("Bulk result edit applied to %d registrations", len(parsed))

    def publish_results(self, professor_id: int, exam_id: int) -> int:
        """Publish every entered result of an exam call.

        Returns:
            Number of registrations published.

        Raises:
            ForbiddenError: If the professor doesn't own the exam's course.
            NothingToPublishError: If no registration was in the entered state.
        """
        self._assert_professor_owns_exam(professor_id, exam_id)

        published = self.state_store.publish_entered(exam_id)
        if published == 0:
            logger.warning("Nothing to publish for exam %s", exam_id)
            raise NothingToPublishError("There are no results to publish")

        logger.info("Published %d results for exam %s", published, exam_id)
        return published

    def finalize_results(self, professor_id: int, exam_id: int) -> int:
        """Record published and declined results into a new report.

        Returns:
            ID of the new report.

        Raises:
            ForbiddenError: If the professor doesn't own the exam's course.
            NothingToFinalizeError: If no registration was published or declined.
        """
        self._assert_professor_owns_exam(professor_id, exam_id)

        outcome = self.state_store.finalize_exam(exam_id, created_at=datetime.now(UTC))
        if outcome.report is None:
            logger.warning("Nothing to finalize for exam %s", exam_id)
            raise NothingToFinalizeError("There are no results to record")

        logger.info(
            "Exam %s finalized into report %s (%d recorded, %d linked)",
            exam_id,
            outcome.report.id,
            outcome.recorded,
            outcome.linked,
        )
        return outcome.report.id

    # --- Helpers ---

    def _assert_professor_owns_exam(self, professor_id: int, exam_id: int) -> None:
        if not self.state_store.professor_owns_exam(professor_id, exam_id):
            raise ForbiddenError(NOT_OWNER_MESSAGE)

    def _get_owned_registration(self, professor_id: int, registration_id: int) -> Registration:
        registration = self.state_store.get_registration(registration_id)
        if not self.state_store.professor_owns_registration(professor_id, registration_id):
            raise ForbiddenError(NOT_OWNER_MESSAGE)
        return registration


def _parse_result(result: ExamResult | str) -> ExamResult:
    try:
        exam_result = ExamResult(result)
    except ValueError as e:
        raise InvalidResultError(f"Result '{result}' does not exist") from e
    if exam_result is ExamResult.EMPTY:
        raise InvalidResultError("An empty result cannot be assigned")
    return exam_result


def _not_editable(error: TransitionRejectedError) -> InvalidStateError:
    logger.warning("Result edit rejected: %s", error)
    return InvalidStateError(
        f"You cannot edit a {status_label(error.status)} registration", status=error.status
    )
