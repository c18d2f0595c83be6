"""Report assembly - read-only projections of finalized exam calls."""

from __future__ import annotations

from typing import TYPE_CHECKING

from examhub.lifecycle.engine import NOT_OWNER_MESSAGE
from examhub.lifecycle.exceptions import ForbiddenError
from examhub.lifecycle.models import ReportSnapshot
from examhub.lifecycle.sorting import resolve_sort

if TYPE_CHECKING:
    from examhub.state_store import StateStore


class ReportService:
    """Builds report snapshots for the professor who owns the course."""

    def __init__(self, state_store: StateStore) -> None:
        self.state_store = state_store

    def get_report_by_id_sorted_by(
        self,
        professor_id: int,
        report_id: int,
        sort_by: str | None = None,
        sort_dir: str | None = None,
    ) -> ReportSnapshot:
        """Get a report with its registrations in the requested order.

        Args:
            professor_id: The caller.
            report_id: The report's ID.
            sort_by: Sort key, see examhub.lifecycle.sorting.
            sort_dir: "asc" or "desc".

        Raises:
            ReportNotFoundError: If the report doesn't exist.
            ForbiddenError: If the professor doesn't own the report's course.
        """
        report = self.state_store.get_report(report_id)
        if not self.state_store.professor_owns_report(professor_id, report_id):
            raise ForbiddenError(NOT_OWNER_MESSAGE)

        sort = resolve_sort(sort_by, sort_dir)
        registrations = self.state_store.list_registrations_for_report(report_id, sort.order_by())
        return ReportSnapshot.from_model(report, registrations)

    def get_reports_for_course(self, professor_id: int, course_id: int) -> list[ReportSnapshot]:
        """List a course's reports by exam date, without their registrations.

        Raises:
            CourseNotFoundError: If the course doesn't exist.
            ForbiddenError: If the professor doesn't own the course.
        """
        self.state_store.get_course(course_id)
        if not self.state_store.professor_owns_course(professor_id, course_id):
            raise ForbiddenError(NOT_OWNER_MESSAGE)

        return [
            ReportSnapshot.from_model(r)
            for r in self.state_store.list_reports_for_course(course_id, professor_id)
        ]
