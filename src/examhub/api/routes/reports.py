"""Report query endpoints."""

from fastapi import APIRouter, Query

from examhub.api.dependencies import ProfessorIdDep, ReportServiceDep
from examhub.api.models import APIResponse, ReportResponse, report_to_response

router = APIRouter(prefix="/professor/reports", tags=["reports"])


@router.get("", response_model=APIResponse[list[ReportResponse]])
def list_reports(
    professor_id: ProfessorIdDep,
    reports: ReportServiceDep,
    course_id: int = Query(..., description="Course whose reports to list"),
) -> APIResponse[list[ReportResponse]]:
    """List a course's reports, by exam date."""
    found = reports.get_reports_for_course(professor_id, course_id)
    return APIResponse(data=[report_to_response(r) for r in found])


@router.get("/{report_id}", response_model=APIResponse[ReportResponse])
def get_report(
    report_id: int,
    professor_id: ProfessorIdDep,
    reports: ReportServiceDep,
    sort_by: str | None = Query(default=None, description="Sort key, e.g. student.surname"),
    sort_dir: str | None = Query(default=None, description="asc or desc"),
) -> APIResponse[ReportResponse]:
    """Get a report with its registrations."""
    report = reports.get_report_by_id_sorted_by(professor_id, report_id, sort_by, sort_dir)
    return APIResponse(data=report_to_response(report))
