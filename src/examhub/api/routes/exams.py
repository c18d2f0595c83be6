"""Exam call and registration endpoints."""

from fastapi import APIRouter, Query, status

from examhub.api.dependencies import LifecycleDep, ProfessorIdDep, StudentIdDep
from examhub.api.models import (
    APIResponse,
    ExamCreate,
    ExamResponse,
    RegistrationResponse,
    exam_to_response,
    registration_to_response,
)

router = APIRouter(tags=["exams"])


@router.get("/courses/{course_id}/exams", response_model=APIResponse[list[ExamResponse]])
def list_exams(course_id: int, lifecycle: LifecycleDep) -> APIResponse[list[ExamResponse]]:
    """List a course's exam calls, most recent first."""
    exams = lifecycle.get_exams_for_course(course_id)
    return APIResponse(data=[exam_to_response(e) for e in exams])


@router.post(
    "/professor/courses/{course_id}/exams",
    response_model=APIResponse[ExamResponse],
    status_code=status.HTTP_201_CREATED,
)
def add_exam_call(
    course_id: int, exam: ExamCreate, professor_id: ProfessorIdDep, lifecycle: LifecycleDep
) -> APIResponse[ExamResponse]:
    """Schedule an exam call."""
    created = lifecycle.add_exam_call(professor_id, course_id, exam.date)
    return APIResponse(data=exam_to_response(created))


@router.get(
    "/professor/exams/{exam_id}/registrations",
    response_model=APIResponse[list[RegistrationResponse]],
)
def list_registrations(
    exam_id: int,
    professor_id: ProfessorIdDep,
    lifecycle: LifecycleDep,
    sort_by: str | None = Query(default=None, description="Sort key, e.g. student.surname"),
    sort_dir: str | None = Query(default=None, description="asc or desc"),
) -> APIResponse[list[RegistrationResponse]]:
    """List the registrations of an exam call."""
    registrations = lifecycle.get_registrations_for_exam(professor_id, exam_id, sort_by, sort_dir)
    return APIResponse(data=[registration_to_response(r) for r in registrations])


@router.get(
    "/student/courses/{course_id}/registered-exams",
    response_model=APIResponse[list[int]],
)
def list_registered_exams(
    course_id: int, student_id: StudentIdDep, lifecycle: LifecycleDep
) -> APIResponse[list[int]]:
    """IDs of the course's exam calls the student is registered for."""
    exam_ids = lifecycle.get_registered_exam_ids(student_id, course_id)
    return APIResponse(data=sorted(exam_ids))


@router.post(
    "/student/exams/{exam_id}/register",
    status_code=status.HTTP_204_NO_CONTENT,
)
def register_for_exam(exam_id: int, student_id: StudentIdDep, lifecycle: LifecycleDep) -> None:
    """Register the student for an exam call."""
    lifecycle.register_student_for_exam(student_id, exam_id)
