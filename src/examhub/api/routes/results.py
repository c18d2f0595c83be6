"""Result lifecycle endpoints."""

from fastapi import APIRouter, status

from examhub.api.dependencies import LifecycleDep, ProfessorIdDep, StudentIdDep
from examhub.api.models import (
    APIResponse,
    BulkResultEditItem,
    FinalizeResponse,
    PublishResponse,
    RegistrationResponse,
    ResultEdit,
    ResultOptionResponse,
    StudentResultResponse,
    registration_to_response,
    result_option_to_response,
    student_result_to_response,
)
from examhub.lifecycle import ResultUpdate

router = APIRouter(tags=["results"])


@router.get("/results/valid", response_model=APIResponse[list[ResultOptionResponse]])
def list_valid_results(lifecycle: LifecycleDep) -> APIResponse[list[ResultOptionResponse]]:
    """Results a professor can assign."""
    return APIResponse(data=[result_option_to_response(r) for r in lifecycle.get_valid_results()])


# Professor operations


@router.patch(
    "/professor/registrations/results",
    response_model=APIResponse[list[RegistrationResponse]],
)
def edit_results_bulk(
    updates: list[BulkResultEditItem], professor_id: ProfessorIdDep, lifecycle: LifecycleDep
) -> APIResponse[list[RegistrationResponse]]:
    """Edit several results at once; nothing is saved if any edit fails."""
    lifecycle.set_result_bulk(
        professor_id,
        [ResultUpdate(registration_id=u.registration_id, result=u.result) for u in updates],
    )
    registrations = lifecycle.get_registrations(
        professor_id, [u.registration_id for u in updates]
    )
    return APIResponse(data=[registration_to_response(r) for r in registrations])


@router.patch(
    "/professor/registrations/{registration_id}/result",
    response_model=APIResponse[RegistrationResponse],
)
def edit_result(
    registration_id: int,
    edit: ResultEdit,
    professor_id: ProfessorIdDep,
    lifecycle: LifecycleDep,
) -> APIResponse[RegistrationResponse]:
    """Edit the result of one registration."""
    lifecycle.set_result(professor_id, registration_id, edit.result)
    registration = lifecycle.get_registration(professor_id, registration_id)
    return APIResponse(data=registration_to_response(registration))


@router.post("/professor/exams/{exam_id}/publish", response_model=APIResponse[PublishResponse])
def publish_results(
    exam_id: int, professor_id: ProfessorIdDep, lifecycle: LifecycleDep
) -> APIResponse[PublishResponse]:
    """Publish every entered result of an exam call."""
    published = lifecycle.publish_results(professor_id, exam_id)
    return APIResponse(data=PublishResponse(published=published))


@router.post(
    "/professor/exams/{exam_id}/finalize",
    response_model=APIResponse[FinalizeResponse],
    status_code=status.HTTP_201_CREATED,
)
def finalize_results(
    exam_id: int, professor_id: ProfessorIdDep, lifecycle: LifecycleDep
) -> APIResponse[FinalizeResponse]:
    """Record published and declined results into a new report."""
    report_id = lifecycle.finalize_results(professor_id, exam_id)
    return APIResponse(data=FinalizeResponse(report_id=report_id))


# Student operations


@router.get("/student/exams/{exam_id}/result", response_model=APIResponse[StudentResultResponse])
def get_result(
    exam_id: int, student_id: StudentIdDep, lifecycle: LifecycleDep
) -> APIResponse[StudentResultResponse]:
    """The student's result for an exam call, if published."""
    view = lifecycle.get_student_result_view(student_id, exam_id)
    return APIResponse(data=student_result_to_response(view))


@router.patch("/student/exams/{exam_id}/decline", status_code=status.HTTP_204_NO_CONTENT)
def decline_result(exam_id: int, student_id: StudentIdDep, lifecycle: LifecycleDep) -> None:
    """Decline a published passing result."""
    lifecycle.decline_exam_result(student_id, exam_id)
