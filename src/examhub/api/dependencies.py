"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import Generator  # noqa: TC003
from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated

from fastapi import Depends, Header

from examhub.lifecycle import ForbiddenError, RegistrationLifecycle, ReportService
from examhub.state_store import StateStore

# Global StateStore instance (initialized on app startup)
_state_store: StateStore | None = None


def init_state_store(db_path: str = "examhub.db") -> StateStore:
    """Initialize the global StateStore instance."""
    global _state_store  # noqa: PLW0603
    _state_store = StateStore(db_path)
    return _state_store


def close_state_store() -> None:
    """Close the global StateStore instance."""
    global _state_store  # noqa: PLW0603
    if _state_store is not None:
        _state_store.close()
        _state_store = None


def get_state_store() -> Generator[StateStore, None, None]:
    """Dependency that provides the StateStore instance."""
    if _state_store is None:
        raise RuntimeError("StateStore not initialized. Call init_state_store() first.")
    yield _state_store


# Type alias for dependency injection
StateStoreDep = Annotated[StateStore, Depends(get_state_store)]


def get_lifecycle(store: StateStoreDep) -> RegistrationLifecycle:
    """Dependency that provides a RegistrationLifecycle over the StateStore."""
    return RegistrationLifecycle(state_store=store)


LifecycleDep = Annotated[RegistrationLifecycle, Depends(get_lifecycle)]


def get_report_service(store: StateStoreDep) -> ReportService:
    """Dependency that provides a ReportService over the StateStore."""
    return ReportService(state_store=store)


ReportServiceDep = Annotated[ReportService, Depends(get_report_service)]


class UserRole(StrEnum):
    """Role asserted by the authenticating proxy alongside the user ID."""

    PROFESSOR = "professor"
    STUDENT = "student"


@dataclass(frozen=True)
class CurrentUser:
    id: int
    role: UserRole


def get_current_user(
    x_user_id: Annotated[int, Header(description="ID of the calling professor or student")],
    x_user_role: Annotated[UserRole, Header(description="Role of the caller")],
) -> CurrentUser:
    """Identity of the caller, set by the authenticating proxy."""
    return CurrentUser(id=x_user_id, role=x_user_role)


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]


def get_professor_id(user: CurrentUserDep) -> int:
    """ID of the calling professor.

    Raises:
        ForbiddenError: If the caller is not a professor.
    """
    if user.role is not UserRole.PROFESSOR:
        raise ForbiddenError("This operation is reserved to professors")
    return user.id


def get_student_id(user: CurrentUserDep) -> int:
    """ID of the calling student.

    Raises:
        ForbiddenError: If the caller is not a student.
    """
    if user.role is not UserRole.STUDENT:
        raise ForbiddenError("This operation is reserved to students")
    return user.id


ProfessorIdDep = Annotated[int, Depends(get_professor_id)]
StudentIdDep = Annotated[int, Depends(get_student_id)]
