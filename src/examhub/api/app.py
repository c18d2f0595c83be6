"""FastAPI application setup."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from examhub.api.dependencies import close_state_store, init_state_store
from examhub.api.models import APIResponse
from examhub.api.routes import exams, reports, results
from examhub.config import Settings
from examhub.lifecycle import (
    ConflictError,
    ForbiddenError,
    InvalidResultError,
    NotVisibleError,
)
from examhub.state_store import (
    EntityNotFoundError,
    RegistrationExistsError,
    StateStoreError,
    TransitionRejectedError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    db_path = app.state.db_path or Settings.from_env().db_path
    init_state_store(db_path)
    yield
    # Shutdown
    close_state_store()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=APIResponse[None](data=None, error=message).model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map lifecycle and state store errors to HTTP responses."""

    @app.exception_handler(EntityNotFoundError)
    async def not_found_handler(_request: Request, exc: EntityNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(ForbiddenError)
    async def forbidden_handler(_request: Request, exc: ForbiddenError) -> JSONResponse:
        return _error(status.HTTP_403_FORBIDDEN, str(exc))

    @app.exception_handler(NotVisibleError)
    async def not_visible_handler(_request: Request, exc: NotVisibleError) -> JSONResponse:
        return _error(status.HTTP_403_FORBIDDEN, str(exc))

    @app.exception_handler(ConflictError)
    async def conflict_handler(_request: Request, exc: ConflictError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(InvalidResultError)
    async def invalid_result_handler(_request: Request, exc: InvalidResultError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(RegistrationExistsError)
    async def registration_exists_handler(
        _request: Request, _exc: RegistrationExistsError
    ) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, "You are already registered for this exam")

    @app.exception_handler(TransitionRejectedError)
    async def transition_rejected_handler(
        _request: Request, exc: TransitionRejectedError
    ) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(StateStoreError)
    async def state_store_error_handler(_request: Request, _exc: StateStoreError) -> JSONResponse:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(db_path: str | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Database file path. Falls back to EXAMHUB_DB_PATH when None.
    """
    app = FastAPI(
        title="ExamHub API",
        description="REST API for exam registrations and results",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.db_path = db_path

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(exams.router, prefix="/api/v1")
    app.include_router(results.router, prefix="/api/v1")
    app.include_router(reports.router, prefix="/api/v1")

    return app


# Default app instance
app = create_app()
