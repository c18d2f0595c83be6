"""Status and result reference data.

Both vocabularies are closed enums mirrored by lookup tables. The tables are
seeded once when the schema is created and are never written afterwards.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from examhub.state_store.exceptions import ReferenceDataError
from examhub.state_store.models import (
    ExamResult,
    RegistrationStatus,
    ResultEntry,
    StatusEntry,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

STATUS_LABELS: dict[RegistrationStatus, str] = {
    RegistrationStatus.NOT_ENTERED: "not entered",
    RegistrationStatus.ENTERED: "entered",
    RegistrationStatus.PUBLISHED: "published",
    RegistrationStatus.DECLINED: "declined",
    RegistrationStatus.RECORDED: "recorded",
}

RESULT_LABELS: dict[ExamResult, str] = {
    ExamResult.EMPTY: "",
    ExamResult.ABSENT: "absent",
    ExamResult.FAILED: "failed",
    ExamResult.POSTPONED: "postponed",
    ExamResult.GRADE_30_LAUDE: "30 cum laude",
}


def status_label(status: RegistrationStatus) -> str:
    return STATUS_LABELS[status]


def result_label(result: ExamResult) -> str:
    # Numeric grades are their own label
    return RESULT_LABELS.get(result, result.value)


def seed_vocabularies(session: Session) -> int:
    """Insert any missing status and result rows.

    Args:
        session: Session with an open transaction.

    Returns:
        Number of rows inserted.
    """
    existing_statuses = set(session.execute(select(StatusEntry.code)).scalars())
    existing_results = set(session.execute(select(ResultEntry.code)).scalars())

    inserted = 0
    for status in RegistrationStatus:
        if status.value not in existing_statuses:
            session.add(
                StatusEntry(code=status.value, label=status_label(status), position=status.position)
            )
            inserted += 1
    for result in ExamResult:
        if result.value not in existing_results:
            session.add(ResultEntry(code=result.value, label=result_label(result), rank=result.rank))
            inserted += 1

    if inserted:
        logger.info("Seeded %d vocabulary rows", inserted)
    return inserted


def verify_vocabularies(session: Session) -> None:
    """Check that the stored vocabularies match the enums.

    Raises:
        ReferenceDataError: If a status or result row is missing or out of order.
    """
    statuses = {row.code: row for row in session.execute(select(StatusEntry)).scalars()}
    for status in RegistrationStatus:
        row = statuses.get(status.value)
        if row is None or row.position != status.position:
            raise ReferenceDataError(f"Database missing status '{status.value}'")

    results = {row.code: row for row in session.execute(select(ResultEntry)).scalars()}
    for result in ExamResult:
        row = results.get(result.value)
        if row is None or row.rank != result.rank:
            raise ReferenceDataError(f"Database missing result '{result.value}'")
