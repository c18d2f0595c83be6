"""Sort keys for registration listings.

Maps the keys a caller may pass to state store columns. Unknown keys fall
back to the student number.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from examhub.state_store import ResultEntry, StatusEntry, Student

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement

DEFAULT_SORT = "student.number"
DEFAULT_DIR = "asc"

SORT_COLUMNS = {
    "student.number": Student.number,
    "student.surname": Student.surname,
    "student.name": Student.name,
    "student.email": Student.email,
    "student.major": Student.major,
    "result": ResultEntry.rank,
    "status": StatusEntry.position,
}


@dataclass(frozen=True)
class RegistrationSort:
    """A validated sort key and direction."""

    key: str = DEFAULT_SORT
    descending: bool = False

    def order_by(self) -> list[ColumnElement]:
        column = SORT_COLUMNS[self.key]
        return [column.desc() if self.descending else column.asc()]


def resolve_sort(sort_by: str | None = None, sort_dir: str | None = None) -> RegistrationSort:
    """Build a RegistrationSort from caller input.

    Args:
        sort_by: One of SORT_COLUMNS; blank or unknown values use DEFAULT_SORT.
        sort_dir: "desc" (any case) for descending; anything else is ascending.
    """
    key = (sort_by or "").strip() or DEFAULT_SORT
    if key not in SORT_COLUMNS:
        key = DEFAULT_SORT
    descending = (sort_dir or DEFAULT_DIR).strip().lower() == "desc"
    return RegistrationSort(key=key, descending=descending)
