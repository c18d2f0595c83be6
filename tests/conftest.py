"""Shared pytest fixtures and configuration."""

from dataclasses import dataclass
from datetime import datetime

import pytest

from examhub.state_store import Course, Exam, Professor, StateStore, Student


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Shared fixtures


@dataclass
class Campus:
    """A course with its professor, enrolled students and one exam call."""

    professor: Professor
    other_professor: Professor
    course: Course
    exam: Exam
    students: list[Student]
    outsider: Student


def build_campus(store: StateStore) -> Campus:
    """Populate a store with a small course catalog."""
    professor = store.create_professor(name="Ada", surname="Lovelace", email="ada@uni.example")
    other = store.create_professor(name="Alan", surname="Turing", email="alan@uni.example")
    course = store.create_course(name="Algorithms", professor_id=professor.id, cfu=10)

    students = [
        store.create_student(1003, "Mario", "Rossi", "mario@uni.example", major="Computer Science"),
        store.create_student(1001, "Luca", "Bianchi", "luca@uni.example", major="Mathematics"),
        store.create_student(1002, "Anna", "Verdi", "anna@uni.example", major="Physics"),
    ]
    for student in students:
        store.enroll_student(course.id, student.id)
    outsider = store.create_student(2001, "Giulia", "Neri", "giulia@uni.example")

    exam = store.create_exam(course.id, datetime(2026, 6, 15, 9, 0))
    return Campus(
        professor=professor,
        other_professor=other,
        course=course,
        exam=exam,
        students=students,
        outsider=outsider,
    )


@pytest.fixture
def store() -> StateStore:
    """Create an in-memory StateStore."""
    s = StateStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def campus(store: StateStore) -> Campus:
    """Create a professor, a course, enrolled students and an exam call."""
    return build_campus(store)
