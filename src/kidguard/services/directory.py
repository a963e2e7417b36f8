"""Read access to the student and wallet-role directories."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Protocol

from sqlalchemy.orm import Session

from kidguard.models import Student
from kidguard.services.records import StudentRecord


class StudentDirectory(Protocol):
    def get_student(self, student_id: str) -> StudentRecord | None: ...


class SqlAlchemyStudentDirectory:
    """Student lookups against the ``student`` table."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get_student(self, student_id: str) -> StudentRecord | None:
        with self._session_factory() as session:
            row = session.get(Student, student_id)
            if row is None:
                return None
            return StudentRecord(
                id=row.id,
                name=row.name,
                parent_wallet=row.parent_wallet,
                grade=row.grade,
            )


class InMemoryStudentDirectory:
    def __init__(self, students: Iterable[StudentRecord] = ()) -> None:
        self._students = {student.id: student for student in students}

    def add(self, student: StudentRecord) -> None:
        self._students[student.id] = student

    def get_student(self, student_id: str) -> StudentRecord | None:
        return self._students.get(student_id)
