from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from ..app_logger import get_logger
from ..common.roll_numbers import sort_by_roll_number
from ..common.validators import require_non_empty
from ..core.constants import ROLL_NO_SEARCH_LIMIT, VALID_YEARS
from ..core.enums import SuperPaccFlag
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import WIRE_NAMES, ClassFilter, ClassKey, ClassSummary, Student, StudentPatch
from .repository import StudentRepository

logger = get_logger(__name__)

REQUIRED_FIELDS = ("roll_no", "name", "branch")


@dataclass(frozen=True)
class SuperPaccBatchResult:
    updated: list[str]
    not_found: list[str]


class StudentService:
    """Use case: roster management (create, edit, delete, search, promote)."""

    def __init__(self, students: StudentRepository):
        self._students = students

    def create_student(self, payload: Mapping[str, Any]) -> Student:
        patch = StudentPatch.from_payload(payload)
        if patch.is_empty():
            raise ValidationError("No student data provided")
        values = patch.changes()
        for field in REQUIRED_FIELDS:
            if not values.get(field):
                raise ValidationError(f"{WIRE_NAMES[field]} is required")
        values.setdefault("super_pacc", SuperPaccFlag.NO.value)

        student = Student(**values)
        if self._students.get_by_roll_no(student.roll_no):
            raise ConflictError("Student with this roll number already exists")
        self._students.create(student)
        logger.info("student %s created in %s", student.roll_no, student.class_key.label)
        return student

    def get_student(self, roll_no: str) -> Student:
        roll_no = require_non_empty(roll_no, "Roll number")
        student = self._students.get_by_roll_no(roll_no)
        if not student:
            raise NotFoundError("Student not found with the provided roll number")
        return student

    def update_student(self, roll_no: str, payload: Mapping[str, Any]) -> Student:
        roll_no = require_non_empty(roll_no, "Roll number")
        if not payload:
            raise ValidationError("No update data provided")
        patch = StudentPatch.from_payload(payload)
        if patch.is_empty():
            raise ValidationError("No valid update fields provided")

        if patch.roll_no and patch.roll_no != roll_no and self._students.get_by_roll_no(patch.roll_no):
            raise ConflictError("A student with this roll number already exists")

        updated = self._students.update(roll_no, patch)
        if not updated:
            raise NotFoundError("Student not found with the provided roll number")
        return updated

    def delete_student(self, roll_no: str) -> Student:
        roll_no = require_non_empty(roll_no, "Roll number")
        deleted = self._students.delete_by_roll_no(roll_no)
        if not deleted:
            raise NotFoundError(f"No student found with rollNo {roll_no}")
        logger.info("student %s deleted", roll_no)
        return deleted

    def bulk_delete(self, class_filter: ClassFilter) -> int:
        logger.info("bulk delete with conditions %s", class_filter.conditions() or "<all students>")
        return self._students.delete_where(class_filter)

    def search_by_name(self, term: str) -> list[Student]:
        term = require_non_empty(term, "Name search term")
        return list(self._students.search_by_name(term))

    def search_by_roll_no(self, term: str) -> list[Student]:
        term = require_non_empty(term, "Roll number search term")
        return list(self._students.search_by_roll_no(term, limit=ROLL_NO_SEARCH_LIMIT))

    def list_super_pacc(self, class_key: ClassKey) -> list[Student]:
        return sort_by_roll_number(self._students.find_by_class_key(class_key))

    def set_super_pacc(self, roll_no: str, enabled: Any) -> Student:
        roll_no = require_non_empty(roll_no, "Roll number")
        if enabled is None:
            raise ValidationError("SuperPacc status is required")
        found = self._students.set_super_pacc_many({roll_no: _flag(enabled)})
        if not found:
            raise NotFoundError("Student not found with the provided roll number")
        return self.get_student(roll_no)

    def batch_set_super_pacc(self, mapping: Mapping[str, Any]) -> SuperPaccBatchResult:
        if not mapping:
            raise ValidationError("rollNumberStateMapping is required")
        flags = {str(roll_no).strip(): _flag(enabled) for roll_no, enabled in mapping.items()}
        found = set(self._students.set_super_pacc_many(flags))
        return SuperPaccBatchResult(
            updated=[r for r in flags if r in found],
            not_found=[r for r in flags if r not in found],
        )

    def promote_year(self, *, from_year: str, to_year: str) -> int:
        if not from_year or not to_year:
            raise ValidationError("Both fromYear and toYear are required")
        if from_year not in VALID_YEARS or to_year not in VALID_YEARS:
            raise ValidationError("Invalid year values. Years must be " + ", ".join(VALID_YEARS))

        matched = self._students.promote_year(from_year=from_year, to_year=to_year)
        if matched == 0:
            raise NotFoundError(f"No students found with year {from_year}")
        logger.info("promoted %d students from year %s to %s", matched, from_year, to_year)
        return matched

    def distinct_classes(self) -> Sequence[ClassSummary]:
        classes = self._students.all_distinct_class_keys()
        if not classes:
            raise NotFoundError("No classes found in the database")
        return classes


def _flag(enabled: Any) -> str:
    if isinstance(enabled, str):
        enabled = enabled.strip().upper() in {"YES", "TRUE", "1"}
    return SuperPaccFlag.YES.value if enabled else SuperPaccFlag.NO.value

