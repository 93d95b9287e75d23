from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..students.model import ClassKey
from .model import AttendanceFilter, AttendancePatch, AttendanceRecord, InsertOutcome


class AttendanceRepository(Protocol):
    """Attendance store: one record per (roll number, date, class-key)."""

    def find_by_class_key_and_date(self, class_key: ClassKey, day: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find_by_date(self, day: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find_latest_before(self, roll_no: str, class_key: ClassKey, day: date) -> Optional[AttendanceRecord]:
        """Most recent record for the student in this class strictly before `day`."""

        raise NotImplementedError

    def insert_many(self, records: Sequence[AttendanceRecord]) -> InsertOutcome:
        """Insert records; natural-key collisions are reported, not raised."""

        raise NotImplementedError

    def update_where(self, where: AttendanceFilter, patch: AttendancePatch) -> int:
        """Apply `patch` to every matching record; returns the number changed."""

        raise NotImplementedError
