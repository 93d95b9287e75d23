from __future__ import annotations

from datetime import date

from ..students.model import ClassKey
from .repository import AttendanceRepository


class StreakMaintainer:
    """Consecutive-absence counter for newly created Absent records.

    The value is computed once, when the Absent record is created. Later edits
    to earlier records do not ripple forward into records that already exist.
    """

    def __init__(self, attendance: AttendanceRepository):
        self._attendance = attendance

    def compute_streak(self, roll_no: str, class_key: ClassKey, day: date) -> int:
        previous = self._attendance.find_latest_before(roll_no, class_key, day)
        if previous is not None and previous.leave_count:
            return previous.leave_count + 1
        return 1
