from __future__ import annotations

import csv
import io
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..app_logger import get_logger
from ..common.datetime_utils import format_iso_date
from ..common.roll_numbers import roll_number_key, sort_by_roll_number
from ..common.store_errors import store_operation
from ..core.constants import NOT_APPLICABLE, PLACEHOLDER_CLASS_VALUES
from ..core.enums import AttendanceStatus, MarkingState
from ..core.exceptions import ClassNotFoundError, NotFoundError
from ..students.model import ClassKey, Student
from ..students.repository import StudentRepository
from .model import AbsentStudent, ClassDashboard, StatusCounts, StatusSnapshot, StudentState, describe
from .repository import AttendanceRepository

logger = get_logger(__name__)

ABSENT_REPORT_FIELDS = [
    "date",
    "rollNo",
    "name",
    "gender",
    "yearOfStudy",
    "branch",
    "section",
    "hostellerDayScholar",
    "parentMobileNo",
    "leaveCount",
    "infoStatus",
]


@dataclass(frozen=True)
class AbsentReport:
    rows: list[dict]

    def to_csv(self) -> bytes:
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=ABSENT_REPORT_FIELDS)
        writer.writeheader()
        for row in self.rows:
            writer.writerow(row)
        return out.getvalue().encode("utf-8-sig")


def _is_real_class(student: Student) -> bool:
    return all(
        value is not None and value not in PLACEHOLDER_CLASS_VALUES
        for value in (student.year_of_study, student.branch, student.section)
    )


class DashboardService:
    """Read-only views over roster and attendance.

    A roster student with no record for the date is shown as Absent: nobody is
    presumed present until someone has said so.
    """

    def __init__(self, attendance: AttendanceRepository, students: StudentRepository):
        self._attendance = attendance
        self._students = students

    def status_snapshot(self, class_key: ClassKey, day: date) -> StatusSnapshot:
        with store_operation(logger, "status_snapshot", describe(class_key, day)):
            roster = self._students.find_by_class_key(class_key)
            if not roster:
                raise ClassNotFoundError(f"No students found for {class_key}.")
            records = self._attendance.find_by_class_key_and_date(class_key, day)
        if not records:
            raise NotFoundError("Attendance has not been marked for this class on this date.")

        status_by_roll = {r.roll_no: r.status.value for r in records}
        states = [
            StudentState(s.roll_no, s.name, status_by_roll.get(s.roll_no, AttendanceStatus.ABSENT.value))
            for s in roster
        ]
        return StatusSnapshot(states=sort_by_roll_number(states), total_students=len(roster))

    def status_counts(self, class_key: ClassKey, day: date) -> StatusCounts:
        with store_operation(logger, "status_counts", describe(class_key, day)):
            roster = self._students.find_by_class_key(class_key)
            records = self._attendance.find_by_class_key_and_date(class_key, day)

        if not records:
            return StatusCounts(class_key.label, NOT_APPLICABLE, NOT_APPLICABLE)

        status_by_roll = {r.roll_no: r.status for r in records}
        absent = sum(1 for s in roster if status_by_roll.get(s.roll_no, AttendanceStatus.ABSENT) == AttendanceStatus.ABSENT)
        return StatusCounts(class_key.label, absent, len(roster) - absent)

    def fleet_dashboard(self, day: date) -> list[ClassDashboard]:
        """Per-class marking state for every class on the roster, from two batched reads."""
        with store_operation(logger, "fleet_dashboard", f"date={format_iso_date(day)}"):
            roster = [s for s in self._students.list_all() if _is_real_class(s)]
            records = self._attendance.find_by_date(day)

        students_by_class: dict[ClassKey, list[Student]] = defaultdict(list)
        for s in roster:
            students_by_class[s.class_key].append(s)
        records_by_class = defaultdict(dict)
        for r in records:
            records_by_class[r.class_key][r.roll_no] = r

        out: list[ClassDashboard] = []
        for class_key in sorted(students_by_class, key=lambda k: (k.year_of_study, k.branch, k.section)):
            students = students_by_class[class_key]
            class_records = records_by_class.get(class_key)
            if not class_records:
                out.append(ClassDashboard(class_key, MarkingState.NOT_MARKED.value, [], len(students)))
                continue

            absent = [
                AbsentStudent(s.roll_no, s.name, class_records[s.roll_no].leave_count)
                for s in students
                if s.roll_no in class_records and class_records[s.roll_no].status == AttendanceStatus.ABSENT
            ]
            out.append(
                ClassDashboard(class_key, MarkingState.MARKED.value, sort_by_roll_number(absent), len(students))
            )
        return out

    def absent_report(self, day: date, *, gender: Optional[str] = None) -> AbsentReport:
        """Department-wide Absent list for one date, optionally for one gender."""
        with store_operation(logger, "absent_report", f"date={format_iso_date(day)} gender={gender}"):
            absent = [r for r in self._attendance.find_by_date(day) if r.status == AttendanceStatus.ABSENT]
            students = {s.roll_no: s for s in self._students.find_by_roll_nos([r.roll_no for r in absent])}

        rows = []
        for r in absent:
            s = students.get(r.roll_no)
            if s is None:
                continue
            if gender and (s.gender or "").upper() != gender.upper():
                continue
            rows.append(
                {
                    "date": format_iso_date(day),
                    "rollNo": s.roll_no,
                    "name": s.name,
                    "gender": s.gender,
                    "yearOfStudy": r.class_key.year_of_study,
                    "branch": r.class_key.branch,
                    "section": r.class_key.section,
                    "hostellerDayScholar": s.hosteller_day_scholar,
                    "parentMobileNo": s.parent_mobile_no,
                    "leaveCount": r.leave_count,
                    "infoStatus": r.info_status.value,
                }
            )
        rows.sort(key=lambda row: (row["yearOfStudy"], row["branch"], row["section"], roll_number_key(row["rollNo"])))
        return AbsentReport(rows=rows)
