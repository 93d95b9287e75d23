from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date
from typing import FrozenSet, Optional, Union

from ..common.datetime_utils import format_iso_date
from ..core.enums import AttendanceStatus, InfoStatus
from ..students.model import ClassKey, StudentRef


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's status for one class and date.

    Natural key: (roll_no, day, class_key).
    """

    roll_no: str
    day: date
    class_key: ClassKey
    status: AttendanceStatus
    leave_count: int = 0
    info_status: InfoStatus = InfoStatus.NA
    locked: bool = False

    @classmethod
    def new(
        cls,
        *,
        roll_no: str,
        day: date,
        class_key: ClassKey,
        status: AttendanceStatus,
        leave_count: int = 0,
    ) -> "AttendanceRecord":
        """A fresh record with the info status implied by `status`."""
        info = InfoStatus.NOT_INFORMED if status == AttendanceStatus.ABSENT else InfoStatus.NA
        return cls(
            roll_no=roll_no,
            day=day,
            class_key=class_key,
            status=status,
            leave_count=leave_count,
            info_status=info,
            locked=False,
        )

    @property
    def natural_key(self) -> tuple:
        return (self.roll_no, self.day, self.class_key)


@dataclass(frozen=True)
class AttendanceFilter:
    """Selection for bulk updates; unset fields do not constrain."""

    class_key: Optional[ClassKey] = None
    day: Optional[date] = None
    roll_nos: Optional[FrozenSet[str]] = None
    status: Optional[AttendanceStatus] = None

    def matches(self, record: AttendanceRecord) -> bool:
        if self.class_key is not None and record.class_key != self.class_key:
            return False
        if self.day is not None and record.day != self.day:
            return False
        if self.roll_nos is not None and record.roll_no not in self.roll_nos:
            return False
        if self.status is not None and record.status != self.status:
            return False
        return True


@dataclass(frozen=True)
class AttendancePatch:
    """Mutable attendance fields; None means "leave unchanged"."""

    status: Optional[AttendanceStatus] = None
    leave_count: Optional[int] = None
    info_status: Optional[InfoStatus] = None

    def changes(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def apply_to(self, record: AttendanceRecord) -> AttendanceRecord:
        return replace(record, **self.changes())


@dataclass(frozen=True)
class InsertOutcome:
    """What an insert batch did; duplicates hit the natural-key constraint."""

    inserted: list[AttendanceRecord] = field(default_factory=list)
    duplicates: list[AttendanceRecord] = field(default_factory=list)


@dataclass(frozen=True)
class SkippedRollNo:
    roll_no: str
    reason: str

    def to_wire(self) -> dict:
        return {"rollNo": self.roll_no, "reason": self.reason}


@dataclass
class TransitionReport:
    """Partial-success report of a batch transition."""

    affected: list[str] = field(default_factory=list)
    skipped: list[SkippedRollNo] = field(default_factory=list)

    def skip(self, roll_no: str, reason: str) -> None:
        self.skipped.append(SkippedRollNo(roll_no, reason))


@dataclass(frozen=True)
class RosterDiff:
    unrecorded: list[StudentRef]
    total_roster_count: int


@dataclass(frozen=True)
class SuperPaccOutcome:
    updated: int
    added: int


@dataclass(frozen=True)
class OverrideOutcome:
    updated: int
    inserted: int


@dataclass(frozen=True)
class StudentState:
    roll_no: str
    name: str
    state: str

    def to_wire(self) -> dict:
        return {"rollNo": self.roll_no, "name": self.name, "state": self.state}


@dataclass(frozen=True)
class StatusSnapshot:
    states: list[StudentState]
    total_students: int


@dataclass(frozen=True)
class StatusCounts:
    class_label: str
    absent_count: Union[int, str]
    other_status_count: Union[int, str]

    def to_wire(self) -> dict:
        return {
            "classs": self.class_label,
            "absentCount": self.absent_count,
            "otherStatusCount": self.other_status_count,
        }


@dataclass(frozen=True)
class AbsentStudent:
    roll_no: str
    name: Optional[str]
    leave_count: int = 0
    info_status: InfoStatus = InfoStatus.NOT_INFORMED

    def to_wire(self, *, with_info_status: bool = False) -> dict:
        out = {"rollNo": self.roll_no, "name": self.name, "leaveCount": self.leave_count}
        if with_info_status:
            out["infoStatus"] = self.info_status.value
        return out


@dataclass(frozen=True)
class ClassDashboard:
    class_key: ClassKey
    status: str
    absent_students: list[AbsentStudent]
    total_students: int

    def to_wire(self) -> dict:
        return {
            **self.class_key.to_wire(),
            "status": self.status,
            "absentStudents": [s.to_wire() for s in self.absent_students],
            "totalStudents": self.total_students,
        }


@dataclass(frozen=True)
class InfoStatusUpdate:
    roll_no: str
    info_status: InfoStatus


@dataclass
class InfoStatusReport:
    updated: list[InfoStatusUpdate] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def describe(class_key: ClassKey, day: date) -> str:
    """Log context for a class/date pair."""
    return f"class={class_key.label} date={format_iso_date(day)}"
