from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles carried by an authenticated principal."""

    ADMIN = "admin"
    STAFF = "staff"


class AttendanceStatus(str, Enum):
    """Attendance status values as stored and sent over the wire."""

    PRESENT = "Present"
    ABSENT = "Absent"
    ON_DUTY = "On Duty"
    SUPER_PACC = "SuperPacc"


class InfoStatus(str, Enum):
    """Whether a guardian has been told about an absence."""

    NA = "NA"
    INFORMED = "Informed"
    NOT_INFORMED = "NotInformed"


class SuperPaccFlag(str, Enum):
    YES = "YES"
    NO = "NO"


class MarkingState(str, Enum):
    """Per-class state reported by the department dashboard."""

    MARKED = "marked"
    NOT_MARKED = "not_marked"
