from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Mapping, Optional

from ..core.constants import ALL_WILDCARD
from ..core.enums import SuperPaccFlag
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class ClassKey:
    """A cohort: year of study, branch and section.

    Cohorts without sections use "-" (core.constants.NO_SECTION) as the section.
    """

    year_of_study: str
    branch: str
    section: str

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "ClassKey":
        missing = [f for f in ("yearOfStudy", "branch", "section") if not str(params.get(f) or "").strip()]
        if missing:
            raise ValidationError(f"Please provide {', '.join(missing)}")
        return cls(
            year_of_study=str(params["yearOfStudy"]).strip(),
            branch=str(params["branch"]).strip(),
            section=str(params["section"]).strip(),
        )

    @property
    def label(self) -> str:
        return f"{self.year_of_study}-{self.branch}-{self.section}"

    def __str__(self) -> str:
        return f"{self.year_of_study} {self.branch} {self.section}"

    def to_wire(self) -> dict:
        return {"yearOfStudy": self.year_of_study, "branch": self.branch, "section": self.section}


@dataclass(frozen=True)
class Student:
    """Roster entry. `roll_no` is the natural key."""

    roll_no: str
    name: str
    hosteller_day_scholar: Optional[str] = None
    gender: Optional[str] = None
    year_of_study: Optional[str] = None
    branch: Optional[str] = None
    section: Optional[str] = None
    parent_mobile_no: Optional[str] = None
    student_mobile_no: Optional[str] = None
    super_pacc: str = SuperPaccFlag.NO.value

    @property
    def class_key(self) -> ClassKey:
        return ClassKey(self.year_of_study or "", self.branch or "", self.section or "")

    @property
    def is_super_pacc(self) -> bool:
        return (self.super_pacc or "").upper() == SuperPaccFlag.YES.value

    def to_wire(self) -> dict:
        return {WIRE_NAMES[k]: v for k, v in asdict(self).items()}


@dataclass(frozen=True)
class StudentRef:
    roll_no: str
    name: str

    def to_wire(self) -> dict:
        return {"rollNo": self.roll_no, "name": self.name}


@dataclass(frozen=True)
class ClassSummary:
    class_key: ClassKey
    student_count: int

    def to_wire(self) -> dict:
        return {**self.class_key.to_wire(), "studentCount": self.student_count}


# attribute name -> wire (JSON/CSV) name
WIRE_NAMES = {
    "roll_no": "rollNo",
    "name": "name",
    "hosteller_day_scholar": "hostellerDayScholar",
    "gender": "gender",
    "year_of_study": "yearOfStudy",
    "branch": "branch",
    "section": "section",
    "parent_mobile_no": "parentMobileNo",
    "student_mobile_no": "studentMobileNo",
    "super_pacc": "superPacc",
}
ATTR_NAMES = {v: k for k, v in WIRE_NAMES.items()}


@dataclass(frozen=True)
class StudentPatch:
    """Mutable student fields; None means "leave unchanged"."""

    roll_no: Optional[str] = None
    name: Optional[str] = None
    hosteller_day_scholar: Optional[str] = None
    gender: Optional[str] = None
    year_of_study: Optional[str] = None
    branch: Optional[str] = None
    section: Optional[str] = None
    parent_mobile_no: Optional[str] = None
    student_mobile_no: Optional[str] = None
    super_pacc: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StudentPatch":
        """Keep only allow-listed wire fields; anything else is dropped."""
        values = {}
        for wire, value in (payload or {}).items():
            attr = ATTR_NAMES.get(wire)
            if attr is None or value is None:
                continue
            values[attr] = str(value).strip()
        if "super_pacc" in values:
            values["super_pacc"] = values["super_pacc"].upper()
        return cls(**values)

    def changes(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def is_empty(self) -> bool:
        return not self.changes()

    def apply_to(self, student: Student) -> Student:
        return replace(student, **self.changes())


@dataclass(frozen=True)
class ClassFilter:
    """Bulk selection over class-key fields.

    "All" at any level drops that level and every level below it.
    """

    year_of_study: str
    branch: Optional[str] = None
    section: Optional[str] = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "ClassFilter":
        year = str(params.get("yearOfStudy") or "").strip()
        if not year:
            raise ValidationError("Year of Study is required")
        branch = str(params.get("branch") or "").strip() or None
        section = str(params.get("section") or "").strip() or None
        return cls(year_of_study=year, branch=branch, section=section)

    def conditions(self) -> dict:
        """Column conditions as {attribute: value}; empty means every student."""
        out: dict[str, str] = {}
        if self.year_of_study == ALL_WILDCARD:
            return out
        out["year_of_study"] = self.year_of_study
        if not self.branch or self.branch == ALL_WILDCARD:
            return out
        out["branch"] = self.branch
        if not self.section or self.section == ALL_WILDCARD:
            return out
        out["section"] = self.section
        return out

    def matches(self, student: Student) -> bool:
        return all(getattr(student, attr) == value for attr, value in self.conditions().items())
