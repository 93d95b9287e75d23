"""CSV roster import.

A thin batch-upsert adapter: rows are matched to the roster by roll number,
new roll numbers are inserted, changed rows are updated, unchanged and invalid
rows are skipped with a reason. All writes go out in a single batch.
"""
from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import IO, Iterable, Mapping, Union

from ..app_logger import get_logger
from ..core.enums import SuperPaccFlag
from ..core.exceptions import ValidationError
from .model import StudentPatch, Student
from .repository import StudentRepository

logger = get_logger(__name__)

REQUIRED_COLUMNS = ("rollNo", "name", "hostellerDayScholar", "gender", "yearOfStudy", "branch", "section")


@dataclass(frozen=True)
class SkippedRow:
    line: int
    roll_no: str
    reason: str

    def to_wire(self) -> dict:
        return {"line": self.line, "rollNo": self.roll_no, "reason": self.reason}


@dataclass
class ImportReport:
    inserted: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)

    @property
    def message(self) -> str:
        if not self.inserted and not self.updated:
            return "No students inserted or updated."
        return f"{len(self.inserted)} new student(s) inserted, {len(self.updated)} updated, {len(self.skipped)} skipped."

    def to_wire(self) -> dict:
        return {
            "message": self.message,
            "inserted": len(self.inserted),
            "updated": len(self.updated),
            "skipped": [s.to_wire() for s in self.skipped],
        }


class StudentCsvImporter:
    def __init__(self, students: StudentRepository):
        self._students = students

    def import_csv(self, source: Union[str, bytes, IO[str]]) -> ImportReport:
        rows = list(self._read_rows(source))
        report = ImportReport()

        candidates: dict[str, tuple[int, dict[str, str]]] = {}
        for line, raw in rows:
            roll_no = (raw.get("rollNo") or "").strip()
            if not roll_no or not (raw.get("name") or "").strip():
                report.skipped.append(SkippedRow(line, roll_no, "rollNo and name are required"))
                continue
            if roll_no in candidates:
                report.skipped.append(SkippedRow(line, roll_no, "duplicate rollNo in file"))
                continue
            candidates[roll_no] = (line, _present_cells(raw))

        existing = {s.roll_no: s for s in self._students.find_by_roll_nos(list(candidates))}

        to_write: list[Student] = []
        for roll_no, (line, cells) in candidates.items():
            current = existing.get(roll_no)
            if current is None:
                report.inserted.append(roll_no)
                to_write.append(_new_student(cells))
                continue
            # Columns absent from the file or left blank keep their stored value.
            student = StudentPatch.from_payload(cells).apply_to(current)
            if current == student:
                report.skipped.append(SkippedRow(line, roll_no, "unchanged"))
            else:
                report.updated.append(roll_no)
                to_write.append(student)

        if to_write:
            self._students.save_many(to_write)
        logger.info(
            "csv import: inserted=%d updated=%d skipped=%d",
            len(report.inserted),
            len(report.updated),
            len(report.skipped),
        )
        return report

    @staticmethod
    def _read_rows(source: Union[str, bytes, IO[str]]) -> Iterable[tuple[int, Mapping[str, str]]]:
        if isinstance(source, bytes):
            source = source.decode("utf-8-sig")
        if isinstance(source, str):
            source = io.StringIO(source)

        reader = csv.DictReader(source)
        header = [h.strip() for h in (reader.fieldnames or [])]
        missing = [c for c in REQUIRED_COLUMNS if c not in header]
        if missing:
            raise ValidationError(f"CSV is missing column(s): {', '.join(missing)}")
        reader.fieldnames = header

        # line 1 is the header
        for line, row in enumerate(reader, start=2):
            yield line, row


def _present_cells(raw: Mapping[str, str]) -> dict[str, str]:
    """Cells under a known header with a non-blank value."""
    return {k: v for k, v in raw.items() if k and isinstance(v, str) and v.strip()}


def _new_student(cells: Mapping[str, str]) -> Student:
    values = StudentPatch.from_payload(cells).changes()
    values.setdefault("super_pacc", SuperPaccFlag.NO.value)
    return Student(**values)
