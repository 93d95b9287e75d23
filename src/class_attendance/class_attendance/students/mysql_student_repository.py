from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

import mysql.connector

from ..core.exceptions import ConflictError
from ..core.constants import PLACEHOLDER_CLASS_VALUES
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, where_clause
from .model import ClassFilter, ClassKey, ClassSummary, Student, StudentPatch
from .repository import StudentRepository

_COLUMNS = (
    "roll_no, name, hosteller_day_scholar, gender, year_of_study, branch, section, "
    "parent_mobile_no, student_mobile_no, super_pacc"
)


def _to_student(r: dict) -> Student:
    return Student(
        roll_no=r["roll_no"],
        name=r["name"],
        hosteller_day_scholar=r.get("hosteller_day_scholar"),
        gender=r.get("gender"),
        year_of_study=r.get("year_of_study"),
        branch=r.get("branch"),
        section=r.get("section"),
        parent_mobile_no=r.get("parent_mobile_no"),
        student_mobile_no=r.get("student_mobile_no"),
        super_pacc=r.get("super_pacc") or "NO",
    )


def _row(s: Student) -> tuple:
    return (
        s.roll_no,
        s.name,
        s.hosteller_day_scholar,
        s.gender,
        s.year_of_study,
        s.branch,
        s.section,
        s.parent_mobile_no,
        s.student_mobile_no,
        s.super_pacc,
    )


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped.lower()}%"


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_by_class_key(self, class_key: ClassKey) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM students
                WHERE year_of_study=%s AND branch=%s AND section=%s
                """,
                (class_key.year_of_study, class_key.branch, class_key.section),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def find_by_roll_nos(self, roll_nos: Iterable[str]) -> Sequence[Student]:
        roll_nos = list(dict.fromkeys(roll_nos))
        if not roll_nos:
            return []
        placeholders, params = in_clause(roll_nos)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE roll_no IN ({placeholders})", params)
            return [_to_student(r) for r in fetchall(cur)]

    def list_all(self) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students ORDER BY roll_no")
            return [_to_student(r) for r in fetchall(cur)]

    def all_distinct_class_keys(self) -> Sequence[ClassSummary]:
        placeholders, params = in_clause(sorted(PLACEHOLDER_CLASS_VALUES))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT year_of_study, branch, section, COUNT(*) AS student_count
                FROM students
                WHERE year_of_study IS NOT NULL AND year_of_study NOT IN ({placeholders})
                  AND branch IS NOT NULL AND branch NOT IN ({placeholders})
                  AND section IS NOT NULL AND section NOT IN ({placeholders})
                GROUP BY year_of_study, branch, section
                ORDER BY year_of_study, branch, section
                """,
                params * 3,
            )
            return [
                ClassSummary(
                    class_key=ClassKey(r["year_of_study"], r["branch"], r["section"]),
                    student_count=int(r["student_count"]),
                )
                for r in fetchall(cur)
            ]

    def get_by_roll_no(self, roll_no: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE roll_no=%s", (roll_no,))
            r = fetchone(cur)
            return _to_student(r) if r else None

    def create(self, student: Student) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"INSERT INTO students ({_COLUMNS}) VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)",
                    _row(student),
                )
        except mysql.connector.IntegrityError as e:
            raise ConflictError(f"Student with roll number {student.roll_no} already exists") from e

    def update(self, roll_no: str, patch: StudentPatch) -> Optional[Student]:
        changes = patch.changes()
        if changes:
            assignments = ", ".join(f"{col}=%s" for col in changes)
            try:
                with db_cursor(self._conn_factory) as (_, cur):
                    cur.execute(
                        f"UPDATE students SET {assignments} WHERE roll_no=%s",
                        (*changes.values(), roll_no),
                    )
            except mysql.connector.IntegrityError as e:
                raise ConflictError(f"A student with roll number {changes.get('roll_no')} already exists") from e
        return self.get_by_roll_no(changes.get("roll_no", roll_no))

    def save_many(self, students: Sequence[Student]) -> int:
        if not students:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                f"""
                INSERT INTO students ({_COLUMNS})
                VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    name=VALUES(name),
                    hosteller_day_scholar=VALUES(hosteller_day_scholar),
                    gender=VALUES(gender),
                    year_of_study=VALUES(year_of_study),
                    branch=VALUES(branch),
                    section=VALUES(section),
                    parent_mobile_no=VALUES(parent_mobile_no),
                    student_mobile_no=VALUES(student_mobile_no),
                    super_pacc=VALUES(super_pacc)
                """,
                [_row(s) for s in students],
            )
            return len(students)

    def delete_by_roll_no(self, roll_no: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE roll_no=%s FOR UPDATE", (roll_no,))
            r = fetchone(cur)
            if not r:
                return None
            cur.execute("DELETE FROM students WHERE roll_no=%s", (roll_no,))
            return _to_student(r)

    def delete_where(self, class_filter: ClassFilter) -> int:
        conditions = class_filter.conditions()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM students" + where_clause(f"{col}=%s" for col in conditions),
                tuple(conditions.values()),
            )
            return int(cur.rowcount)

    def search_by_name(self, term: str) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM students WHERE LOWER(name) LIKE %s ORDER BY roll_no",
                (_like_pattern(term),),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def search_by_roll_no(self, term: str, *, limit: int) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM students WHERE LOWER(roll_no) LIKE %s ORDER BY roll_no LIMIT %s",
                (_like_pattern(term), int(limit)),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def set_super_pacc_many(self, flags: Mapping[str, str]) -> Sequence[str]:
        if not flags:
            return []
        placeholders, params = in_clause(list(flags))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT roll_no FROM students WHERE roll_no IN ({placeholders})", params)
            found = [r["roll_no"] for r in fetchall(cur)]
            if found:
                cur.executemany(
                    "UPDATE students SET super_pacc=%s WHERE roll_no=%s",
                    [(flags[roll_no], roll_no) for roll_no in found],
                )
            return found

    def promote_year(self, *, from_year: str, to_year: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM students WHERE year_of_study=%s", (from_year,))
            matched = int((fetchone(cur) or {}).get("n") or 0)
            if matched:
                cur.execute("UPDATE students SET year_of_study=%s WHERE year_of_study=%s", (to_year, from_year))
            return matched
