from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceStatus, InfoStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, is_duplicate_key, where_clause
from ..students.model import ClassKey
from .model import AttendanceFilter, AttendancePatch, AttendanceRecord, InsertOutcome
from .repository import AttendanceRepository

_COLUMNS = "roll_no, att_date, year_of_study, branch, section, status, leave_count, info_status, locked"

_INSERT = f"""
    INSERT INTO attendance_records ({_COLUMNS})
    VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s)
"""


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        roll_no=r["roll_no"],
        day=r["att_date"],
        class_key=ClassKey(r["year_of_study"], r["branch"], r["section"]),
        status=AttendanceStatus(r["status"]),
        leave_count=int(r.get("leave_count") or 0),
        info_status=InfoStatus(r.get("info_status") or InfoStatus.NA.value),
        locked=bool(r.get("locked")),
    )


def _row(rec: AttendanceRecord) -> tuple:
    return (
        rec.roll_no,
        rec.day,
        rec.class_key.year_of_study,
        rec.class_key.branch,
        rec.class_key.section,
        rec.status.value,
        int(rec.leave_count),
        rec.info_status.value,
        1 if rec.locked else 0,
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_by_class_key_and_date(self, class_key: ClassKey, day: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE year_of_study=%s AND branch=%s AND section=%s AND att_date=%s
                """,
                (class_key.year_of_study, class_key.branch, class_key.section, day),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def find_by_date(self, day: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE att_date=%s", (day,))
            return [_to_record(r) for r in fetchall(cur)]

    def find_latest_before(self, roll_no: str, class_key: ClassKey, day: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE roll_no=%s AND year_of_study=%s AND branch=%s AND section=%s AND att_date < %s
                ORDER BY att_date DESC
                LIMIT 1
                """,
                (roll_no, class_key.year_of_study, class_key.branch, class_key.section, day),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def insert_many(self, records: Sequence[AttendanceRecord]) -> InsertOutcome:
        records = list(records)
        if not records:
            return InsertOutcome()

        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.executemany(_INSERT, [_row(r) for r in records])
            return InsertOutcome(inserted=records)
        except mysql.connector.IntegrityError:
            pass

        # Another request got some of these keys first; the batch was rolled
        # back, so retry row by row and sort out which ones collided.
        inserted: list[AttendanceRecord] = []
        duplicates: list[AttendanceRecord] = []
        with db_cursor(self._conn_factory) as (_, cur):
            for rec in records:
                cur.execute("SAVEPOINT attendance_row")
                try:
                    cur.execute(_INSERT, _row(rec))
                except mysql.connector.IntegrityError as e:
                    if not is_duplicate_key(e):
                        raise
                    cur.execute("ROLLBACK TO SAVEPOINT attendance_row")
                    duplicates.append(rec)
                else:
                    inserted.append(rec)
        return InsertOutcome(inserted=inserted, duplicates=duplicates)

    def update_where(self, where: AttendanceFilter, patch: AttendancePatch) -> int:
        changes = patch.changes()
        if not changes:
            return 0
        if where.roll_nos is not None and not where.roll_nos:
            return 0

        assignments = []
        params: list[object] = []
        for col, value in changes.items():
            assignments.append(f"{col}=%s")
            params.append(value.value if hasattr(value, "value") else value)

        clauses = []
        if where.class_key is not None:
            clauses.append("year_of_study=%s AND branch=%s AND section=%s")
            params.extend([where.class_key.year_of_study, where.class_key.branch, where.class_key.section])
        if where.day is not None:
            clauses.append("att_date=%s")
            params.append(where.day)
        if where.status is not None:
            clauses.append("status=%s")
            params.append(where.status.value)
        if where.roll_nos is not None:
            placeholders, roll_params = in_clause(sorted(where.roll_nos))
            clauses.append(f"roll_no IN ({placeholders})")
            params.extend(roll_params)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE attendance_records SET {', '.join(assignments)}" + where_clause(clauses),
                tuple(params),
            )
            return int(cur.rowcount)
