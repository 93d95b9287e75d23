from __future__ import annotations

import logging

import mysql.connector
import pytest
from mysql.connector import errorcode

from class_attendance.app_logger import LOGGER_NAME
from class_attendance.attendance.model import AttendanceRecord
from class_attendance.attendance.mysql_attendance_repository import MySQLAttendanceRepository
from class_attendance.attendance.service import AttendanceService
from class_attendance.core.enums import AttendanceStatus
from class_attendance.core.exceptions import StoreError

from conftest import CSE_A, DAY1


class FakeCursor:
    def __init__(self, batch_error=None):
        self.batch_error = batch_error

    def execute(self, sql, params=None):
        pass

    def executemany(self, sql, rows):
        if self.batch_error is not None:
            raise self.batch_error

    def fetchone(self):
        return None

    def fetchall(self):
        return []

    def close(self):
        pass


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.rolled_back = False

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        pass

    def rollback(self):
        self.rolled_back = True

    def close(self):
        pass


class FakeConnectionFactory:
    def __init__(self, batch_error=None):
        self.connections = []
        self._batch_error = batch_error

    def connect(self):
        conn = FakeConnection(FakeCursor(self._batch_error))
        self.connections.append(conn)
        return conn


def foreign_key_error():
    return mysql.connector.IntegrityError(msg="Cannot add or update a child row", errno=errorcode.ER_NO_REFERENCED_ROW_2)


def absent(roll_no):
    return AttendanceRecord.new(roll_no=roll_no, day=DAY1, class_key=CSE_A, status=AttendanceStatus.ABSENT, leave_count=1)


def test_insert_many_wraps_non_duplicate_integrity_errors():
    factory = FakeConnectionFactory(batch_error=foreign_key_error())
    repo = MySQLAttendanceRepository(factory)

    with pytest.raises(StoreError) as exc:
        repo.insert_many([absent("22CS001")])

    assert "child row" in str(exc.value)
    assert isinstance(exc.value.__cause__, mysql.connector.IntegrityError)
    assert factory.connections[0].rolled_back


def test_insert_many_passes_through_a_clean_batch():
    repo = MySQLAttendanceRepository(FakeConnectionFactory())

    outcome = repo.insert_many([absent("22CS001"), absent("22CS003")])

    assert [r.roll_no for r in outcome.inserted] == ["22CS001", "22CS003"]
    assert outcome.duplicates == []


def test_integrity_failure_is_logged_with_class_and_date(students_repo, caplog):
    svc = AttendanceService(MySQLAttendanceRepository(FakeConnectionFactory(batch_error=foreign_key_error())), students_repo)
    logger = logging.getLogger(LOGGER_NAME)
    logger.addHandler(caplog.handler)
    try:
        with pytest.raises(StoreError):
            svc.mark_absent(CSE_A, DAY1, ["22CS001"])
    finally:
        logger.removeHandler(caplog.handler)

    assert "store failure during mark_absent class=II-CSE-A date=2024-03-01" in caplog.text
