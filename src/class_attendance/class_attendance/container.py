from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.dashboard import DashboardService
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .core.constants import DEFAULT_TOKEN_MAX_AGE_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .students.importer import StudentCsvImporter
from .students.mysql_student_repository import MySQLStudentRepository
from .students.repository import StudentRepository
from .students.service import StudentService
from .users.mysql_staff_repository import MySQLStaffRepository
from .users.repository import StaffRepository
from .users.service import AuthService, SignedTokenVerifier, TokenVerifier


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    students_repo: StudentRepository
    attendance_repo: AttendanceRepository
    staff_repo: StaffRepository

    tokens: TokenVerifier
    auth_service: AuthService
    attendance_service: AttendanceService
    dashboard_service: DashboardService
    student_service: StudentService
    student_importer: StudentCsvImporter


def wire_container(
    *,
    students_repo: StudentRepository,
    attendance_repo: AttendanceRepository,
    staff_repo: StaffRepository,
    tokens: TokenVerifier,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build the services on top of already constructed stores."""
    return Container(
        conn=conn,
        students_repo=students_repo,
        attendance_repo=attendance_repo,
        staff_repo=staff_repo,
        tokens=tokens,
        auth_service=AuthService(staff_repo, tokens),
        attendance_service=AttendanceService(attendance_repo, students_repo),
        dashboard_service=DashboardService(attendance_repo, students_repo),
        student_service=StudentService(students_repo),
        student_importer=StudentCsvImporter(students_repo),
    )


def build_container(
    *,
    db_config: dict,
    secret_key: str,
    token_max_age_seconds: int = DEFAULT_TOKEN_MAX_AGE_SECONDS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))
    return wire_container(
        conn=conn,
        students_repo=MySQLStudentRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        staff_repo=MySQLStaffRepository(conn),
        tokens=SignedTokenVerifier(secret_key, max_age_seconds=token_max_age_seconds),
    )
