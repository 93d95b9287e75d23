from __future__ import annotations

from typing import Optional

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import StaffAccount
from .repository import StaffRepository


class MySQLStaffRepository(StaffRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_username(self, username: str) -> Optional[StaffAccount]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT staff_id, name, username, password_hash, role, is_active
                FROM staff_accounts
                WHERE username=%s
                """,
                (username,),
            )
            row = fetchone(cur)
            if not row:
                return None
            return StaffAccount(
                staff_id=int(row["staff_id"]),
                name=row["name"],
                username=row["username"],
                password_hash=row["password_hash"],
                role=Role(row["role"]),
                is_active=bool(row.get("is_active", True)),
            )

    def set_password_hash(self, username: str, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE staff_accounts SET password_hash=%s WHERE username=%s",
                (password_hash, username),
            )
            return cur.rowcount > 0
