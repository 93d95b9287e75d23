from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class StaffAccount:
    """Login for a department admin or class staff member."""

    staff_id: int
    name: str
    username: str
    password_hash: str
    role: Role
    is_active: bool = True


@dataclass(frozen=True)
class Principal:
    """Who a verified token speaks for."""

    username: str
    role: Role
