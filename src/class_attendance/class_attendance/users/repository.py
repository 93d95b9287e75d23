from __future__ import annotations

from typing import Optional, Protocol

from .model import StaffAccount


class StaffRepository(Protocol):
    def get_by_username(self, username: str) -> Optional[StaffAccount]:
        raise NotImplementedError

    def set_password_hash(self, username: str, password_hash: str) -> bool:
        raise NotImplementedError
