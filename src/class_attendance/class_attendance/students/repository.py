from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol, Sequence

from .model import ClassFilter, ClassKey, ClassSummary, Student, StudentPatch


class StudentRepository(Protocol):
    """Roster store.

    Note (DIP): services depend on this interface, never on a concrete database.
    """

    def find_by_class_key(self, class_key: ClassKey) -> Sequence[Student]:
        raise NotImplementedError

    def find_by_roll_nos(self, roll_nos: Iterable[str]) -> Sequence[Student]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Student]:
        raise NotImplementedError

    def all_distinct_class_keys(self) -> Sequence[ClassSummary]:
        """Distinct class-keys with student counts, placeholder values excluded, sorted."""

        raise NotImplementedError

    def get_by_roll_no(self, roll_no: str) -> Optional[Student]:
        raise NotImplementedError

    def create(self, student: Student) -> None:
        raise NotImplementedError

    def update(self, roll_no: str, patch: StudentPatch) -> Optional[Student]:
        raise NotImplementedError

    def save_many(self, students: Sequence[Student]) -> int:
        """Insert-or-update by roll number in one batched write."""

        raise NotImplementedError

    def delete_by_roll_no(self, roll_no: str) -> Optional[Student]:
        raise NotImplementedError

    def delete_where(self, class_filter: ClassFilter) -> int:
        raise NotImplementedError

    def search_by_name(self, term: str) -> Sequence[Student]:
        raise NotImplementedError

    def search_by_roll_no(self, term: str, *, limit: int) -> Sequence[Student]:
        raise NotImplementedError

    def set_super_pacc_many(self, flags: Mapping[str, str]) -> Sequence[str]:
        """Apply {roll_no: "YES"/"NO"}; returns the roll numbers that matched a student."""

        raise NotImplementedError

    def promote_year(self, *, from_year: str, to_year: str) -> int:
        raise NotImplementedError
