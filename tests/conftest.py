from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

import pytest
from werkzeug.security import generate_password_hash

from class_attendance.attendance.model import AttendanceFilter, AttendancePatch, AttendanceRecord, InsertOutcome
from class_attendance.container import wire_container
from class_attendance.core.constants import PLACEHOLDER_CLASS_VALUES
from class_attendance.core.enums import Role
from class_attendance.core.exceptions import ConflictError
from class_attendance.students.model import ClassFilter, ClassKey, ClassSummary, Student, StudentPatch
from class_attendance.users.model import Principal, StaffAccount
from class_attendance.users.service import SignedTokenVerifier

CSE_A = ClassKey("II", "CSE", "A")
CSE_B = ClassKey("II", "CSE", "B")
DAY1 = date(2024, 3, 1)
DAY2 = date(2024, 3, 2)
DAY3 = date(2024, 3, 3)


def make_student(roll_no: str, name: Optional[str] = None, class_key: ClassKey = CSE_A, **extra) -> Student:
    return Student(
        roll_no=roll_no,
        name=name or f"Student {roll_no}",
        year_of_study=class_key.year_of_study,
        branch=class_key.branch,
        section=class_key.section,
        **extra,
    )


class InMemoryStudents:
    def __init__(self, students: Iterable[Student] = ()):
        self._by_roll: dict[str, Student] = {}
        for s in students:
            self._by_roll[s.roll_no] = s

    def find_by_class_key(self, class_key: ClassKey) -> Sequence[Student]:
        return [s for s in self._by_roll.values() if s.class_key == class_key]

    def find_by_roll_nos(self, roll_nos: Iterable[str]) -> Sequence[Student]:
        return [self._by_roll[r] for r in dict.fromkeys(roll_nos) if r in self._by_roll]

    def list_all(self) -> Sequence[Student]:
        return sorted(self._by_roll.values(), key=lambda s: s.roll_no)

    def all_distinct_class_keys(self) -> Sequence[ClassSummary]:
        counts = Counter(
            s.class_key
            for s in self._by_roll.values()
            if all(
                v is not None and v not in PLACEHOLDER_CLASS_VALUES
                for v in (s.year_of_study, s.branch, s.section)
            )
        )
        return [
            ClassSummary(k, n)
            for k, n in sorted(counts.items(), key=lambda kv: (kv[0].year_of_study, kv[0].branch, kv[0].section))
        ]

    def get_by_roll_no(self, roll_no: str) -> Optional[Student]:
        return self._by_roll.get(roll_no)

    def create(self, student: Student) -> None:
        if student.roll_no in self._by_roll:
            raise ConflictError(f"Student with roll number {student.roll_no} already exists")
        self._by_roll[student.roll_no] = student

    def update(self, roll_no: str, patch: StudentPatch) -> Optional[Student]:
        current = self._by_roll.get(roll_no)
        if current is None:
            return None
        updated = patch.apply_to(current)
        if updated.roll_no != roll_no:
            if updated.roll_no in self._by_roll:
                raise ConflictError(f"A student with roll number {updated.roll_no} already exists")
            del self._by_roll[roll_no]
        self._by_roll[updated.roll_no] = updated
        return updated

    def save_many(self, students: Sequence[Student]) -> int:
        for s in students:
            self._by_roll[s.roll_no] = s
        return len(students)

    def delete_by_roll_no(self, roll_no: str) -> Optional[Student]:
        return self._by_roll.pop(roll_no, None)

    def delete_where(self, class_filter: ClassFilter) -> int:
        doomed = [r for r, s in self._by_roll.items() if class_filter.matches(s)]
        for r in doomed:
            del self._by_roll[r]
        return len(doomed)

    def search_by_name(self, term: str) -> Sequence[Student]:
        return [s for s in self.list_all() if term.lower() in s.name.lower()]

    def search_by_roll_no(self, term: str, *, limit: int) -> Sequence[Student]:
        return [s for s in self.list_all() if term.lower() in s.roll_no.lower()][:limit]

    def set_super_pacc_many(self, flags: Mapping[str, str]) -> Sequence[str]:
        found = [r for r in flags if r in self._by_roll]
        for r in found:
            self._by_roll[r] = StudentPatch(super_pacc=flags[r]).apply_to(self._by_roll[r])
        return found

    def promote_year(self, *, from_year: str, to_year: str) -> int:
        matched = [r for r, s in self._by_roll.items() if s.year_of_study == from_year]
        for r in matched:
            self._by_roll[r] = StudentPatch(year_of_study=to_year).apply_to(self._by_roll[r])
        return len(matched)


class InMemoryAttendance:
    """Attendance store honouring the (roll number, date, class-key) uniqueness rule."""

    def __init__(self, records: Iterable[AttendanceRecord] = ()):
        self._by_key: dict[tuple, AttendanceRecord] = {}
        self.update_calls = 0
        for r in records:
            self._by_key[r.natural_key] = r

    def get(self, roll_no: str, day: date, class_key: ClassKey = CSE_A) -> Optional[AttendanceRecord]:
        return self._by_key.get((roll_no, day, class_key))

    def all(self) -> list[AttendanceRecord]:
        return list(self._by_key.values())

    def find_by_class_key_and_date(self, class_key: ClassKey, day: date) -> Sequence[AttendanceRecord]:
        return [r for r in self._by_key.values() if r.class_key == class_key and r.day == day]

    def find_by_date(self, day: date) -> Sequence[AttendanceRecord]:
        return [r for r in self._by_key.values() if r.day == day]

    def find_latest_before(self, roll_no: str, class_key: ClassKey, day: date) -> Optional[AttendanceRecord]:
        earlier = [
            r
            for r in self._by_key.values()
            if r.roll_no == roll_no and r.class_key == class_key and r.day < day
        ]
        return max(earlier, key=lambda r: r.day, default=None)

    def insert_many(self, records: Sequence[AttendanceRecord]) -> InsertOutcome:
        outcome = InsertOutcome()
        for rec in records:
            if rec.natural_key in self._by_key:
                outcome.duplicates.append(rec)
            else:
                self._by_key[rec.natural_key] = rec
                outcome.inserted.append(rec)
        return outcome

    def update_where(self, where: AttendanceFilter, patch: AttendancePatch) -> int:
        self.update_calls += 1
        changed = 0
        for key, rec in list(self._by_key.items()):
            if not where.matches(rec):
                continue
            updated = patch.apply_to(rec)
            if updated != rec:
                self._by_key[key] = updated
                changed += 1
        return changed


class InMemoryStaff:
    def __init__(self, accounts: Iterable[StaffAccount] = ()):
        self._by_username = {a.username: a for a in accounts}

    def get_by_username(self, username: str) -> Optional[StaffAccount]:
        return self._by_username.get(username)

    def set_password_hash(self, username: str, password_hash: str) -> bool:
        account = self._by_username.get(username)
        if account is None:
            return False
        self._by_username[username] = StaffAccount(
            staff_id=account.staff_id,
            name=account.name,
            username=account.username,
            password_hash=password_hash,
            role=account.role,
            is_active=account.is_active,
        )
        return True


def make_account(staff_id: int, username: str, password: str, role: Role, *, is_active: bool = True) -> StaffAccount:
    return StaffAccount(
        staff_id=staff_id,
        name=username.title(),
        username=username,
        password_hash=generate_password_hash(password),
        role=role,
        is_active=is_active,
    )


@pytest.fixture
def roster() -> list[Student]:
    return [
        make_student("22CS010", "Divya"),
        make_student("22CS002", "Arun", super_pacc="YES"),
        make_student("22CS001", "Bala", gender="MALE"),
        make_student("22CS003", "Chitra", gender="FEMALE"),
        make_student("22CS101", "Ezhil", CSE_B),
    ]


@pytest.fixture
def students_repo(roster) -> InMemoryStudents:
    return InMemoryStudents(roster)


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def staff_repo() -> InMemoryStaff:
    return InMemoryStaff(
        [
            make_account(1, "admin", "admin123", Role.ADMIN),
            make_account(2, "staff", "staff123", Role.STAFF),
            make_account(3, "retired", "retired123", Role.STAFF, is_active=False),
        ]
    )


@pytest.fixture
def tokens() -> SignedTokenVerifier:
    return SignedTokenVerifier("test-secret", max_age_seconds=3600)


@pytest.fixture
def container(students_repo, attendance_repo, staff_repo, tokens):
    return wire_container(
        students_repo=students_repo,
        attendance_repo=attendance_repo,
        staff_repo=staff_repo,
        tokens=tokens,
    )


@pytest.fixture
def app(container, monkeypatch):
    from class_attendance.main import create_app

    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(tokens) -> dict:
    return {"Authorization": f"Bearer {tokens.issue(Principal('admin', Role.ADMIN))}"}


@pytest.fixture
def staff_headers(tokens) -> dict:
    return {"Authorization": f"Bearer {tokens.issue(Principal('staff', Role.STAFF))}"}
