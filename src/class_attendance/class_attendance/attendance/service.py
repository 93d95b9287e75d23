from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Mapping, Sequence

from ..app_logger import get_logger
from ..common.roll_numbers import sort_by_roll_number
from ..common.store_errors import store_operation
from ..common.validators import require_enum, require_roll_numbers
from ..core.enums import AttendanceStatus, InfoStatus
from ..core.exceptions import AlreadyFullyRecordedError, ClassNotFoundError, NotFoundError, ValidationError
from ..students.model import ClassKey, StudentRef
from ..students.repository import StudentRepository
from .model import (
    AbsentStudent,
    AttendanceFilter,
    AttendancePatch,
    AttendanceRecord,
    InfoStatusReport,
    InfoStatusUpdate,
    OverrideOutcome,
    RosterDiff,
    SuperPaccOutcome,
    TransitionReport,
    describe,
)
from .repository import AttendanceRepository
from .streak import StreakMaintainer

logger = get_logger(__name__)

# Statuses that can be reported by the guardian-notification flow.
NOTIFIABLE_INFO_STATUSES = (InfoStatus.INFORMED, InfoStatus.NOT_INFORMED)


class AttendanceService:
    """Use case: reconcile a class roster against its attendance for one date.

    Every operation is keyed by (class-key, date) and works as a few batched
    reads followed by batched writes against the two stores.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        students: StudentRepository,
        *,
        streaks: StreakMaintainer | None = None,
    ):
        self._attendance = attendance
        self._students = students
        self._streaks = streaks or StreakMaintainer(attendance)

    # -- roster diff -------------------------------------------------------

    def find_unrecorded(self, class_key: ClassKey, day: date) -> RosterDiff:
        with store_operation(logger, "find_unrecorded", describe(class_key, day)):
            roster = self._students.find_by_class_key(class_key)
            if not roster:
                raise ClassNotFoundError(f"No students found for {class_key}.")
            recorded = {r.roll_no for r in self._attendance.find_by_class_key_and_date(class_key, day)}

        unrecorded = [s for s in roster if s.roll_no not in recorded]
        if not unrecorded:
            raise AlreadyFullyRecordedError(
                "Attendance has already been marked for all students.",
                total_students=len(roster),
            )
        return RosterDiff(
            unrecorded=[StudentRef(s.roll_no, s.name) for s in sort_by_roll_number(unrecorded)],
            total_roster_count=len(roster),
        )

    # -- transitions -------------------------------------------------------

    def mark_on_duty(self, class_key: ClassKey, day: date, roll_nos: Iterable[str]) -> int:
        """Absent -> On Duty. Records in any other state are left alone."""
        roll_nos = require_roll_numbers(roll_nos)
        with store_operation(logger, "mark_on_duty", describe(class_key, day)):
            changed = self._attendance.update_where(
                AttendanceFilter(
                    class_key=class_key,
                    day=day,
                    roll_nos=frozenset(roll_nos),
                    status=AttendanceStatus.ABSENT,
                ),
                AttendancePatch(status=AttendanceStatus.ON_DUTY, leave_count=0),
            )
        logger.info("on duty: %d of %d requested (%s)", changed, len(roll_nos), describe(class_key, day))
        return changed

    def mark_absent(self, class_key: ClassKey, day: date, roll_nos: Iterable[str]) -> TransitionReport:
        """Unrecorded -> Absent, with the consecutive-absence streak filled in.

        Roll numbers already holding a record for the date are skipped with a
        reason; so are inserts the store rejects as duplicates.
        """
        roll_nos = require_roll_numbers(roll_nos)
        report = TransitionReport()
        context = describe(class_key, day)

        with store_operation(logger, "mark_absent", context):
            existing = {r.roll_no: r for r in self._attendance.find_by_class_key_and_date(class_key, day)}

            pending: list[AttendanceRecord] = []
            seen: set[str] = set()
            for roll_no in roll_nos:
                if roll_no in seen:
                    report.skip(roll_no, "duplicate roll number in request")
                    continue
                seen.add(roll_no)
                if roll_no in existing:
                    report.skip(roll_no, f"already recorded as {existing[roll_no].status.value}")
                    continue
                pending.append(
                    AttendanceRecord.new(
                        roll_no=roll_no,
                        day=day,
                        class_key=class_key,
                        status=AttendanceStatus.ABSENT,
                        leave_count=self._streaks.compute_streak(roll_no, class_key, day),
                    )
                )

            outcome = self._attendance.insert_many(pending)

        report.affected.extend(r.roll_no for r in outcome.inserted)
        for rec in outcome.duplicates:
            report.skip(rec.roll_no, "already recorded by a concurrent request")
        if report.skipped:
            logger.warning("absent: skipped %s (%s)", [s.roll_no for s in report.skipped], context)
        logger.info("absent: %d inserted (%s)", len(report.affected), context)
        return report

    def mark_remaining_present(self, class_key: ClassKey, day: date) -> int:
        """End-of-day sweep: every roster member without a record becomes Present."""
        context = describe(class_key, day)
        with store_operation(logger, "mark_remaining_present", context):
            roster = self._students.find_by_class_key(class_key)
            recorded = {r.roll_no for r in self._attendance.find_by_class_key_and_date(class_key, day)}
            present = [
                AttendanceRecord.new(roll_no=s.roll_no, day=day, class_key=class_key, status=AttendanceStatus.PRESENT)
                for s in roster
                if s.roll_no not in recorded
            ]
            outcome = self._attendance.insert_many(present)

        logger.info("present sweep: %d inserted (%s)", len(outcome.inserted), context)
        return len(outcome.inserted)

    def mark_super_pacc(self, class_key: ClassKey, day: date) -> SuperPaccOutcome:
        """Every SuperPacc-eligible student ends up SuperPacc, whatever their prior status."""
        context = describe(class_key, day)
        with store_operation(logger, "mark_super_pacc", context):
            eligible = [s for s in self._students.find_by_class_key(class_key) if s.is_super_pacc]
            if not eligible:
                raise NotFoundError("No students with SuperPacc found for the given criteria.")

            existing = {r.roll_no: r for r in self._attendance.find_by_class_key_and_date(class_key, day)}
            to_update = frozenset(
                s.roll_no
                for s in eligible
                if s.roll_no in existing and existing[s.roll_no].status != AttendanceStatus.SUPER_PACC
            )
            to_add = [
                AttendanceRecord.new(
                    roll_no=s.roll_no, day=day, class_key=class_key, status=AttendanceStatus.SUPER_PACC
                )
                for s in eligible
                if s.roll_no not in existing
            ]

            updated = 0
            if to_update:
                updated = self._attendance.update_where(
                    AttendanceFilter(class_key=class_key, day=day, roll_nos=to_update),
                    AttendancePatch(status=AttendanceStatus.SUPER_PACC),
                )
            outcome = self._attendance.insert_many(to_add)

        logger.info("superpacc: updated=%d added=%d (%s)", updated, len(outcome.inserted), context)
        return SuperPaccOutcome(updated=updated, added=len(outcome.inserted))

    def override_statuses(self, class_key: ClassKey, day: date, mapping: Mapping[str, Any]) -> OverrideOutcome:
        """Manual correction: set each roll number's status as given.

        Only the status field is written on existing records. The streak is not
        recomputed, so leave counts may disagree with history afterwards.
        """
        if not mapping:
            raise ValidationError("rollNumberStateMapping is required")
        targets: dict[str, AttendanceStatus] = {}
        for roll_no, state in mapping.items():
            try:
                targets[str(roll_no).strip()] = AttendanceStatus(state)
            except ValueError:
                raise ValidationError(f"Invalid state for roll number {roll_no}")

        context = describe(class_key, day)
        with store_operation(logger, "override_statuses", context):
            existing = {r.roll_no: r for r in self._attendance.find_by_class_key_and_date(class_key, day)}

            updated = 0
            for status in AttendanceStatus:
                group = frozenset(r for r, s in targets.items() if s == status and r in existing)
                if group:
                    updated += self._attendance.update_where(
                        AttendanceFilter(class_key=class_key, day=day, roll_nos=group),
                        AttendancePatch(status=status),
                    )

            outcome = self._attendance.insert_many(
                [
                    AttendanceRecord.new(roll_no=r, day=day, class_key=class_key, status=s)
                    for r, s in targets.items()
                    if r not in existing
                ]
            )

        logger.info("override: updated=%d inserted=%d (%s)", updated, len(outcome.inserted), context)
        return OverrideOutcome(updated=updated, inserted=len(outcome.inserted))

    # -- absentee views ----------------------------------------------------

    def _absent_records(self, class_key: ClassKey, day: date) -> list[AttendanceRecord]:
        return [
            r
            for r in self._attendance.find_by_class_key_and_date(class_key, day)
            if r.status == AttendanceStatus.ABSENT
        ]

    def _names(self, roll_nos: Sequence[str]) -> dict[str, str]:
        return {s.roll_no: s.name for s in self._students.find_by_roll_nos(roll_nos)}

    def list_absentees(self, class_key: ClassKey, day: date) -> list[StudentRef]:
        with store_operation(logger, "list_absentees", describe(class_key, day)):
            absent = self._absent_records(class_key, day)
            names = self._names([r.roll_no for r in absent])
        refs = [StudentRef(r.roll_no, names[r.roll_no]) for r in absent if r.roll_no in names]
        return sort_by_roll_number(refs)

    def absent_with_info_status(self, class_key: ClassKey, day: date) -> list[AbsentStudent]:
        with store_operation(logger, "absent_with_info_status", describe(class_key, day)):
            absent = self._absent_records(class_key, day)
            names = self._names([r.roll_no for r in absent])
        rows = [
            AbsentStudent(r.roll_no, names[r.roll_no], r.leave_count, r.info_status)
            for r in absent
            if r.roll_no in names
        ]
        return sort_by_roll_number(rows)

    def leave_counts(self, class_key: ClassKey, day: date) -> list[AbsentStudent]:
        """Absent students with a running streak, longest streak first."""
        with store_operation(logger, "leave_counts", describe(class_key, day)):
            absent = [r for r in self._absent_records(class_key, day) if r.leave_count > 0]
            names = self._names([r.roll_no for r in absent])
        rows = [AbsentStudent(r.roll_no, names.get(r.roll_no), r.leave_count, r.info_status) for r in absent]
        return sorted(rows, key=lambda s: s.leave_count, reverse=True)

    def bulk_update_info_status(self, day: date, updates: Iterable[Mapping[str, Any]]) -> InfoStatusReport:
        """Record guardian notification per roll number; bad rows are reported, not fatal."""
        report = InfoStatusReport()
        valid: dict[str, InfoStatus] = {}
        for update in updates:
            if not isinstance(update, Mapping):
                report.errors.append(f"Invalid student update: {update!r}")
                continue
            roll_no = str(update.get("rollNo") or "").strip()
            raw_status = update.get("infoStatus")
            if not roll_no or not raw_status:
                report.errors.append(f"Missing data for student update: {update!r}")
                continue
            try:
                info_status = require_enum(InfoStatus, raw_status, "infoStatus")
            except ValidationError:
                info_status = None
            if info_status not in NOTIFIABLE_INFO_STATUSES:
                report.errors.append(f"Invalid infoStatus for {roll_no}: {raw_status}")
                continue
            valid[roll_no] = info_status

        if not valid:
            return report

        with store_operation(logger, "bulk_update_info_status", f"date={day}"):
            recorded = {r.roll_no for r in self._attendance.find_by_date(day)}
            for info_status in NOTIFIABLE_INFO_STATUSES:
                group = frozenset(r for r, s in valid.items() if s == info_status and r in recorded)
                if group:
                    self._attendance.update_where(
                        AttendanceFilter(day=day, roll_nos=group),
                        AttendancePatch(info_status=info_status),
                    )

        for roll_no, info_status in valid.items():
            if roll_no in recorded:
                report.updated.append(InfoStatusUpdate(roll_no, info_status))
            else:
                report.errors.append(f"Attendance record not found for {roll_no}")
        return report
