from __future__ import annotations

from flask import Flask, Response, jsonify, request

from ..common.datetime_utils import format_iso_date
from ..common.request_params import class_key_and_date, json_body, require_date
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import AlreadyFullyRecordedError, ValidationError
from ..users.auth import require_role


def register(app: Flask, container: Container) -> None:
    attendance = container.attendance_service
    dashboard = container.dashboard_service
    marking = require_role(container.auth_service, Role.STAFF, Role.ADMIN)
    admin_only = require_role(container.auth_service, Role.ADMIN)

    @app.route("/api/attendance/rollnumbers", methods=["GET"], endpoint="attendance_rollnumbers")
    @marking
    def unrecorded_students():
        class_key, day = class_key_and_date(request.args)
        try:
            diff = attendance.find_unrecorded(class_key, day)
        except AlreadyFullyRecordedError as e:
            return jsonify({"message": str(e), "students": [], "totalStudents": e.total_students})
        return jsonify(
            {
                "students": [s.to_wire() for s in diff.unrecorded],
                "totalStudents": diff.total_roster_count,
            }
        )

    @app.route("/api/attendance/onDuty", methods=["POST"], endpoint="attendance_on_duty")
    @marking
    def mark_on_duty():
        data = json_body()
        class_key, day = class_key_and_date(data)
        changed = attendance.mark_on_duty(class_key, day, data.get("rollNumbers"))
        return jsonify({"message": "Marked as On Duty successfully", "updated": changed})

    @app.route("/api/attendance/absent", methods=["POST"], endpoint="attendance_absent")
    @marking
    def mark_absent():
        data = json_body()
        class_key, day = class_key_and_date(data)
        report = attendance.mark_absent(class_key, day, data.get("rollNumbers"))
        return jsonify(
            {
                "message": "Marked as Absent successfully",
                "markedAsAbsent": report.affected,
                "skipped": [s.to_wire() for s in report.skipped],
            }
        )

    @app.route("/api/attendance/mark-remaining-present", methods=["POST"], endpoint="attendance_remaining_present")
    @marking
    def mark_remaining_present():
        class_key, day = class_key_and_date(json_body())
        count = attendance.mark_remaining_present(class_key, day)
        return jsonify({"message": "Marked remaining students as Present", "markedAsPresent": count})

    @app.route("/api/attendance/mark-SuperPacc", methods=["POST"], endpoint="attendance_super_pacc")
    @marking
    def mark_super_pacc():
        class_key, day = class_key_and_date(json_body())
        outcome = attendance.mark_super_pacc(class_key, day)
        status = 200 if outcome.updated else 201
        return (
            jsonify(
                {
                    "message": "SuperPacc attendance marked successfully.",
                    "recordsUpdated": outcome.updated,
                    "recordsAdded": outcome.added,
                }
            ),
            status,
        )

    @app.route("/api/attendance/mark-updatestatus", methods=["POST"], endpoint="attendance_override")
    @admin_only
    def override_statuses():
        data = json_body()
        class_key, day = class_key_and_date(data)
        mapping = data.get("rollNumberStateMapping")
        if not isinstance(mapping, dict) or not mapping:
            raise ValidationError("Missing required fields.")
        outcome = attendance.override_statuses(class_key, day, mapping)
        return jsonify(
            {
                "message": "Attendance updated successfully!",
                "updated": outcome.updated,
                "inserted": outcome.inserted,
            }
        )

    @app.route("/api/attendance/get-attendancestatus", methods=["GET"], endpoint="attendance_status")
    @admin_only
    def attendance_states():
        class_key, day = class_key_and_date(request.args)
        snapshot = dashboard.status_snapshot(class_key, day)
        return jsonify(
            {
                "attendanceStates": [s.to_wire() for s in snapshot.states],
                "totalStudents": snapshot.total_students,
            }
        )

    @app.route("/api/attendance/getAttendanceStatusCount", methods=["GET"], endpoint="attendance_status_count")
    @marking
    def attendance_status_count():
        class_key, day = class_key_and_date(request.args)
        return jsonify(dashboard.status_counts(class_key, day).to_wire())

    @app.route("/api/attendance/hod-dashboard", methods=["GET"], endpoint="attendance_hod_dashboard")
    @marking
    def hod_dashboard():
        day = require_date(request.args)
        classes = dashboard.fleet_dashboard(day)
        return jsonify({"success": True, "date": format_iso_date(day), "data": [c.to_wire() for c in classes]})

    @app.route("/api/attendance/absent-students-info", methods=["GET"], endpoint="attendance_absent_info")
    @marking
    def absent_students_info():
        class_key, day = class_key_and_date(request.args)
        students = attendance.absent_with_info_status(class_key, day)
        body = {"success": True, "students": [s.to_wire(with_info_status=True) for s in students]}
        if not students:
            body["message"] = "No absent students found for the specified criteria"
        return jsonify(body)

    @app.route("/api/attendance/bulk-update-info-status", methods=["POST"], endpoint="attendance_bulk_info_status")
    @marking
    def bulk_update_info_status():
        data = json_body()
        updates = data.get("updates")
        if not isinstance(updates, list) or not updates:
            raise ValidationError("Please provide updates array and date")
        day = require_date(data)
        report = attendance.bulk_update_info_status(day, updates)
        body = {
            "success": True,
            "message": f"Updated {len(report.updated)} students' information status",
            "updated": [{"rollNo": u.roll_no, "infoStatus": u.info_status.value} for u in report.updated],
        }
        if report.errors:
            body["errors"] = report.errors
        return jsonify(body)

    @app.route("/api/students/remaining", methods=["GET"], endpoint="students_remaining")
    @marking
    def absentees():
        class_key, day = class_key_and_date(request.args)
        return jsonify({"students": [s.to_wire() for s in attendance.list_absentees(class_key, day)]})

    @app.route("/api/students/leaves", methods=["GET"], endpoint="students_leaves")
    @marking
    def leave_counts():
        class_key, day = class_key_and_date(request.args)
        rows = attendance.leave_counts(class_key, day)
        return jsonify(
            {
                "success": True,
                "date": format_iso_date(day),
                **class_key.to_wire(),
                "count": len(rows),
                "data": [r.to_wire() for r in rows],
            }
        )

    @app.route("/api/reports/download-absent-report", methods=["GET"], endpoint="reports_absent_csv")
    @marking
    def download_absent_report():
        day = require_date(request.args)
        gender = (request.args.get("gender") or "").strip() or None
        report = dashboard.absent_report(day, gender=gender)
        filename = f"absent-report-{format_iso_date(day)}.csv"
        return Response(
            report.to_csv(),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )
