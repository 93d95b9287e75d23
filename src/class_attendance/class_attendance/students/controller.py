from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.request_params import json_body
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..users.auth import require_role
from .model import ClassFilter, ClassKey


def _listing(students, empty_message: str):
    if not students:
        return jsonify({"success": True, "message": empty_message, "data": []})
    return jsonify({"success": True, "count": len(students), "data": [s.to_wire() for s in students]})


def register(app: Flask, container: Container) -> None:
    service = container.student_service
    signed_in = require_role(container.auth_service, Role.STAFF, Role.ADMIN)
    admin_only = require_role(container.auth_service, Role.ADMIN)

    @app.route("/api/students/search/name", methods=["GET"], endpoint="students_search_name")
    @signed_in
    def search_by_name():
        students = service.search_by_name(request.args.get("name", ""))
        return _listing(students, "No students found matching the search term")

    @app.route("/api/students/search/rollno", methods=["GET"], endpoint="students_search_rollno")
    @signed_in
    def search_by_roll_no():
        students = service.search_by_roll_no(request.args.get("rollNo", ""))
        return _listing(students, "No students found matching the roll number")

    @app.route("/api/students/search/<roll_no>", methods=["GET"], endpoint="students_get")
    @signed_in
    def get_student(roll_no: str):
        return jsonify({"success": True, "data": service.get_student(roll_no).to_wire()})

    @app.route("/api/students/create", methods=["POST"], endpoint="students_create")
    @admin_only
    def create_student():
        student = service.create_student(json_body())
        return jsonify({"success": True, "message": "Student created successfully", "data": student.to_wire()}), 201

    @app.route("/api/students/update-student-data/<roll_no>", methods=["PUT"], endpoint="students_update")
    @admin_only
    def update_student(roll_no: str):
        student = service.update_student(roll_no, json_body())
        return jsonify({"success": True, "message": "Student data updated successfully", "data": student.to_wire()})

    @app.route("/api/students/delete/<roll_no>", methods=["DELETE"], endpoint="students_delete")
    @admin_only
    def delete_student(roll_no: str):
        student = service.delete_student(roll_no)
        return jsonify({"success": True, "message": "Student deleted successfully", "data": student.to_wire()})

    @app.route("/api/students", methods=["DELETE"], endpoint="students_bulk_delete")
    @admin_only
    def bulk_delete():
        deleted = service.bulk_delete(ClassFilter.from_params(json_body()))
        return jsonify(
            {
                "success": True,
                "message": f"{deleted} student(s) deleted successfully",
                "deletedCount": deleted,
            }
        )

    @app.route("/api/students/superpacc/status", methods=["GET"], endpoint="students_superpacc_status")
    @signed_in
    def super_pacc_status():
        students = service.list_super_pacc(ClassKey.from_params(request.args))
        if not students:
            return jsonify({"success": True, "message": "No students found for the selected criteria", "data": []})
        return jsonify(
            {
                "success": True,
                "count": len(students),
                "data": [{"rollNo": s.roll_no, "name": s.name, "superPacc": s.super_pacc} for s in students],
            }
        )

    @app.route("/api/students/superpacc/update/<roll_no>", methods=["PUT"], endpoint="students_superpacc_update")
    @admin_only
    def update_super_pacc(roll_no: str):
        student = service.set_super_pacc(roll_no, json_body().get("superPacc"))
        return jsonify({"success": True, "message": "SuperPacc status updated successfully", "data": student.to_wire()})

    @app.route("/api/students/superpacc/batch-update", methods=["POST"], endpoint="students_superpacc_batch")
    @admin_only
    def batch_update_super_pacc():
        data = json_body()
        ClassKey.from_params(data)
        mapping = data.get("rollNumberStateMapping")
        if not isinstance(mapping, dict):
            raise ValidationError("Missing required parameters: rollNumberStateMapping")
        result = service.batch_set_super_pacc(mapping)
        return jsonify(
            {
                "success": True,
                "message": f"Successfully updated {len(result.updated)} students",
                "data": result.updated,
                "notFound": result.not_found,
            }
        )

    @app.route("/api/students/update-year", methods=["PUT"], endpoint="students_update_year")
    @admin_only
    def update_year():
        data = json_body()
        from_year = str(data.get("fromYear") or "").strip()
        to_year = str(data.get("toYear") or "").strip()
        count = service.promote_year(from_year=from_year, to_year=to_year)
        return jsonify(
            {
                "success": True,
                "message": f"Successfully updated {count} students from year {from_year} to {to_year}",
                "data": {"fromYear": from_year, "toYear": to_year, "modifiedCount": count},
            }
        )

    @app.route("/api/students/classes", methods=["GET"], endpoint="students_classes")
    @signed_in
    def distinct_classes():
        classes = service.distinct_classes()
        return jsonify(
            {
                "success": True,
                "message": "Distinct classes retrieved successfully",
                "classes": [c.to_wire() for c in classes],
                "totalClasses": len(classes),
            }
        )

    @app.route("/api/upload/add-student", methods=["POST"], endpoint="upload_students_csv")
    @admin_only
    def upload_students_csv():
        upload = request.files.get("csvfile")
        if upload is None or not upload.filename:
            raise ValidationError("Please upload a CSV file in the 'csvfile' field")
        report = container.student_importer.import_csv(upload.read())
        return jsonify({"success": True, **report.to_wire()})
