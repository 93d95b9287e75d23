from __future__ import annotations

import io

from class_attendance.core.enums import AttendanceStatus
from class_attendance.core.exceptions import StoreError

from conftest import CSE_A, DAY1

CLASS_PARAMS = {"yearOfStudy": "II", "branch": "CSE", "section": "A", "date": "2024-03-01"}


def test_marking_routes_need_a_token(client):
    resp = client.get("/api/attendance/rollnumbers", query_string=CLASS_PARAMS)

    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "message": "Authentication token is missing"}


def test_admin_routes_reject_staff(client, staff_headers):
    resp = client.get("/api/attendance/get-attendancestatus", query_string=CLASS_PARAMS, headers=staff_headers)

    assert resp.status_code == 403
    assert resp.get_json()["success"] is False


def test_login_then_use_the_token(client):
    resp = client.post("/api/auth/login/staff", json={"username": "staff", "password": "staff123"})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["user"] == {"username": "staff", "name": "Staff", "role": "staff"}

    headers = {"Authorization": f"Bearer {body['token']}"}
    resp = client.get("/api/attendance/rollnumbers", query_string=CLASS_PARAMS, headers=headers)
    assert resp.status_code == 200


def test_login_with_wrong_password(client):
    resp = client.post("/api/auth/login/admin", json={"username": "admin", "password": "nope"})

    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid credentials"


def test_change_password_route(client, staff_headers):
    resp = client.put(
        "/api/auth/change-password",
        json={"currentPassword": "staff123", "newPassword": "fresh-pass"},
        headers=staff_headers,
    )

    assert resp.status_code == 200
    assert client.post("/api/auth/login/staff", json={"username": "staff", "password": "fresh-pass"}).status_code == 200


def test_daily_marking_flow(client, staff_headers, admin_headers, attendance_repo):
    resp = client.get("/api/attendance/rollnumbers", query_string=CLASS_PARAMS, headers=staff_headers)
    assert resp.get_json() == {
        "students": [
            {"rollNo": "22CS001", "name": "Bala"},
            {"rollNo": "22CS002", "name": "Arun"},
            {"rollNo": "22CS003", "name": "Chitra"},
            {"rollNo": "22CS010", "name": "Divya"},
        ],
        "totalStudents": 4,
    }

    resp = client.post(
        "/api/attendance/absent",
        json={**CLASS_PARAMS, "rollNumbers": ["22CS001", "22CS003"]},
        headers=staff_headers,
    )
    assert resp.get_json()["markedAsAbsent"] == ["22CS001", "22CS003"]

    resp = client.post(
        "/api/attendance/onDuty", json={**CLASS_PARAMS, "rollNumbers": ["22CS003"]}, headers=staff_headers
    )
    assert resp.get_json()["updated"] == 1

    resp = client.post("/api/attendance/mark-SuperPacc", json=CLASS_PARAMS, headers=staff_headers)
    assert resp.status_code == 201
    assert resp.get_json()["recordsAdded"] == 1

    resp = client.post("/api/attendance/mark-remaining-present", json=CLASS_PARAMS, headers=staff_headers)
    assert resp.get_json()["markedAsPresent"] == 1

    resp = client.get("/api/attendance/rollnumbers", query_string=CLASS_PARAMS, headers=staff_headers)
    assert resp.status_code == 200
    assert resp.get_json() == {
        "message": "Attendance has already been marked for all students.",
        "students": [],
        "totalStudents": 4,
    }

    resp = client.get("/api/attendance/getAttendanceStatusCount", query_string=CLASS_PARAMS, headers=staff_headers)
    assert resp.get_json() == {"classs": "II-CSE-A", "absentCount": 1, "otherStatusCount": 3}

    resp = client.get("/api/attendance/get-attendancestatus", query_string=CLASS_PARAMS, headers=admin_headers)
    states = {s["rollNo"]: s["state"] for s in resp.get_json()["attendanceStates"]}
    assert states == {"22CS001": "Absent", "22CS002": "SuperPacc", "22CS003": "On Duty", "22CS010": "Present"}

    assert attendance_repo.get("22CS010", DAY1).status == AttendanceStatus.PRESENT


def test_status_count_sentinel_over_http(client, staff_headers):
    resp = client.get("/api/attendance/getAttendanceStatusCount", query_string=CLASS_PARAMS, headers=staff_headers)

    assert resp.get_json() == {"classs": "II-CSE-A", "absentCount": "N/A", "otherStatusCount": "N/A"}


def test_missing_class_params(client, staff_headers):
    resp = client.get("/api/attendance/rollnumbers", query_string={"yearOfStudy": "II"}, headers=staff_headers)

    assert resp.status_code == 400
    assert "branch" in resp.get_json()["message"]


def test_bad_date(client, staff_headers):
    resp = client.get(
        "/api/attendance/rollnumbers", query_string={**CLASS_PARAMS, "date": "01/03/2024"}, headers=staff_headers
    )

    assert resp.status_code == 400


def test_numeric_date_in_body_is_400(client, staff_headers):
    resp = client.post(
        "/api/attendance/absent",
        json={**CLASS_PARAMS, "date": 20240301, "rollNumbers": ["22CS001"]},
        headers=staff_headers,
    )

    assert resp.status_code == 400
    assert "YYYY-MM-DD" in resp.get_json()["message"]


def test_roll_numbers_must_be_a_list(client, staff_headers):
    for bad in (5, {}, "22CS001"):
        resp = client.post("/api/attendance/absent", json={**CLASS_PARAMS, "rollNumbers": bad}, headers=staff_headers)

        assert resp.status_code == 400
        assert resp.get_json()["message"] == "rollNumbers must be a list"

    resp = client.post("/api/attendance/onDuty", json={**CLASS_PARAMS, "rollNumbers": 5}, headers=staff_headers)
    assert resp.status_code == 400


def test_unknown_class_is_404(client, staff_headers):
    resp = client.get(
        "/api/attendance/rollnumbers",
        query_string={**CLASS_PARAMS, "branch": "MECH"},
        headers=staff_headers,
    )

    assert resp.status_code == 404


def test_override_invalid_state(client, admin_headers):
    resp = client.post(
        "/api/attendance/mark-updatestatus",
        json={**CLASS_PARAMS, "rollNumberStateMapping": {"22CS001": "Late"}},
        headers=admin_headers,
    )

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invalid state for roll number 22CS001"


def test_info_status_flow(client, staff_headers):
    client.post("/api/attendance/absent", json={**CLASS_PARAMS, "rollNumbers": ["22CS001"]}, headers=staff_headers)

    resp = client.post(
        "/api/attendance/bulk-update-info-status",
        json={"date": "2024-03-01", "updates": [{"rollNo": "22CS001", "infoStatus": "Informed"}]},
        headers=staff_headers,
    )
    assert resp.get_json()["updated"] == [{"rollNo": "22CS001", "infoStatus": "Informed"}]
    assert "errors" not in resp.get_json()

    resp = client.post(
        "/api/attendance/bulk-update-info-status",
        json={"date": "2024-03-01", "updates": ["22CS001", {"rollNo": "22CS001", "infoStatus": "NotInformed"}]},
        headers=staff_headers,
    )
    assert resp.status_code == 200
    assert resp.get_json()["errors"] == ["Invalid student update: '22CS001'"]
    assert resp.get_json()["updated"] == [{"rollNo": "22CS001", "infoStatus": "NotInformed"}]

    resp = client.get("/api/attendance/absent-students-info", query_string=CLASS_PARAMS, headers=staff_headers)
    assert resp.get_json()["students"] == [
        {"rollNo": "22CS001", "name": "Bala", "leaveCount": 1, "infoStatus": "NotInformed"}
    ]

    resp = client.get("/api/students/leaves", query_string=CLASS_PARAMS, headers=staff_headers)
    assert resp.get_json()["data"] == [{"rollNo": "22CS001", "name": "Bala", "leaveCount": 1}]

    resp = client.get("/api/students/remaining", query_string=CLASS_PARAMS, headers=staff_headers)
    assert resp.get_json() == {"students": [{"rollNo": "22CS001", "name": "Bala"}]}


def test_hod_dashboard_and_report(client, staff_headers):
    client.post("/api/attendance/absent", json={**CLASS_PARAMS, "rollNumbers": ["22CS003"]}, headers=staff_headers)

    resp = client.get("/api/attendance/hod-dashboard", query_string={"date": "2024-03-01"}, headers=staff_headers)
    body = resp.get_json()
    assert body["date"] == "2024-03-01"
    assert [(c["section"], c["status"]) for c in body["data"]] == [("A", "marked"), ("B", "not_marked")]

    resp = client.get(
        "/api/reports/download-absent-report", query_string={"date": "2024-03-01"}, headers=staff_headers
    )
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert "attachment" in resp.headers["Content-Disposition"]
    assert b"22CS003" in resp.data


def test_student_crud_routes(client, admin_headers, staff_headers):
    resp = client.post(
        "/api/students/create",
        json={"rollNo": "22CS050", "name": "Kavin", "branch": "CSE", "yearOfStudy": "II", "section": "A"},
        headers=admin_headers,
    )
    assert resp.status_code == 201

    resp = client.post(
        "/api/students/create", json={"rollNo": "22CS050", "name": "Kavin", "branch": "CSE"}, headers=admin_headers
    )
    assert resp.status_code == 409

    resp = client.put("/api/students/update-student-data/22CS050", json={"gender": "MALE"}, headers=admin_headers)
    assert resp.get_json()["data"]["gender"] == "MALE"

    resp = client.get("/api/students/search/22CS050", headers=staff_headers)
    assert resp.get_json()["data"]["name"] == "Kavin"

    resp = client.get("/api/students/search/name", query_string={"name": "kav"}, headers=staff_headers)
    assert resp.get_json()["count"] == 1

    resp = client.delete("/api/students/delete/22CS050", headers=admin_headers)
    assert resp.status_code == 200
    assert client.get("/api/students/search/22CS050", headers=staff_headers).status_code == 404


def test_staff_cannot_mutate_the_roster(client, staff_headers):
    resp = client.delete("/api/students", json={"yearOfStudy": "All"}, headers=staff_headers)

    assert resp.status_code == 403


def test_bulk_delete_route(client, admin_headers, students_repo):
    resp = client.delete("/api/students", json={"yearOfStudy": "II", "branch": "CSE", "section": "B"}, headers=admin_headers)

    assert resp.get_json()["deletedCount"] == 1
    assert len(students_repo.list_all()) == 4

    resp = client.delete("/api/students", json={}, headers=admin_headers)
    assert resp.status_code == 400


def test_super_pacc_and_year_routes(client, admin_headers, staff_headers):
    resp = client.post(
        "/api/students/superpacc/batch-update",
        json={"yearOfStudy": "II", "branch": "CSE", "section": "A", "rollNumberStateMapping": {"22CS001": True, "X": True}},
        headers=admin_headers,
    )
    assert resp.get_json()["notFound"] == ["X"]

    resp = client.get(
        "/api/students/superpacc/status",
        query_string={"yearOfStudy": "II", "branch": "CSE", "section": "A"},
        headers=staff_headers,
    )
    assert [s["rollNo"] for s in resp.get_json()["data"] if s["superPacc"] == "YES"] == ["22CS001", "22CS002"]

    resp = client.put("/api/students/update-year", json={"fromYear": "II", "toYear": "III"}, headers=admin_headers)
    assert resp.get_json()["data"]["modifiedCount"] == 5

    resp = client.get("/api/students/classes", headers=staff_headers)
    assert [c["yearOfStudy"] for c in resp.get_json()["classes"]] == ["III", "III"]


def test_csv_upload_route(client, admin_headers):
    csv_bytes = (
        b"rollNo,name,hostellerDayScholar,gender,yearOfStudy,branch,section\n"
        b"23IT001,Hari,Hosteller,MALE,I,IT,-\n"
    )

    resp = client.post(
        "/api/upload/add-student",
        data={"csvfile": (io.BytesIO(csv_bytes), "students.csv")},
        content_type="multipart/form-data",
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.get_json()["inserted"] == 1

    resp = client.post("/api/upload/add-student", data={}, headers=admin_headers)
    assert resp.status_code == 400


def test_store_failures_become_500(client, staff_headers, students_repo, monkeypatch):
    def boom(*args, **kwargs):
        raise StoreError("connection refused")

    monkeypatch.setattr(students_repo, "find_by_class_key", boom)

    resp = client.get("/api/attendance/rollnumbers", query_string=CLASS_PARAMS, headers=staff_headers)

    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "message": "Server error"}


def test_unknown_route_is_json(client):
    resp = client.get("/api/nothing-here")

    assert resp.status_code == 404
    assert resp.get_json()["success"] is False
