from datetime import date

from models.attendance import SubjectAttendance
from models.enrollments import StudentSubject, TeacherSubject
from models.subjects import Subject
from services.subject_service import SubjectService
from tests.conftest import assign, auth_headers, enroll, make_subject


def enrolled_ids(db_session, subject_id):
    db_session.expire_all()
    rows = db_session.query(StudentSubject).filter(StudentSubject.subject_id == subject_id).all()
    return {row.student_id for row in rows}


class TestSubjectCrud:

    def test_create_and_duplicate_code(self, client, db_session, admin):
        """Scenario: the second CS101 is rejected and the table keeps one subject."""
        payload = {"code": "CS101", "name": "Intro CS", "department": "CS"}

        first = client.post("/v1/subjects/", json=payload, headers=auth_headers(admin))
        assert first.status_code == 201
        assert first.json()["data"]["code"] == "CS101"
        assert first.json()["data"]["attendance_enabled"] is False

        second = client.post("/v1/subjects/", json=payload, headers=auth_headers(admin))
        assert second.status_code == 409
        assert second.json() == {"success": False, "error": "Subject code already exists"}

        db_session.expire_all()
        assert db_session.query(Subject).filter(Subject.code == "CS101").count() == 1

    def test_non_admin_cannot_create(self, client, db_session, teacher, student):
        payload = {"code": "CS101", "name": "Intro CS", "department": "CS"}
        for user in (teacher, student):
            response = client.post("/v1/subjects/", json=payload, headers=auth_headers(user))
            assert response.status_code == 403
            assert response.json()["error"] == "Access denied"

        db_session.expire_all()
        assert db_session.query(Subject).count() == 0

    def test_missing_field_is_bad_request(self, client, admin):
        response = client.post("/v1/subjects/", json={"code": "CS101"}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_list_includes_members(self, client, db_session, admin, teacher, student, subject):
        assign(db_session, teacher, subject)
        enroll(db_session, student, subject)

        response = client.get("/v1/subjects/", headers=auth_headers(admin))

        assert response.status_code == 200
        [detail] = response.json()["data"]
        assert detail["teacher_count"] == 1
        assert detail["student_count"] == 1
        assert detail["teachers"][0]["id"] == teacher.id
        assert detail["students"][0]["student_id"] == "STU001"

    def test_update_and_code_conflict(self, client, db_session, admin, subject):
        make_subject(db_session, "CS102")

        renamed = client.put(
            f"/v1/subjects/{subject.id}", json={"name": "Programming I"}, headers=auth_headers(admin)
        )
        assert renamed.status_code == 200
        assert renamed.json()["data"]["name"] == "Programming I"
        assert renamed.json()["data"]["code"] == "CS101"

        clash = client.put(f"/v1/subjects/{subject.id}", json={"code": "CS102"}, headers=auth_headers(admin))
        assert clash.status_code == 409

    def test_delete_cascades(self, client, db_session, admin, teacher, student, subject):
        assign(db_session, teacher, subject)
        enroll(db_session, student, subject)
        db_session.add(
            SubjectAttendance(
                subject_id=subject.id, student_id=student.id, date=date(2024, 1, 10), status="present"
            )
        )
        db_session.commit()
        subject_id = subject.id

        response = client.delete(f"/v1/subjects/{subject_id}", headers=auth_headers(admin))
        assert response.status_code == 200

        db_session.expire_all()
        assert db_session.query(Subject).count() == 0
        assert db_session.query(TeacherSubject).count() == 0
        assert db_session.query(StudentSubject).count() == 0
        assert db_session.query(SubjectAttendance).count() == 0

    def test_unknown_subject_is_not_found(self, client, admin):
        response = client.delete("/v1/subjects/999", headers=auth_headers(admin))
        assert response.status_code == 404
        assert response.json()["error"] == "Subject not found"


class TestTeacherAssignment:

    def test_assign_then_duplicate(self, client, db_session, admin, teacher, subject):
        url = f"/v1/subjects/{subject.id}/assign-teacher"

        first = client.post(url, json={"teacher_id": teacher.id}, headers=auth_headers(admin))
        assert first.status_code == 201
        assert first.json()["data"]["teacher"]["id"] == teacher.id
        assert first.json()["data"]["subject"]["code"] == "CS101"

        second = client.post(url, json={"teacher_id": teacher.id}, headers=auth_headers(admin))
        assert second.status_code == 409
        assert second.json()["error"] == "Teacher is already assigned to this subject"

        db_session.expire_all()
        assert db_session.query(TeacherSubject).count() == 1

    def test_assign_requires_teacher_role(self, client, admin, student, subject):
        response = client.post(
            f"/v1/subjects/{subject.id}/assign-teacher",
            json={"teacher_id": student.id},
            headers=auth_headers(admin),
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Teacher not found"

    def test_unassign(self, client, db_session, admin, teacher, subject):
        assign(db_session, teacher, subject)
        url = f"/v1/subjects/{subject.id}/unassign-teacher/{teacher.id}"

        assert client.delete(url, headers=auth_headers(admin)).status_code == 200
        missing = client.delete(url, headers=auth_headers(admin))
        assert missing.status_code == 404
        assert missing.json()["error"] == "Teacher is not assigned to this subject"


class TestEnrollment:

    def test_enroll_single_student(self, client, db_session, admin, student, subject):
        url = f"/v1/subjects/{subject.id}/enroll-student"

        first = client.post(url, json={"student_id": student.id}, headers=auth_headers(admin))
        assert first.status_code == 201
        assert first.json()["data"]["student"]["student_id"] == "STU001"

        second = client.post(url, json={"student_id": student.id}, headers=auth_headers(admin))
        assert second.status_code == 409
        assert enrolled_ids(db_session, subject.id) == {student.id}

    def test_enroll_non_student_is_not_found(self, client, admin, teacher, subject):
        response = client.post(
            f"/v1/subjects/{subject.id}/enroll-student",
            json={"student_id": teacher.id},
            headers=auth_headers(admin),
        )
        assert response.status_code == 404

    def test_bulk_enroll_replaces_roster(self, client, db_session, admin, student, other_student, third_student, subject):
        """Scenario: {A, B} then {B, C} leaves exactly {B, C}."""
        url = f"/v1/subjects/{subject.id}/enroll-students"

        first = client.post(
            url, json={"student_ids": [student.id, other_student.id]}, headers=auth_headers(admin)
        )
        assert first.status_code == 201
        assert first.json()["data"]["count"] == 2

        second = client.post(
            url, json={"student_ids": [other_student.id, third_student.id]}, headers=auth_headers(admin)
        )
        assert second.status_code == 201
        assert second.json()["message"] == "Successfully enrolled 2 students"
        assert enrolled_ids(db_session, subject.id) == {other_student.id, third_student.id}

    def test_bulk_enroll_collapses_repeated_ids(self, client, db_session, admin, student, subject):
        response = client.post(
            f"/v1/subjects/{subject.id}/enroll-students",
            json={"student_ids": [student.id, student.id]},
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        assert response.json()["data"]["count"] == 1

    def test_bulk_enroll_is_all_or_nothing(self, client, db_session, admin, teacher, student, other_student, subject):
        enroll(db_session, student, subject)

        response = client.post(
            f"/v1/subjects/{subject.id}/enroll-students",
            json={"student_ids": [other_student.id, teacher.id]},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Some students were not found or are not valid students"
        assert enrolled_ids(db_session, subject.id) == {student.id}

    def test_bulk_enroll_rejects_empty_list(self, client, admin, subject):
        response = client.post(
            f"/v1/subjects/{subject.id}/enroll-students", json={"student_ids": []}, headers=auth_headers(admin)
        )
        assert response.status_code == 400

    def test_remove_student(self, client, db_session, admin, student, subject):
        enroll(db_session, student, subject)
        url = f"/v1/subjects/{subject.id}/remove-student/{student.id}"

        assert client.delete(url, headers=auth_headers(admin)).status_code == 200
        assert enrolled_ids(db_session, subject.id) == set()
        assert client.delete(url, headers=auth_headers(admin)).status_code == 404


class TestToggleAttendance:

    def test_unassigned_teacher_is_denied(self, client, db_session, other_teacher, subject):
        response = client.patch(
            f"/v1/subjects/{subject.id}/toggle-attendance",
            json={"enabled": True},
            headers=auth_headers(other_teacher),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "You are not assigned to this subject"
        db_session.expire_all()
        assert db_session.get(Subject, subject.id).attendance_enabled is False

    def test_assigned_teacher_and_admin_can_toggle(self, client, db_session, admin, teacher, subject):
        assign(db_session, teacher, subject)
        url = f"/v1/subjects/{subject.id}/toggle-attendance"

        enabled = client.patch(url, json={"enabled": True}, headers=auth_headers(teacher))
        assert enabled.status_code == 200
        assert enabled.json()["data"]["attendance_enabled"] is True
        assert enabled.json()["message"] == "Attendance enabled for subject successfully"

        disabled = client.patch(url, json={"enabled": False}, headers=auth_headers(admin))
        assert disabled.json()["data"]["attendance_enabled"] is False

    def test_enabled_must_be_boolean(self, client, admin, subject):
        response = client.patch(
            f"/v1/subjects/{subject.id}/toggle-attendance",
            json={"enabled": "yes"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400

    def test_student_cannot_toggle(self, client, student, subject):
        response = client.patch(
            f"/v1/subjects/{subject.id}/toggle-attendance",
            json={"enabled": True},
            headers=auth_headers(student),
        )
        assert response.status_code == 403


class TestScopedLists:

    def test_teacher_sees_only_assigned_subjects(self, client, db_session, teacher, subject):
        assign(db_session, teacher, subject)
        make_subject(db_session, "CS102")

        response = client.get("/v1/subjects/teacher", headers=auth_headers(teacher))

        assert response.status_code == 200
        assert [s["code"] for s in response.json()["data"]] == ["CS101"]

    def test_student_sees_only_enrolled_subjects(self, client, db_session, student, subject):
        enroll(db_session, student, subject)
        make_subject(db_session, "CS102")

        response = client.get("/v1/subjects/student", headers=auth_headers(student))
        assert [s["code"] for s in response.json()["data"]] == ["CS101"]

    def test_scoped_lists_check_role(self, client, teacher, student):
        assert client.get("/v1/subjects/student", headers=auth_headers(teacher)).status_code == 403
        assert client.get("/v1/subjects/teacher", headers=auth_headers(student)).status_code == 403
        assert client.get("/v1/subjects/", headers=auth_headers(teacher)).status_code == 403


class TestUpdateValidation:

    def test_null_name_is_a_validation_error(self, client, db_session, admin, subject):
        response = client.put(f"/v1/subjects/{subject.id}", json={"name": None}, headers=auth_headers(admin))

        assert response.status_code == 400
        assert "name" in response.json()["error"]
        db_session.expire_all()
        assert db_session.get(Subject, subject.id).name == "Intro CS"

    def test_null_flag_is_a_validation_error(self, client, admin, subject):
        response = client.put(f"/v1/subjects/{subject.id}", json={"is_active": None}, headers=auth_headers(admin))
        assert response.status_code == 400


class TestConstraintBackstop:
    """사전 조회를 건너뛴 동시 요청도 DB 유일 제약에서 같은 409 로 끝나야 한다"""

    def test_duplicate_assignment_caught_by_constraint(self, client, db_session, monkeypatch, admin, teacher, subject):
        assign(db_session, teacher, subject)
        monkeypatch.setattr(SubjectService, "_find_assignment", lambda self, teacher_id, subject_id: None)

        response = client.post(
            f"/v1/subjects/{subject.id}/assign-teacher", json={"teacher_id": teacher.id}, headers=auth_headers(admin)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "Teacher is already assigned to this subject"
        db_session.expire_all()
        assert db_session.query(TeacherSubject).count() == 1

    def test_duplicate_enrollment_caught_by_constraint(self, client, db_session, monkeypatch, admin, student, subject):
        enroll(db_session, student, subject)
        monkeypatch.setattr(SubjectService, "_find_enrollment", lambda self, student_id, subject_id: None)

        response = client.post(
            f"/v1/subjects/{subject.id}/enroll-student", json={"student_id": student.id}, headers=auth_headers(admin)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "Student is already enrolled in this subject"
        assert enrolled_ids(db_session, subject.id) == {student.id}
