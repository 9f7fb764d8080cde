from fastapi import APIRouter, Depends, status

from dependencies.security import CurrentActor
from dependencies.services import get_subject_service
from schemas.subjects import (
    AssignTeacherRequest,
    AssignmentOut,
    EnrollmentOut,
    EnrollStudentRequest,
    EnrollStudentsRequest,
    SubjectCreate,
    SubjectOut,
    SubjectUpdate,
    ToggleAttendanceRequest,
    to_subject_detail,
)
from services.subject_service import SubjectService

router = APIRouter(prefix="/subjects", tags=["과목 정보"])


# ==========================================================
# [1단계] 역할별 조회
# ==========================================================

# ✅ [READ] 담당 과목 조회 (TEACHER)
@router.get("/teacher")
def read_teacher_subjects(actor: CurrentActor, service: SubjectService = Depends(get_subject_service)):
    subjects = service.list_for_teacher(actor)
    return {
        "success": True,
        "data": [to_subject_detail(s) for s in subjects],
        "message": "담당 과목 조회 완료"
    }


# ✅ [READ] 수강 과목 조회 (STUDENT)
@router.get("/student")
def read_student_subjects(actor: CurrentActor, service: SubjectService = Depends(get_subject_service)):
    subjects = service.list_for_student(actor)
    return {
        "success": True,
        "data": [to_subject_detail(s) for s in subjects],
        "message": "수강 과목 조회 완료"
    }


# ==========================================================
# [2단계] 과목 CRUD (관리자)
# ==========================================================

# ✅ [READ] 전체 과목 조회
@router.get("/")
def read_subjects(actor: CurrentActor, service: SubjectService = Depends(get_subject_service)):
    subjects = service.list_all(actor)
    return {
        "success": True,
        "data": [to_subject_detail(s) for s in subjects],
        "message": "전체 과목 조회 완료"
    }


# ✅ [CREATE] 과목 추가
@router.post("/", status_code=status.HTTP_201_CREATED)
def create_subject(subject: SubjectCreate, actor: CurrentActor, service: SubjectService = Depends(get_subject_service)):
    created = service.create(actor, subject)
    return {
        "success": True,
        "data": SubjectOut.model_validate(created),
        "message": "과목 정보가 성공적으로 추가되었습니다"
    }


# ✅ [UPDATE] 과목 정보 수정
@router.put("/{subject_id}")
def update_subject(
    subject_id: int,
    updated: SubjectUpdate,
    actor: CurrentActor,
    service: SubjectService = Depends(get_subject_service),
):
    subject = service.update(actor, subject_id, updated)
    return {
        "success": True,
        "data": SubjectOut.model_validate(subject),
        "message": "과목 정보가 성공적으로 수정되었습니다"
    }


# ✅ [DELETE] 과목 삭제 (배정/수강/출결 함께 삭제)
@router.delete("/{subject_id}")
def delete_subject(subject_id: int, actor: CurrentActor, service: SubjectService = Depends(get_subject_service)):
    service.delete(actor, subject_id)
    return {
        "success": True,
        "data": {"subject_id": subject_id},
        "message": "과목 정보가 성공적으로 삭제되었습니다"
    }


# ==========================================================
# [3단계] 교사 배정 / 학생 수강 (관리자)
# ==========================================================

# ✅ [CREATE] 교사 배정
@router.post("/{subject_id}/assign-teacher", status_code=status.HTTP_201_CREATED)
def assign_teacher(
    subject_id: int,
    body: AssignTeacherRequest,
    actor: CurrentActor,
    service: SubjectService = Depends(get_subject_service),
):
    assignment = service.assign_teacher(actor, subject_id, body.teacher_id)
    return {
        "success": True,
        "data": AssignmentOut.model_validate(assignment),
        "message": "Teacher assigned to subject successfully"
    }


# ✅ [DELETE] 교사 배정 해제
@router.delete("/{subject_id}/unassign-teacher/{teacher_id}")
def unassign_teacher(
    subject_id: int,
    teacher_id: int,
    actor: CurrentActor,
    service: SubjectService = Depends(get_subject_service),
):
    service.unassign_teacher(actor, subject_id, teacher_id)
    return {
        "success": True,
        "data": {"subject_id": subject_id, "teacher_id": teacher_id},
        "message": "Teacher unassigned from subject successfully"
    }


# ✅ [CREATE] 학생 한 명 수강 등록
@router.post("/{subject_id}/enroll-student", status_code=status.HTTP_201_CREATED)
def enroll_student(
    subject_id: int,
    body: EnrollStudentRequest,
    actor: CurrentActor,
    service: SubjectService = Depends(get_subject_service),
):
    enrollment = service.enroll_student(actor, subject_id, body.student_id)
    return {
        "success": True,
        "data": EnrollmentOut.model_validate(enrollment),
        "message": "Student enrolled in subject successfully"
    }


# ✅ [REPLACE] 수강생 전체 교체 (병합 아님 - 원하는 전체 명단을 보낼 것)
@router.post("/{subject_id}/enroll-students", status_code=status.HTTP_201_CREATED)
def enroll_students(
    subject_id: int,
    body: EnrollStudentsRequest,
    actor: CurrentActor,
    service: SubjectService = Depends(get_subject_service),
):
    enrollments = service.enroll_students(actor, subject_id, body.student_ids)
    return {
        "success": True,
        "data": {
            "enrollments": [EnrollmentOut.model_validate(e) for e in enrollments],
            "count": len(enrollments),
        },
        "message": f"Successfully enrolled {len(enrollments)} students"
    }


# ✅ [DELETE] 학생 수강 취소
@router.delete("/{subject_id}/remove-student/{student_id}")
def remove_student(
    subject_id: int,
    student_id: int,
    actor: CurrentActor,
    service: SubjectService = Depends(get_subject_service),
):
    service.remove_student(actor, subject_id, student_id)
    return {
        "success": True,
        "data": {"subject_id": subject_id, "student_id": student_id},
        "message": "Student removed from subject successfully"
    }


# ==========================================================
# [4단계] 자가 출석 허용 토글 (관리자 또는 배정 교사)
# ==========================================================

# ✅ [PATCH] 학생 자가 출석 on/off
@router.patch("/{subject_id}/toggle-attendance")
def toggle_attendance(
    subject_id: int,
    body: ToggleAttendanceRequest,
    actor: CurrentActor,
    service: SubjectService = Depends(get_subject_service),
):
    subject = service.toggle_attendance(actor, subject_id, body.enabled)
    return {
        "success": True,
        "data": to_subject_detail(subject),
        "message": f"Attendance {'enabled' if body.enabled else 'disabled'} for subject successfully"
    }
