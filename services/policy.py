"""
services/policy.py

역할 기반 권한 판단을 한 곳에 모은 선언형 정책 테이블.

- Actor: 검증된 토큰 클레임 + 저장된 역할로 요청마다 한 번 만들어지는 불변 객체
- POLICY: (Resource, Operation) → Policy(rule, message)
- authorize(): 라우터/서비스가 데이터 변경 전에 호출하는 유일한 게이트.
  테이블에 없는 조합은 거부한다.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from models.enrollments import TeacherSubject
from models.enums import ADMIN_ROLES, STAFF_ROLES, UserRole
from services.exceptions import AccessDeniedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """요청을 보낸 인증된 계정"""
    id: int
    username: str
    role: UserRole


@dataclass(frozen=True)
class PolicyContext:
    """규칙 판단에 필요한 요청별 정보"""
    db: Optional[Session] = None
    subject_id: Optional[int] = None
    student_id: Optional[int] = None
    target_role: Optional[UserRole] = None


class Resource(str, Enum):
    SUBJECTS = "subjects"
    ATTENDANCE = "attendance"
    USERS = "users"


class Operation(str, Enum):
    CREATE = "create"
    LIST_ALL = "list_all"
    UPDATE = "update"
    DELETE = "delete"
    ASSIGN_TEACHER = "assign_teacher"
    UNASSIGN_TEACHER = "unassign_teacher"
    ENROLL_STUDENT = "enroll_student"
    ENROLL_STUDENTS = "enroll_students"
    REMOVE_STUDENT = "remove_student"
    TOGGLE_ATTENDANCE = "toggle_attendance"
    LIST_TEACHER = "list_teacher"
    LIST_STUDENT = "list_student"
    BULK_CREATE = "bulk_create"
    SELF_MARK = "self_mark"
    READ = "read"
    READ_STUDENT = "read_student"
    STATS = "stats"
    LIST_STUDENTS = "list_students"
    SUMMARY = "summary"


Rule = Callable[[Actor, PolicyContext], bool]


# ==========================================================
# [규칙 조립 도구]
# ==========================================================

def roles(allowed) -> Rule:
    allowed = frozenset(allowed)
    return lambda actor, ctx: actor.role in allowed


def any_of(*rules: Rule) -> Rule:
    return lambda actor, ctx: any(rule(actor, ctx) for rule in rules)


def all_of(*rules: Rule) -> Rule:
    return lambda actor, ctx: all(rule(actor, ctx) for rule in rules)


def assigned_teacher(actor: Actor, ctx: PolicyContext) -> bool:
    """TEACHER 역할이면서 해당 과목에 실제 배정되어 있는지"""
    if actor.role != UserRole.TEACHER or ctx.db is None or ctx.subject_id is None:
        return False
    assignment = (
        ctx.db.query(TeacherSubject)
        .filter(TeacherSubject.teacher_id == actor.id, TeacherSubject.subject_id == ctx.subject_id)
        .first()
    )
    return assignment is not None


def is_target_student(actor: Actor, ctx: PolicyContext) -> bool:
    return ctx.student_id is not None and ctx.student_id == actor.id


def can_manage_target_role(actor: Actor, ctx: PolicyContext) -> bool:
    """관리자 계정(ADMIN/SUPER_ADMIN)을 다루는 것은 SUPER_ADMIN만"""
    if ctx.target_role in ADMIN_ROLES:
        return actor.role == UserRole.SUPER_ADMIN
    return True


@dataclass(frozen=True)
class Policy:
    rule: Rule
    message: str = AccessDeniedError.default_message


ADMIN_ONLY = Policy(roles(ADMIN_ROLES))
STAFF_ONLY = Policy(roles(STAFF_ROLES))
MANAGE_ACCOUNT = Policy(all_of(roles(ADMIN_ROLES), can_manage_target_role))


# ==========================================================
# [정책 테이블]
# ==========================================================

POLICY: Dict[Tuple[Resource, Operation], Policy] = {
    # --- 과목 ---
    (Resource.SUBJECTS, Operation.CREATE): ADMIN_ONLY,
    (Resource.SUBJECTS, Operation.LIST_ALL): ADMIN_ONLY,
    (Resource.SUBJECTS, Operation.UPDATE): ADMIN_ONLY,
    (Resource.SUBJECTS, Operation.DELETE): ADMIN_ONLY,
    (Resource.SUBJECTS, Operation.ASSIGN_TEACHER): ADMIN_ONLY,
    (Resource.SUBJECTS, Operation.UNASSIGN_TEACHER): ADMIN_ONLY,
    (Resource.SUBJECTS, Operation.ENROLL_STUDENT): ADMIN_ONLY,
    (Resource.SUBJECTS, Operation.ENROLL_STUDENTS): ADMIN_ONLY,
    (Resource.SUBJECTS, Operation.REMOVE_STUDENT): ADMIN_ONLY,
    (Resource.SUBJECTS, Operation.TOGGLE_ATTENDANCE): Policy(
        any_of(roles(ADMIN_ROLES), assigned_teacher),
        "You are not assigned to this subject",
    ),
    (Resource.SUBJECTS, Operation.LIST_TEACHER): Policy(roles({UserRole.TEACHER})),
    (Resource.SUBJECTS, Operation.LIST_STUDENT): Policy(roles({UserRole.STUDENT})),

    # --- 출결 ---
    (Resource.ATTENDANCE, Operation.BULK_CREATE): Policy(
        assigned_teacher, "Only teachers assigned to this subject can take attendance"
    ),
    (Resource.ATTENDANCE, Operation.SELF_MARK): Policy(
        all_of(roles({UserRole.STUDENT}), is_target_student), "You can only mark your own attendance"
    ),
    (Resource.ATTENDANCE, Operation.UPDATE): Policy(
        assigned_teacher, "Only teachers assigned to this subject can edit attendance"
    ),
    (Resource.ATTENDANCE, Operation.DELETE): Policy(
        assigned_teacher, "Only teachers assigned to this subject can delete attendance"
    ),
    (Resource.ATTENDANCE, Operation.READ): STAFF_ONLY,
    (Resource.ATTENDANCE, Operation.STATS): STAFF_ONLY,
    (Resource.ATTENDANCE, Operation.READ_STUDENT): Policy(
        any_of(roles(STAFF_ROLES), is_target_student)
    ),
    (Resource.ATTENDANCE, Operation.SUMMARY): STAFF_ONLY,

    # --- 계정 ---
    (Resource.USERS, Operation.LIST_ALL): ADMIN_ONLY,
    (Resource.USERS, Operation.LIST_STUDENTS): STAFF_ONLY,
    (Resource.USERS, Operation.CREATE): MANAGE_ACCOUNT,
    (Resource.USERS, Operation.UPDATE): MANAGE_ACCOUNT,
    (Resource.USERS, Operation.DELETE): MANAGE_ACCOUNT,
}


def authorize(actor: Actor, resource: Resource, operation: Operation, **context) -> None:
    """
    정책 테이블을 조회해 허용되지 않으면 AccessDeniedError.
    context 는 PolicyContext 필드(db, subject_id, student_id, target_role).
    """
    policy = POLICY.get((resource, operation))
    if policy is None:
        logger.error(f"No policy registered for {resource.value}.{operation.value}; denying")
        raise AccessDeniedError()

    if not policy.rule(actor, PolicyContext(**context)):
        logger.warning(
            f"Denied {resource.value}.{operation.value} for user id={actor.id} role={actor.role.value}"
        )
        raise AccessDeniedError(policy.message)
