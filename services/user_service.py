import logging
import re
from typing import List, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from config.settings import settings
from models.attendance import SubjectAttendance
from models.enums import UserRole
from models.users import User
from schemas.users import UserCreate, UserUpdate
from services.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    RequestValidationFailed,
)
from services.policy import Actor, Operation, Resource, authorize
from services.storage import storage_guard
from utils.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

USERNAME_TAKEN = "Username already exists"
EMAIL_TAKEN = "Email is already taken by another user"
ACCOUNT_CONFLICT = "Username or email already exists"
DEFAULT_PASSWORD = "user"


def _apply_role_attributes(user: User) -> None:
    """역할에 맞지 않는 부가 속성 제거 (학번/학기: STUDENT, 학과: STUDENT/TEACHER)"""
    if user.role != UserRole.STUDENT.value:
        user.student_id = None
        user.semester = None
    if user.role not in (UserRole.STUDENT.value, UserRole.TEACHER.value):
        user.department = None


class UserService:
    """계정 인증, 본인 정보 변경, 관리자 계정 관리"""

    def __init__(self, db: Session):
        self.db = db

    def _get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        query = self.db.query(User).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    # ==========================================================
    # [인증]
    # ==========================================================

    def login(self, username: str, password: str) -> Tuple[User, str]:
        user = self.db.query(User).filter(User.username == username).first()
        if user is None or not verify_password(password, user.password):
            logger.warning(f"Failed login attempt for '{username}'")
            raise AuthenticationError("Invalid credentials")

        token = create_access_token(user.id, user.role)
        logger.info(f"User '{username}' ({user.role}) logged in")
        return user, token

    # ==========================================================
    # [본인 정보]
    # ==========================================================

    def me(self, actor: Actor) -> User:
        return self._get_user(actor.id)

    def update_email(self, actor: Actor, email: str) -> User:
        user = self._get_user(actor.id)
        if self._email_taken(email, exclude_id=user.id):
            raise ConflictError(EMAIL_TAKEN)

        with storage_guard(self.db, "update email", EMAIL_TAKEN):
            user.email = email
        self.db.refresh(user)
        return user

    def update_password(self, actor: Actor, current_password: str, new_password: str) -> None:
        if not current_password or not new_password:
            raise RequestValidationFailed("Current password and new password are required")
        if len(new_password) < settings.PASSWORD_MIN_LENGTH:
            raise RequestValidationFailed(
                f"New password must be at least {settings.PASSWORD_MIN_LENGTH} characters long"
            )

        user = self._get_user(actor.id)
        if not verify_password(current_password, user.password):
            raise RequestValidationFailed("Current password is incorrect")

        with storage_guard(self.db, "update password"):
            user.password = hash_password(new_password)
        logger.info(f"Password changed for user id={user.id}")

    # ==========================================================
    # [관리자 계정 관리]
    # ==========================================================

    def list_all(self, actor: Actor) -> List[Tuple[User, int]]:
        """이름순 전체 계정 + 계정별 출결 기록 수"""
        authorize(actor, Resource.USERS, Operation.LIST_ALL)
        with storage_guard(self.db, "fetch users", commit=False):
            return (
                self.db.query(User, func.count(SubjectAttendance.id))
                .outerjoin(SubjectAttendance, SubjectAttendance.student_id == User.id)
                .group_by(User.id)
                .order_by(User.name)
                .all()
            )

    def list_students(self, actor: Actor) -> List[Tuple[User, int]]:
        authorize(actor, Resource.USERS, Operation.LIST_STUDENTS)
        with storage_guard(self.db, "fetch students", commit=False):
            return (
                self.db.query(User, func.count(SubjectAttendance.id))
                .outerjoin(SubjectAttendance, SubjectAttendance.student_id == User.id)
                .filter(User.role == UserRole.STUDENT.value)
                .group_by(User.id)
                .order_by(User.name)
                .all()
            )

    def create(self, actor: Actor, payload: UserCreate) -> User:
        authorize(actor, Resource.USERS, Operation.CREATE, target_role=payload.role)

        # 아이디 미지정 시 이름을 소문자 + 공백 제거로 사용
        username = payload.username or re.sub(r"\s+", "", payload.name.lower())
        if not username:
            raise RequestValidationFailed("Username could not be derived from name")
        if payload.password is not None and len(payload.password) < settings.PASSWORD_MIN_LENGTH:
            raise RequestValidationFailed(
                f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long"
            )

        if self.db.query(User).filter(User.username == username).first():
            raise ConflictError(USERNAME_TAKEN)
        if payload.email and self._email_taken(payload.email):
            raise ConflictError(EMAIL_TAKEN)

        user = User(
            username=username,
            password=hash_password(payload.password or payload.student_id or DEFAULT_PASSWORD),
            name=payload.name,
            email=payload.email,
            role=payload.role.value,
            student_id=payload.student_id,
            department=payload.department,
            semester=payload.semester,
        )
        _apply_role_attributes(user)

        with storage_guard(self.db, "create user", ACCOUNT_CONFLICT):
            self.db.add(user)
        self.db.refresh(user)
        logger.info(f"User '{user.username}' ({user.role}) created by user id={actor.id}")
        return user

    def update(self, actor: Actor, user_id: int, payload: UserUpdate) -> User:
        user = self._get_user(user_id)
        authorize(actor, Resource.USERS, Operation.UPDATE, target_role=UserRole(user.role))

        changes = payload.model_dump(exclude_unset=True)
        if changes.get("role") is not None:
            # 관리자 역할 부여도 SUPER_ADMIN 만
            authorize(actor, Resource.USERS, Operation.UPDATE, target_role=changes["role"])
            changes["role"] = changes["role"].value
        else:
            changes.pop("role", None)

        if changes.get("email") and self._email_taken(changes["email"], exclude_id=user.id):
            raise ConflictError(EMAIL_TAKEN)

        with storage_guard(self.db, "update user", ACCOUNT_CONFLICT):
            for key, value in changes.items():
                setattr(user, key, value)
            _apply_role_attributes(user)
            # 역할이 바뀌면 이전 역할의 수강/배정은 정리 (delete-orphan)
            if user.role != UserRole.STUDENT.value:
                user.enrollments.clear()
            if user.role != UserRole.TEACHER.value:
                user.teacher_assignments.clear()
        self.db.refresh(user)
        logger.info(f"User id={user.id} updated by user id={actor.id}")
        return user

    def delete(self, actor: Actor, user_id: int) -> None:
        user = self._get_user(user_id)
        authorize(actor, Resource.USERS, Operation.DELETE, target_role=UserRole(user.role))
        if user.id == actor.id:
            raise RequestValidationFailed("You cannot delete your own account")

        with storage_guard(self.db, "delete user"):
            self.db.delete(user)
        logger.info(f"User id={user_id} deleted by user id={actor.id}")
