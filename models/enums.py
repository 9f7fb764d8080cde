from enum import Enum


class UserRole(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"


# ✅ 관리자 권한 묶음 (정책 테이블, 사용자 관리에서 공용)
ADMIN_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.ADMIN})
STAFF_ROLES = ADMIN_ROLES | {UserRole.TEACHER}
