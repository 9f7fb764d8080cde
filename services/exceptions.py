"""
services/exceptions.py

서비스 계층 예외 모음. 각 예외는 HTTP 상태 코드와 짧은 메시지를 가지며,
middlewares/error_handler.py 에서 {"success": false, "error": "..."} 로 변환된다.
"""


class ServiceError(Exception):
    """서비스 계층 공통 예외"""
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(ServiceError):
    """토큰 누락/만료/위조, 존재하지 않는 계정"""
    status_code = 401
    default_message = "Unauthorized"


class AccessDeniedError(ServiceError):
    """인증은 되었으나 권한 또는 과목 배정이 없음"""
    status_code = 403
    default_message = "Access denied"


class RequestValidationFailed(ServiceError):
    """잘못된 입력 (날짜 형식, 허용되지 않은 상태값, 빈 필수값 등)"""
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ServiceError):
    """유일성 위반 (중복 배정/수강/당일 출석)"""
    status_code = 409
    default_message = "Already exists"


class StorageError(ServiceError):
    """DB 오류. 원본 예외는 로그에만 남긴다"""
    status_code = 500
