import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from services.exceptions import ConflictError, StorageError

logger = logging.getLogger(__name__)

# MySQL ER_DUP_ENTRY
MYSQL_DUPLICATE_ENTRY = 1062


def is_unique_violation(error: IntegrityError) -> bool:
    """유일 제약 위반인지 (NOT NULL / FK 위반과 구분)"""
    args = getattr(error.orig, "args", ())
    if args and args[0] == MYSQL_DUPLICATE_ENTRY:
        return True
    # sqlite: "UNIQUE constraint failed: ..."
    return "unique constraint" in str(error.orig).lower()


@contextmanager
def storage_guard(db: Session, action: str, conflict_message: Optional[str] = None, commit: bool = True):
    """
    블록 안의 DB 작업을 하나의 트랜잭션으로 묶는다.
    - 정상 종료 시 commit (commit=False 면 조회 전용)
    - 유일성 제약 위반 → ConflictError(conflict_message)
    - 그 외 제약 위반/SQLAlchemy 오류 → 롤백 + 로그 + StorageError("Failed to <action>")
    """
    try:
        yield
        if commit:
            db.commit()
    except IntegrityError as e:
        db.rollback()
        if conflict_message and is_unique_violation(e):
            logger.warning(f"Constraint violation while trying to {action}: {e.orig}")
            raise ConflictError(conflict_message) from e
        logger.exception(f"Integrity error while trying to {action}")
        raise StorageError(f"Failed to {action}") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Database error while trying to {action}")
        raise StorageError(f"Failed to {action}") from e
