import logging
from typing import Optional, Annotated

import jwt
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from database.db import get_db
from models.enums import UserRole
from models.users import User as UserModel
from services.exceptions import AccessDeniedError, AuthenticationError
from services.policy import Actor
from utils.security import decode_access_token

logger = logging.getLogger(__name__)

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]


def get_current_actor(authorization: AuthHeader = None, db: Session = Depends(get_db)) -> Actor:
    """
    Bearer 토큰을 검증하고 요청 단위 Actor 를 만든다.
    - 헤더 없음/형식 오류 → 401
    - 서명 불일치/만료 → 403
    - 토큰은 유효하지만 계정이 사라짐 → 401
    역할은 토큰이 아니라 저장된 계정 기준 (역할 변경 즉시 반영)
    """
    if not authorization:
        raise AuthenticationError("Unauthorized")

    # "Bearer <token>" 파싱
    try:
        scheme, token = authorization.split(" ", 1)
    except ValueError:
        raise AuthenticationError("Unauthorized")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Unauthorized")

    try:
        claims = decode_access_token(token.strip())
        user_id = int(claims["sub"])
    except (jwt.PyJWTError, KeyError, ValueError) as e:
        logger.warning(f"Token validation error: {e}")
        raise AccessDeniedError("Invalid token")

    user = db.query(UserModel).filter(UserModel.id == user_id).first()
    if user is None:
        logger.warning(f"Token for missing account id={user_id}")
        raise AuthenticationError("User not found")

    return Actor(id=user.id, username=user.username, role=UserRole(user.role))


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
