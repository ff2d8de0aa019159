from typing import Generator
import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.orm import Session
from sqlalchemy import select

from app.core.config import settings
from app.db.session import SessionLocal
from app.models.user import User, Role, AccountStatus
from app.services.authz import (
    GuardDecision,
    Permission,
    evaluate_guard,
)

# Swagger Authorize에서 "Bearer 토큰" 입력받는 스키마
bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthenticated(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if cred is None:
        raise _unauthenticated("Not authenticated")

    token = cred.credentials
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
        )

        # access 토큰만 허용 (refresh 토큰 차단)
        if payload.get("type") and payload.get("type") != "access":
            raise JWTError()

        sub = payload.get("sub")
        if not sub:
            raise JWTError()

        user_id = uuid.UUID(sub)

    except (JWTError, ValueError):
        raise _unauthenticated("Could not validate credentials")

    user = db.scalar(select(User).where(User.id == user_id))
    if not user:
        raise _unauthenticated("User not found")

    # 비활성 / 정지 계정은 로그인하지 않은 것으로 취급
    if user.status != AccountStatus.ACTIVE:
        raise _unauthenticated(f"Account {user.status.value}")

    return user


def _enforce(current_user: User, *, required_role=None, required_permission=None) -> User:
    outcome = evaluate_guard(
        current_user,
        required_role=required_role,
        required_permission=required_permission,
    )
    if outcome.decision == GuardDecision.DENY_SIGNIN:
        raise _unauthenticated("Not authenticated")
    if outcome.decision == GuardDecision.DENY_UNAUTHORIZED:
        requirement = required_role.value if required_role is not None else required_permission.value
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires {requirement}",
        )
    return current_user


def require_min_role(min_role: Role):
    def _checker(current_user: User = Depends(get_current_user)) -> User:
        return _enforce(current_user, required_role=min_role)
    return _checker


def require_permission(permission: Permission):
    def _checker(current_user: User = Depends(get_current_user)) -> User:
        return _enforce(current_user, required_permission=permission)
    return _checker


get_current_admin = require_min_role(Role.ADMIN)
get_current_superadmin = require_min_role(Role.SUPERADMIN)

get_user_manager = require_permission(Permission.MANAGE_USERS)
get_analytics_viewer = require_permission(Permission.VIEW_ANALYTICS)
