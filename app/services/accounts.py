"""
services/accounts.py

대시보드 계정(User) 관련 비즈니스 로직 모음.

이 파일은 계정 생성(가입 / 관리자 생성), 조회, 로그인 시각 기록,
권한 플래그 재계산, 응답용 직렬화를 담당한다.
라우터에서는 이 파일의 함수를 호출하여
DB 조회/검증/정책 판단을 수행한다.

설계 원칙:
- HTTP / FastAPI 의존성 없음
- 트랜잭션 제어(commit/rollback)는 라우터에서 수행
- 권한 플래그는 계정 생성 시점에만 계산하여 저장
  (role 변경 시 자동 재계산하지 않음, resync_permissions로만 갱신)

관련 파일:
- app.models.user        : User / Role / AccountStatus 모델
- app.services.authz     : permissions_for / permissions_are_stale
- app.routers.auth       : 가입 / 로그인 / 비밀번호 변경
- app.routers.admin      : 관리자 사용자 관리 API

"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, desc, or_, func
from sqlalchemy.orm import Session

from app.core.security import get_password_hash
from app.models.user import User, Role, AccountStatus
from app.services.authz import (
    Permissions,
    available_roles_for,
    permissions_are_stale,
    permissions_for,
    stored_permissions,
)

LOGGER = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(User.email == normalize_email(email)))


def apply_permissions(user: User, permissions: Permissions) -> None:
    user.can_manage_users = permissions.can_manage_users
    user.can_view_analytics = permissions.can_view_analytics
    user.can_edit_content = permissions.can_edit_content


"""
계정 생성

- 이메일 중복이면 ValueError
- 권한 플래그는 생성 시점의 role 기준으로 계산하여 저장
- registration_source: "signup"(본인 가입) / "admin"(관리자 생성) / "bootstrap"(초기 스크립트)

"""

def create_account(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: Role = Role.USER,
    status: AccountStatus = AccountStatus.ACTIVE,
    phone: Optional[str] = None,
    city: Optional[str] = None,
    province: Optional[str] = None,
    registration_source: Optional[str] = None,
) -> User:
    if get_by_email(db, email):
        raise ValueError("Email already registered")

    user = User(
        email=normalize_email(email),
        password_hash=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        role=role,
        status=status,
        city=city,
        province=province,
        registration_source=registration_source,
    )
    apply_permissions(user, permissions_for(role))
    db.add(user)
    db.flush()
    LOGGER.info("account created: %s (%s, source=%s)", user.email, role.value, registration_source)
    return user


def record_login(user: User) -> None:
    user.last_login_at = datetime.now(timezone.utc)


def resync_permissions(user: User) -> None:
    apply_permissions(user, permissions_for(user.role))


"""
계정 목록 조회 (관리자용)

- 생성일 기준 최신 순
- role / status 필터, q(이메일/이름 부분 일치) 검색

"""

def list_accounts(
    db: Session,
    *,
    role: Optional[Role] = None,
    status: Optional[AccountStatus] = None,
    q: Optional[str] = None,
) -> list[User]:
    stmt = select(User)
    if role is not None:
        stmt = stmt.where(User.role == role)
    if status is not None:
        stmt = stmt.where(User.status == status)
    if q and q.strip():
        term = q.strip().lower()
        stmt = stmt.where(
            or_(
                func.lower(User.email).contains(term, autoescape=True),
                func.lower(User.first_name).contains(term, autoescape=True),
                func.lower(User.last_name).contains(term, autoescape=True),
            )
        )
    return list(db.scalars(stmt.order_by(desc(User.created_at))).all())


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def serialize_account(user: User) -> dict:
    stored = stored_permissions(user) or Permissions()
    return {
        "id": str(user.id),
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "role": user.role.value,
        "status": user.status.value,
        "permissions": stored.as_dict(),
        "permissions_stale": permissions_are_stale(user),
        "metadata": {
            "city": user.city,
            "province": user.province,
            "registration_source": user.registration_source,
        },
        "created_at": _iso(user.created_at),
        "last_login_at": _iso(user.last_login_at),
    }


def serialize_session_account(user: User) -> dict:
    # 로그인한 본인 정보 + 화면 표시 여부 판단에 필요한 값
    data = serialize_account(user)
    data["available_roles"] = sorted(r.value for r in available_roles_for(user.role))
    return data
