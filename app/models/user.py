"""
user.py

관리자 대시보드 계정(Account) 및 권한(Role) 모델 정의 파일.

이 파일은 대시보드에 로그인하는 계정의 기본 정보와
권한(Role), 계정 상태(status), 생성 시점에 계산된 권한 플래그(permissions)를 관리한다.

모든 인증, 권한 판정, 사용자 관리 기능의 기준이 되는 핵심 모델이다.
커뮤니티 회원 명부(members)와는 별개의 테이블이다.

"""

import uuid
import datetime
from enum import Enum

from sqlalchemy import String, Integer, Boolean, DateTime, Uuid, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


"""
계정 권한(Role) 정의 (권한이 낮은 순)

- USER        : 일반 계정
- MODERATOR   : 콘텐츠 편집 / 통계 조회 가능
- ADMIN       : 관리자
- SUPERADMIN  : 최고 관리자 (삭제/강등 불가)

"""

class Role(str, Enum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


"""
계정(User) 모델

- email 은 고유 식별자 (소문자로 저장)
- role을 통해 접근 권한 제어
- can_* 플래그는 계정 생성 시점의 role로 계산되어 저장됨
  (role 변경 시 자동으로 다시 계산하지 않음 -> app.services.authz.permissions_are_stale)
- refresh_token_version 으로 강제 로그아웃 및 토큰 무효화 지원

"""

class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    role: Mapped[Role] = mapped_column(
        SAEnum(Role, name="user_role", values_callable=_enum_values),
        nullable=False,
        default=Role.USER,
    )
    status: Mapped[AccountStatus] = mapped_column(
        SAEnum(AccountStatus, name="account_status", values_callable=_enum_values),
        nullable=False,
        default=AccountStatus.ACTIVE,
    )

    can_manage_users: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_view_analytics: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_edit_content: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    province: Mapped[str | None] = mapped_column(String(100), nullable=True)
    registration_source: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_login_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    refresh_token_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
