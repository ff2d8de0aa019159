"""
member.py

커뮤니티 회원(Member) 명부 모델 정의 파일.

설문 형식으로 수집된 회원 정보를 저장한다.
회원은 수동 입력, CSV 가져오기, API 호출로 생성되며
대시보드 로그인 계정(User)과는 관계가 없다.

- email 은 가져오기(import) 시점에만 중복 검사(대소문자 무시)하며
  DB 레벨의 UNIQUE 제약은 두지 않는다.

"""

import uuid
import datetime

from sqlalchemy import String, Text, DateTime, Uuid, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.user import utcnow


class Member(Base):
    __tablename__ = "members"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    age_group: Mapped[str | None] = mapped_column(String(50), nullable=True)
    employment_type: Mapped[str | None] = mapped_column(String(200), nullable=True)
    about: Mapped[str | None] = mapped_column(Text, nullable=True)
    city_province: Mapped[str | None] = mapped_column(String(200), nullable=True)
    instagram_follow: Mapped[str | None] = mapped_column(String(20), nullable=True)
    facebook_like: Mapped[str | None] = mapped_column(String(20), nullable=True)
    heard_about: Mapped[str | None] = mapped_column(String(200), nullable=True)
    industry: Mapped[str | None] = mapped_column(String(200), nullable=True)
    intersection: Mapped[str | None] = mapped_column(String(200), nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(200), nullable=True)
    aspirations: Mapped[str | None] = mapped_column(Text, nullable=True)

    # 가져오기로 생성된 경우 가져오기를 수행한 관리자
    imported_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
