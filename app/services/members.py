"""
services/members.py

커뮤니티 회원(Member) 명부 비즈니스 로직 모음.

이 파일은 회원 목록 검색/정렬/페이지네이션,
회원 생성/수정/삭제, CSV 가져오기용 저장소 어댑터(SqlMemberSink),
CSV 헤더 → 컬럼 매핑, 실시간 스냅샷 발행을 담당한다.

설계 원칙:
- 라우터는 이 파일의 함수를 호출하고 HTTP 응답만 처리
- 일반 CRUD의 트랜잭션(commit/rollback)은 라우터에서 수행
- CSV 가져오기는 행 단위로 commit (SqlMemberSink.add)
- 회원 데이터가 바뀌면 전체 스냅샷을 member_snapshots로 발행

관련 파일:
- app.models.member          : Member 모델
- app.services.csv_import    : 가져오기 파이프라인
- app.services.snapshots     : 실시간 구독 허브
- app.routers.members        : 회원 API

"""

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func, or_, asc, desc
from sqlalchemy.orm import Session

from app.models.member import Member
from app.services.authz import Actor
from app.services.csv_import import CsvRow
from app.services.snapshots import member_snapshots

LOGGER = logging.getLogger(__name__)


MEMBER_FIELDS = [
    "name",
    "first_name",
    "last_name",
    "email",
    "phone_number",
    "age_group",
    "employment_type",
    "about",
    "city_province",
    "instagram_follow",
    "facebook_like",
    "heard_about",
    "industry",
    "intersection",
    "occupation",
    "aspirations",
]

# 가져오기 템플릿 / 내보내기에 사용하는 표준 헤더
TEMPLATE_HEADER = MEMBER_FIELDS + ["created_at"]

# 설문 폼에서 내려받은 CSV의 질문형 헤더 → 컬럼
SURVEY_HEADERS = {
    "age group?": "age_group",
    "are you self-employed, working for a company, or a student?": "employment_type",
    "briefly describe what you do or are passionate about?": "about",
    "city & province?": "city_province",
    "did you follow us on instagram?": "instagram_follow",
    "did you like our facebook page?": "facebook_like",
    "how did you hear about us?": "heard_about",
    "industry / field of work?": "industry",
    "nearest intersection?": "intersection",
    "occupation / job title?": "occupation",
    "what do you hope to gain from joining?": "aspirations",
}

SORTABLE_FIELDS = {
    "name": Member.name,
    "email": Member.email,
    "city_province": Member.city_province,
    "occupation": Member.occupation,
    "industry": Member.industry,
    "age_group": Member.age_group,
    "created_at": Member.created_at,
}


def column_for_header(header: str) -> Optional[str]:
    """
    CSV 헤더를 Member 컬럼 이름으로 변환

    - 표준 헤더(name, email, ...)는 대소문자 무시
    - 질문형 헤더는 뒤에 붙은 링크 / 예시 문구를 무시하고 앞부분으로 비교
      (예: "Did you follow us on Instagram? https://..." → instagram_follow)
    - 매핑되지 않는 헤더는 None (저장 시 무시)
    """
    key = header.strip().lower()
    if key in TEMPLATE_HEADER:
        return key
    if key in SURVEY_HEADERS:
        return SURVEY_HEADERS[key]
    for question, column in SURVEY_HEADERS.items():
        if key.startswith(question):
            return column
    if key.startswith("how did you hear about"):
        return "heard_about"
    if key.startswith("what do you hope to gain"):
        return "aspirations"
    return None


def parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Invalid created_at ({value})")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def member_values_from_row(row: CsvRow) -> dict:
    values = {}
    created_at = None
    for header, value in row.fields.items():
        column = column_for_header(header)
        if column is None or not value:
            continue
        if column == "created_at":
            created_at = value
        else:
            values[column] = value
    values["created_at"] = parse_timestamp(created_at) if created_at else datetime.now(timezone.utc)
    return values


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite는 tzinfo를 보존하지 않으므로 naive 값은 UTC로 간주
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def serialize_member(member: Member) -> dict:
    data = {name: getattr(member, name) for name in MEMBER_FIELDS}
    data["id"] = str(member.id)
    created_at = as_utc(member.created_at)
    data["created_at"] = created_at.isoformat() if created_at else None
    return data


"""
CSV 가져오기용 저장소 어댑터

- existing_emails : 저장된 회원 이메일 전체 (한 번만 조회)
- add             : 한 행을 저장하고 즉시 commit
                    실패 시 rollback 후 예외를 그대로 올려 파이프라인이 행 오류로 기록

"""

class SqlMemberSink:
    def __init__(self, db: Session):
        self.db = db
        self.written = 0

    def existing_emails(self) -> list[str]:
        return list(self.db.scalars(select(Member.email)).all())

    def add(self, row: CsvRow, actor: Optional[Actor]) -> Member:
        try:
            member = Member(**member_values_from_row(row), imported_by=actor.id if actor else None)
            self.db.add(member)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.written += 1
        return member


def _search_clause(q: str):
    term = q.strip().lower()
    return or_(
        func.lower(Member.name).contains(term, autoescape=True),
        func.lower(Member.email).contains(term, autoescape=True),
        func.lower(func.coalesce(Member.city_province, "")).contains(term, autoescape=True),
        func.lower(func.coalesce(Member.occupation, "")).contains(term, autoescape=True),
        func.coalesce(Member.phone_number, "").contains(q.strip(), autoescape=True),
    )


"""
회원 목록 조회 (검색 / 정렬 / 페이지네이션)

- q        : 이름, 이메일, 도시, 직업(대소문자 무시), 전화번호(부분 일치) 검색
- sort     : SORTABLE_FIELDS 중 하나, 문자열은 대소문자 무시 정렬
             created_at은 시간순 정렬, 지정하지 않으면 최신 순
- page     : 1부터 시작
- 반환값   : (현재 페이지 회원 목록, 전체 건수)

"""

def list_members(
    db: Session,
    *,
    q: Optional[str] = None,
    sort: Optional[str] = None,
    direction: str = "asc",
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Member], int]:
    stmt = select(Member)
    if q and q.strip():
        stmt = stmt.where(_search_clause(q))

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0

    if sort:
        if sort not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort by {sort}")
        column = SORTABLE_FIELDS[sort]
        key = column if sort == "created_at" else func.lower(column)
        order = desc(key) if direction == "desc" else asc(key)
        stmt = stmt.order_by(order, Member.id)
    else:
        stmt = stmt.order_by(desc(Member.created_at), Member.id)

    stmt = stmt.offset((page - 1) * page_size).limit(page_size)
    return list(db.scalars(stmt).all()), total


def page_count(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size else 0


def get_member(db: Session, member_id: uuid.UUID) -> Optional[Member]:
    return db.scalar(select(Member).where(Member.id == member_id))


def all_members(db: Session) -> list[Member]:
    return list(db.scalars(select(Member).order_by(desc(Member.created_at))).all())


def create_member(db: Session, values: dict) -> Member:
    member = Member(**values)
    db.add(member)
    return member


def update_member(member: Member, changes: dict) -> Member:
    for name, value in changes.items():
        if name in MEMBER_FIELDS:
            setattr(member, name, value)
    return member


def member_snapshot(db: Session) -> list[dict]:
    return [serialize_member(m) for m in all_members(db)]


def publish_members(db: Session) -> None:
    # 구독자가 없으면 전체 조회를 하지 않음
    if member_snapshots.subscriber_count == 0:
        return
    member_snapshots.publish(member_snapshot(db))
