"""
services/analytics.py

회원 명부 통계(대시보드 차트용 데이터) 계산.

DB 조회 결과(회원 목록)를 받아 차트에 바로 쓸 수 있는 형태의
집계 값만 계산한다. 차트 렌더링은 프론트엔드 담당.

주요 항목:
- 전체 회원 수 / 도시 수 / 최근 30일 가입자 수
- 고용 형태(자영업/회사/학생), Instagram / Facebook 참여 수
- 월별 가입 추이 (YYYY-MM 오름차순)
- 연령대별 인원, 직업 상위 10개, 산업 상위 8개, 도시 상위 10개

"""

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from app.models.member import Member
from app.services.members import as_utc

RECENT_DAYS = 30


def _text(value: Optional[str]) -> str:
    return (value or "").strip()


def _ranked(counter: Counter, limit: Optional[int] = None) -> list[dict]:
    items = sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))
    if limit is not None:
        items = items[:limit]
    return [{"name": name, "value": count} for name, count in items]


def member_analytics(members: Iterable[Member], *, now: Optional[datetime] = None) -> dict:
    members = list(members)
    now = now or datetime.now(timezone.utc)
    recent_since = now - timedelta(days=RECENT_DAYS)

    employment = {"self_employed": 0, "company": 0, "student": 0}
    instagram = facebook = recent = 0
    monthly = Counter()
    ages, occupations, industries, cities = Counter(), Counter(), Counter(), Counter()

    for m in members:
        kind = _text(m.employment_type).lower()
        if "self" in kind:
            employment["self_employed"] += 1
        if "company" in kind:
            employment["company"] += 1
        if "student" in kind:
            employment["student"] += 1

        if _text(m.instagram_follow).lower() == "yes":
            instagram += 1
        if _text(m.facebook_like).lower() == "yes":
            facebook += 1

        created_at = as_utc(m.created_at)
        if created_at is not None:
            monthly[created_at.strftime("%Y-%m")] += 1
            if created_at >= recent_since:
                recent += 1

        # 빈 값은 차트 항목에서 제외
        if _text(m.age_group):
            ages[_text(m.age_group)] += 1
        if _text(m.occupation):
            occupations[_text(m.occupation)] += 1
        if _text(m.industry):
            industries[_text(m.industry)] += 1
        if _text(m.city_province):
            cities[_text(m.city_province)] += 1

    return {
        "total_members": len(members),
        "unique_cities": len(cities),
        "recent_members": recent,
        "employment": employment,
        "social": {"instagram": instagram, "facebook": facebook},
        "growth": [{"month": month, "members": count} for month, count in sorted(monthly.items())],
        "age_groups": _ranked(ages),
        "top_occupations": _ranked(occupations, 10),
        "top_industries": _ranked(industries, 8),
        "top_cities": _ranked(cities, 10),
    }
