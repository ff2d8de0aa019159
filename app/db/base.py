"""
base.py

SQLAlchemy ORM Base 정의 파일.

관리자 계정(users), 커뮤니티 회원(members), 관리자 행위 로그(admin_action_logs)
모델이 모두 이 Base를 상속받으며, 테이블 메타데이터와
Alembic 마이그레이션이 이 Base를 기준으로 동작한다.

설계 원칙:
- Base 정의는 단일 파일에서만 관리
- 모델 간 순환 참조 방지
- 테스트(conftest)에서도 Base.metadata로 스키마를 생성/삭제

관련 파일:
- app.models.*            : 모든 ORM 모델
- alembic/env.py          : 마이그레이션 메타데이터 로드

"""

from sqlalchemy.orm import declarative_base

# 모든 ORM 모델이 상속받는 Base 클래스
Base = declarative_base()
