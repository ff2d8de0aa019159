"""
services/admin_log.py

관리자 행위 로그 기록 서비스.

이 파일은 관리자 등급 계정이 수행한 주요 행위를
AdminActionLog 테이블에 기록하고, 최근 로그를 조회하는 역할을 담당한다.

설계 원칙:
- 로그 기록은 실제 변경과 같은 세션/트랜잭션에 추가만 하고 commit은 호출 측에서 수행
- 로그 데이터는 수정/삭제하지 않는 것을 전제로 설계

"""

import logging

from sqlalchemy import select, desc
from sqlalchemy.orm import Session

from app.models.admin_log import AdminActionLog, AdminAction

LOGGER = logging.getLogger(__name__)


"""
관리자 행위 로그 기록 함수

- actor_id       : 행위를 수행한 관리자 ID
- action         : 수행된 관리자 행위 유형
- target_user_id : 행위 대상 계정 ID (선택)
- before_role    : 변경 전 권한 (선택)
- after_role     : 변경 후 권한 (선택)
- detail         : 부가 정보 (선택)

NOTE:
- db.commit()은 호출 측(라우터/서비스)에서 수행

"""
def write_admin_log(
    db: Session,
    *,
    actor_id,
    action: AdminAction,
    target_user_id=None,
    before_role=None,
    after_role=None,
    detail=None,
):
    log = AdminActionLog(
        actor_id=actor_id,
        action=action,
        target_user_id=target_user_id,
        before_role=before_role,
        after_role=after_role,
        detail=detail[:500] if detail else None,
    )
    db.add(log)
    LOGGER.info("admin action %s by %s on %s", action.value, actor_id, target_user_id or "-")
    return log


def recent_logs(db: Session, limit: int = 50) -> list[AdminActionLog]:
    return list(
        db.scalars(select(AdminActionLog).order_by(desc(AdminActionLog.created_at)).limit(limit)).all()
    )
