"""
admin.py

관리자 전용 계정(User) 관리 API 모음.

주요 기능:
- 계정 목록 / 상세 조회
- 계정 생성 (부여 가능한 role 범위 안에서)
- 계정 정보 / 상태 수정
- role 변경 (권한 플래그는 자동 재계산하지 않음)
- 권한 플래그 명시적 재계산 (SUPERADMIN 전용)
- 계정 삭제
- 다른 계정 비밀번호 변경 요청 거절 (지원하지 않는 기능임을 명시적으로 응답)
- 관리자 행위 로그 조회

설계 원칙:
- 모든 엔드포인트는 canManageUsers 권한 플래그를 요구
- 대상 계정에 대한 판단은 app.services.authz의 함수만 사용
  (SUPERADMIN 계정 / 본인 계정은 수정·삭제·role 변경 불가)
- 변경과 관리자 행위 로그는 같은 트랜잭션으로 commit

관련 파일:
- app.services.authz       : can_edit_account / can_delete_account / can_change_role
- app.services.accounts    : 계정 생성 / 직렬화
- app.services.admin_log   : 관리자 행위 로그

"""

import uuid
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import select

from app.core.deps import get_db, get_user_manager, get_current_superadmin
from app.models.user import User, Role, AccountStatus
from app.models.admin_log import AdminAction
from app.schemas.user import CreateUserRequest, UpdateUserRequest, RoleUpdate, AdminPasswordRequest
from app.services.accounts import (
    create_account,
    list_accounts,
    resync_permissions,
    serialize_account,
)
from app.services.admin_log import write_admin_log, recent_logs
from app.services.authz import Actor, available_roles_for

LOG = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

CROSS_ACCOUNT_PASSWORD_MESSAGE = (
    "Changing another account's password is not supported. "
    "Ask the account owner to change it from their own session, "
    "or contact the system administrator."
)


def _get_user_or_404(db: Session, user_id: uuid.UUID) -> User:
    user = db.scalar(select(User).where(User.id == user_id))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")


# 전체 계정 목록 조회 (생성일 최신 순, role/status/q 필터)
@router.get("/users")
def list_users(
    role: Role | None = None,
    status: AccountStatus | None = None,
    q: str | None = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_user_manager),
):
    users = list_accounts(db, role=role, status=status, q=q)
    return {
        "data": [serialize_account(u) for u in users],
        "meta": {"count": len(users)},
    }


@router.get("/users/{user_id}")
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: User = Depends(get_user_manager),
):
    return {"data": serialize_account(_get_user_or_404(db, user_id))}


"""
계정 생성 API

- 요청한 role이 행위자가 부여할 수 있는 role이어야 함
  (SUPERADMIN: 전부 / ADMIN: superadmin 제외)
- 권한 플래그는 생성 시점 role 기준으로 저장

"""
@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(
    data: CreateUserRequest,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_user_manager),
):
    if data.role not in available_roles_for(current_admin.role):
        raise HTTPException(status_code=403, detail=f"Cannot create {data.role.value} accounts")

    try:
        user = create_account(
            db,
            email=data.email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=data.role,
            status=data.status,
            city=data.city,
            province=data.province,
            registration_source="admin",
        )
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    write_admin_log(
        db,
        actor_id=current_admin.id,
        action=AdminAction.CREATE_USER,
        target_user_id=user.id,
        after_role=user.role.value,
        detail=user.email,
    )
    _commit(db)
    db.refresh(user)
    return {"data": serialize_account(user)}


"""
계정 정보 / 상태 수정 API

- can_edit_account 판정 통과 필요 (SUPERADMIN 계정 / 본인 계정 불가)
- None인 항목은 기존 값 유지
- 상태가 바뀌면 SET_STATUS, 그 외 변경은 UPDATE_USER 로그

"""
@router.patch("/users/{user_id}")
def update_user(
    user_id: uuid.UUID,
    data: UpdateUserRequest,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_user_manager),
):
    user = _get_user_or_404(db, user_id)
    if not Actor.of(current_admin).can_edit(user):
        raise HTTPException(status_code=403, detail=f"You don't have permission to edit {user.role.value} accounts")

    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes provided")

    before_status = user.status
    for name, value in changes.items():
        # NOT NULL 컬럼에 대한 null은 "변경 없음"으로 취급
        if value is None and name in ("first_name", "last_name", "status"):
            continue
        setattr(user, name, value)

    if user.status != before_status:
        # 상태가 바뀌면 기존 refresh token 무효화
        user.refresh_token_version += 1
        write_admin_log(
            db,
            actor_id=current_admin.id,
            action=AdminAction.SET_STATUS,
            target_user_id=user.id,
            detail=f"{user.email}: {before_status.value} -> {user.status.value}",
        )
    if set(changes) - {"status"}:
        write_admin_log(
            db,
            actor_id=current_admin.id,
            action=AdminAction.UPDATE_USER,
            target_user_id=user.id,
            detail=f"{user.email}: {', '.join(sorted(set(changes) - {'status'}))}",
        )

    _commit(db)
    db.refresh(user)
    return {"message": "User updated", "data": serialize_account(user)}


"""
role 변경 API

- can_change_role 판정 통과 필요
  - SUPERADMIN : 보호 대상이 아닌 모든 계정, 모든 role
  - ADMIN      : user 계정을 admin 또는 user로만
- 저장된 권한 플래그는 그대로 유지 (응답의 permissions_stale로 확인 가능)

"""
@router.patch("/users/{user_id}/role")
def set_role(
    user_id: uuid.UUID,
    data: RoleUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_user_manager),
):
    user = _get_user_or_404(db, user_id)
    if not Actor.of(current_admin).can_change_role(user, data.role):
        raise HTTPException(
            status_code=403,
            detail=f"Cannot change role from {user.role.value} to {data.role.value}",
        )

    if user.role == data.role:
        raise HTTPException(status_code=400, detail=f"User already {user.role.value}")

    before = user.role
    user.role = data.role
    write_admin_log(
        db,
        actor_id=current_admin.id,
        action=AdminAction.SET_ROLE,
        target_user_id=user.id,
        before_role=before.value,
        after_role=user.role.value,
        detail=user.email,
    )
    _commit(db)
    db.refresh(user)
    return {"message": "Role updated", "data": serialize_account(user)}


# 권한 플래그를 현재 role 기준으로 다시 계산 (SUPERADMIN 전용, 명시적 요청에서만)
@router.post("/users/{user_id}/permissions/resync")
def resync_user_permissions(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_superadmin),
):
    user = _get_user_or_404(db, user_id)
    resync_permissions(user)
    write_admin_log(
        db,
        actor_id=current_admin.id,
        action=AdminAction.RESYNC_PERMISSIONS,
        target_user_id=user.id,
        after_role=user.role.value,
        detail=user.email,
    )
    _commit(db)
    db.refresh(user)
    return {"message": "Permissions resynced", "data": serialize_account(user)}


"""
계정 삭제 API

- can_delete_account 판정 통과 필요 (SUPERADMIN 계정 / 본인 계정 불가)
- 계정 row를 삭제 (로그의 대상 참조는 DB에서 NULL 처리, detail에 이메일 보존)

"""
@router.delete("/users/{user_id}")
def delete_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_user_manager),
):
    user = _get_user_or_404(db, user_id)

    if user.id == current_admin.id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")
    if not Actor.of(current_admin).can_delete(user):
        raise HTTPException(status_code=403, detail=f"Cannot delete {user.role.value} accounts")

    snapshot = serialize_account(user)
    write_admin_log(
        db,
        actor_id=current_admin.id,
        action=AdminAction.DELETE_USER,
        before_role=user.role.value,
        detail=user.email,
    )
    db.delete(user)
    _commit(db)

    return {"message": "User deleted", "data": snapshot}


"""
다른 계정 비밀번호 변경 API

- 지원하지 않는 기능: 성공한 척하지 않고 항상 이유와 함께 거절
- 본인 계정이면 /auth/password 사용 안내 (409)

"""
@router.patch("/users/{user_id}/password")
def change_user_password(
    user_id: uuid.UUID,
    data: AdminPasswordRequest,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_user_manager),
):
    user = _get_user_or_404(db, user_id)
    if user.id == current_admin.id:
        raise HTTPException(
            status_code=409,
            detail="To change your own password, use PATCH /auth/password with your current password.",
        )
    LOG.info("refused cross-account password change by %s for %s", current_admin.email, user.email)
    raise HTTPException(status_code=403, detail=CROSS_ACCOUNT_PASSWORD_MESSAGE)


# 관리자 활동 로그 조회
@router.get("/logs")
def list_admin_logs(
    limit: int = 50,
    db: Session = Depends(get_db),
    _: User = Depends(get_user_manager),
):
    limit = max(1, min(limit, 200))
    logs = recent_logs(db, limit)
    return {
        "data": [
            {
                "id": str(log.id),
                "created_at": log.created_at.isoformat(),
                "action": log.action.value,
                "actor_id": str(log.actor_id) if log.actor_id else None,
                "target_user_id": str(log.target_user_id) if log.target_user_id else None,
                "before_role": log.before_role,
                "after_role": log.after_role,
                "detail": log.detail,
            }
            for log in logs
        ],
        "meta": {
            "limit": limit,
            "count": len(logs),
        },
    }
