"""
services/authz.py

권한(Role) / 권한 플래그(Permission) 판정 로직 모음.

이 파일은 "이 role이 X를 할 수 있는가",
"행위자(actor)가 현재 role B인 계정에 대해 작업할 수 있는가"를
판단하는 순수 함수만을 제공한다.
라우터, 의존성(app.core.deps), 사용자 관리 서비스가 모두
여기 정의된 함수를 사용하며, 각자 role 비교를 다시 구현하지 않는다.

주요 기능:
- role → 권한 플래그 매핑 (permissions_for)
- role 서열 비교 (role_level / role_at_least)
- 계정 수정/삭제/권한 변경 가능 여부 (can_edit_account / can_delete_account / can_change_role)
- 부여 가능한 role 목록 (available_roles_for)
- 라우트 가드 판정 (evaluate_guard / RouteGuard)

설계 원칙:
- DB / HTTP 의존성 없음, 부작용 없음
- role 값이 없거나 잘못된 경우에도 예외를 던지지 않고
  가장 제한적인 결과(False / user 등급)로 처리 (fail-closed)
- 권한 플래그는 계정 생성 시 저장된 값을 기준으로 판정하며
  role이 바뀌어도 자동으로 다시 계산하지 않는다 (permissions_are_stale로 확인)

관련 파일:
- app.models.user        : Role 정의, 저장된 권한 플래그 컬럼
- app.core.deps          : require_min_role / require_permission 의존성
- app.services.accounts  : 계정 생성 시 permissions_for 사용

"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from app.models.user import Role


class Permission(str, Enum):
    MANAGE_USERS = "canManageUsers"
    VIEW_ANALYTICS = "canViewAnalytics"
    EDIT_CONTENT = "canEditContent"

    @property
    def column(self) -> str:
        return _PERMISSION_COLUMNS[self]


_PERMISSION_COLUMNS = {
    Permission.MANAGE_USERS: "can_manage_users",
    Permission.VIEW_ANALYTICS: "can_view_analytics",
    Permission.EDIT_CONTENT: "can_edit_content",
}


@dataclass(frozen=True)
class Permissions:
    can_manage_users: bool = False
    can_view_analytics: bool = False
    can_edit_content: bool = False

    def allows(self, permission: Permission) -> bool:
        return bool(getattr(self, permission.column))

    def as_dict(self) -> dict:
        return {p.value: self.allows(p) for p in Permission}


PERMISSION_TABLE = {
    Role.SUPERADMIN: Permissions(can_manage_users=True, can_view_analytics=True, can_edit_content=True),
    Role.ADMIN: Permissions(can_manage_users=True, can_view_analytics=True, can_edit_content=True),
    Role.MODERATOR: Permissions(can_manage_users=False, can_view_analytics=True, can_edit_content=True),
    Role.USER: Permissions(),
}

ROLE_LEVEL = {
    Role.USER: 1,
    Role.MODERATOR: 2,
    Role.ADMIN: 3,
    Role.SUPERADMIN: 4,
}

SIGNIN_PATH = "/signin"
UNAUTHORIZED_PATH = "/unauthorized"


def parse_role(value: Any) -> Optional[Role]:
    """알 수 없는 값이면 None (대소문자 무시)."""
    if isinstance(value, Role):
        return value
    if isinstance(value, str):
        try:
            return Role(value.strip().lower())
        except ValueError:
            return None
    return None


def coerce_role(value: Any) -> Role:
    return parse_role(value) or Role.USER


def parse_permission(value: Any) -> Optional[Permission]:
    if isinstance(value, Permission):
        return value
    if isinstance(value, str):
        for permission in Permission:
            if value in (permission.value, permission.column):
                return permission
    return None


def role_level(role: Any) -> int:
    return ROLE_LEVEL[coerce_role(role)]


def role_at_least(role: Any, minimum: Role) -> bool:
    return role_level(role) >= ROLE_LEVEL[minimum]


"""
role → 권한 플래그

- 네 가지 role 모두에 대해 정의된 전체 함수(total function)
- 알 수 없는 / 없는 role은 user 권한 (가장 제한적)

"""

def permissions_for(role: Any) -> Permissions:
    return PERMISSION_TABLE[coerce_role(role)]


def stored_permissions(account: Any) -> Optional[Permissions]:
    # 계정 row에 저장된 플래그. 하나라도 비어 있으면 권한 세트가 없는 것으로 본다
    if account is None:
        return None
    values = [getattr(account, p.column, None) for p in Permission]
    if any(v is None for v in values):
        return None
    return Permissions(*(bool(v) for v in values))


def has_permission(account: Any, permission: Any) -> bool:
    stored = stored_permissions(account)
    perm = parse_permission(permission)
    if stored is None or perm is None:
        return False
    return stored.allows(perm)


"""
저장된 권한 플래그가 현재 role 기준 계산값과 다른지 여부

- 권한 플래그는 계정 생성 시점에 한 번 계산되어 저장됨
- role 변경이나 권한 표(PERMISSION_TABLE) 변경 후에도 자동으로 갱신되지 않음
- True면 관리자가 명시적으로 재계산(resync)해야 한다

"""

def permissions_are_stale(account: Any) -> bool:
    if account is None:
        return False
    return stored_permissions(account) != permissions_for(getattr(account, "role", None))


def _same_id(actor_id: Any, target_id: Any) -> bool:
    if actor_id is None or target_id is None:
        return False
    return str(actor_id) == str(target_id)


def _is_immune(target: Role, actor_id: Any, target_id: Any) -> bool:
    # SUPERADMIN 계정과 본인 계정은 어떤 행위자도 삭제/강등할 수 없음
    return target == Role.SUPERADMIN or _same_id(actor_id, target_id)


def can_edit_account(actor_role: Any, target_role: Any, *, actor_id: Any = None, target_id: Any = None) -> bool:
    target = parse_role(target_role)
    if target is None or _is_immune(target, actor_id, target_id):
        return False
    return role_at_least(actor_role, Role.ADMIN)


def can_delete_account(actor_role: Any, target_role: Any, *, actor_id: Any = None, target_id: Any = None) -> bool:
    target = parse_role(target_role)
    if target is None or _is_immune(target, actor_id, target_id):
        return False
    return role_at_least(actor_role, Role.ADMIN)


"""
계정 role 변경 가능 여부

- SUPERADMIN : 보호 대상이 아닌 모든 계정에 어떤 role이든 지정 가능
- ADMIN      : 현재 USER인 계정을 ADMIN 또는 USER로만 변경 가능
- 그 외      : 불가
- SUPERADMIN 계정 / 본인 계정은 누구도 변경 불가

"""

def can_change_role(
    actor_role: Any,
    target_role: Any,
    new_role: Any,
    *,
    actor_id: Any = None,
    target_id: Any = None,
) -> bool:
    target = parse_role(target_role)
    new = parse_role(new_role)
    if target is None or new is None or _is_immune(target, actor_id, target_id):
        return False

    actor = coerce_role(actor_role)
    if actor == Role.SUPERADMIN:
        return True
    if actor == Role.ADMIN:
        return target == Role.USER and new in (Role.ADMIN, Role.USER)
    return False


def available_roles_for(actor_role: Any) -> frozenset:
    actor = coerce_role(actor_role)
    if actor == Role.SUPERADMIN:
        return frozenset(Role)
    if actor == Role.ADMIN:
        return frozenset(r for r in Role if r != Role.SUPERADMIN)
    return frozenset()


@dataclass(frozen=True)
class Actor:
    """권한 판정과 가져오기(import) 기록에 명시적으로 전달되는 현재 행위자."""

    id: uuid.UUID
    role: Role

    @classmethod
    def of(cls, account: Any) -> "Actor":
        return cls(id=account.id, role=coerce_role(account.role))

    def can_edit(self, target: Any) -> bool:
        return can_edit_account(self.role, target.role, actor_id=self.id, target_id=target.id)

    def can_delete(self, target: Any) -> bool:
        return can_delete_account(self.role, target.role, actor_id=self.id, target_id=target.id)

    def can_change_role(self, target: Any, new_role: Any) -> bool:
        return can_change_role(self.role, target.role, new_role, actor_id=self.id, target_id=target.id)


# ---------------------------------------------------------------------------
# 라우트 가드
# ---------------------------------------------------------------------------

class GuardDecision(str, Enum):
    PENDING = "pending"
    ALLOW = "allow"
    DENY_UNAUTHORIZED = "deny_unauthorized"
    DENY_SIGNIN = "deny_signin"


@dataclass(frozen=True)
class GuardOutcome:
    decision: GuardDecision
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.decision == GuardDecision.ALLOW


PENDING = GuardOutcome(GuardDecision.PENDING)


"""
라우트 가드 판정 (순수 함수)

- 로그인하지 않은 경우        : DENY_SIGNIN (fallback_path로 이동)
- role / 권한 플래그 부족      : DENY_UNAUTHORIZED (/unauthorized로 이동)
- 요구 조건 값이 잘못된 경우   : DENY_UNAUTHORIZED
- 그 외                       : ALLOW

"""

def evaluate_guard(
    account: Any,
    *,
    required_role: Any = None,
    required_permission: Any = None,
    fallback_path: str = SIGNIN_PATH,
) -> GuardOutcome:
    if account is None:
        return GuardOutcome(GuardDecision.DENY_SIGNIN, fallback_path)

    denied = GuardOutcome(GuardDecision.DENY_UNAUTHORIZED, UNAUTHORIZED_PATH)

    if required_role is not None:
        minimum = parse_role(required_role)
        if minimum is None or not role_at_least(getattr(account, "role", None), minimum):
            return denied

    if required_permission is not None and not has_permission(account, required_permission):
        return denied

    return GuardOutcome(GuardDecision.ALLOW)


class RouteGuard:
    """계정 정보가 확정될 때까지 PENDING을 유지하고, 확정되면 판정을 한 번만 적용한다."""

    def __init__(self, *, required_role: Any = None, required_permission: Any = None,
                 fallback_path: str = SIGNIN_PATH):
        self.required_role = required_role
        self.required_permission = required_permission
        self.fallback_path = fallback_path
        self._outcome: Optional[GuardOutcome] = None

    @property
    def outcome(self) -> GuardOutcome:
        return self._outcome or PENDING

    @property
    def resolved(self) -> bool:
        return self._outcome is not None

    def resolve(self, account: Any) -> GuardOutcome:
        if self._outcome is None:
            self._outcome = evaluate_guard(
                account,
                required_role=self.required_role,
                required_permission=self.required_permission,
                fallback_path=self.fallback_path,
            )
        return self._outcome
