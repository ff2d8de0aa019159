"""
인증 기본 플로우 통합 테스트.
- 가입(user, 권한 플래그 없음) → 로그인 → 본인 정보 조회,
  정지 계정 로그인 차단, 비밀번호 변경(재인증 필수)까지 검증한다.
"""

import uuid

from app.models.user import Role, AccountStatus
from tests.helpers import auth_header, create_account_in_db, login, get_user


def _register(client, email: str, password: str = "UserPassw0rd!"):
    return client.post(
        "/auth/register",
        json={
            "email": email,
            "password": password,
            "first_name": "Test",
            "last_name": "User",
            "phone": "416-555-0100",
            "city": "Toronto",
            "province": "ON",
        },
    )


def test_register_login_me_flow(client, db_session):
    email = f"User_{uuid.uuid4().hex[:6]}@Test.com"
    reg = _register(client, email)
    assert reg.status_code == 200, reg.text
    assert reg.json()["data"]["role"] == "user"
    assert reg.json()["data"]["email"] == email.lower()

    token = login(client, email, "UserPassw0rd!")
    me = client.get("/auth/me", headers=auth_header(token))
    assert me.status_code == 200, me.text
    data = me.json()["data"]
    assert data["role"] == "user"
    assert data["status"] == "active"
    assert data["permissions"] == {
        "canManageUsers": False,
        "canViewAnalytics": False,
        "canEditContent": False,
    }
    assert data["permissions_stale"] is False
    assert data["available_roles"] == []
    assert data["metadata"]["registration_source"] == "signup"
    assert data["metadata"]["city"] == "Toronto"
    assert data["last_login_at"] is not None


def test_register_duplicate_email_is_case_insensitive(client):
    email = f"dup_{uuid.uuid4().hex[:6]}@test.com"
    assert _register(client, email).status_code == 200
    again = _register(client, email.upper())
    assert again.status_code == 400
    assert again.json()["detail"] == "Email already registered"


def test_login_wrong_password(client, db_session):
    user = create_account_in_db(db_session)
    r = client.post("/auth/login", json={"email": user.email, "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"


def test_suspended_account_cannot_login(client, db_session):
    user = create_account_in_db(db_session, status=AccountStatus.SUSPENDED)
    r = client.post("/auth/login", json={"email": user.email, "password": "Passw0rd!123"})
    assert r.status_code == 403
    assert r.json()["detail"] == "Account suspended"


def test_token_rejected_after_account_deactivated(client, db_session):
    user = create_account_in_db(db_session)
    token = login(client, user.email)

    user.status = AccountStatus.INACTIVE
    db_session.commit()

    r = client.get("/auth/me", headers=auth_header(token))
    assert r.status_code == 401
    assert r.json()["detail"] == "Account inactive"


def test_me_requires_token(client):
    r = client.get("/auth/me")
    assert r.status_code == 401


def test_superadmin_session_exposes_all_roles(client, db_session):
    admin = create_account_in_db(db_session, role=Role.SUPERADMIN)
    token = login(client, admin.email)
    data = client.get("/auth/me", headers=auth_header(token)).json()["data"]
    assert data["available_roles"] == ["admin", "moderator", "superadmin", "user"]
    assert all(data["permissions"].values())


def test_change_password_requires_current_password(client, db_session):
    user = create_account_in_db(db_session)
    token = login(client, user.email)

    wrong = client.patch(
        "/auth/password",
        headers=auth_header(token),
        json={"current_password": "nope", "new_password": "NewPassw0rd!", "confirm_password": "NewPassw0rd!"},
    )
    assert wrong.status_code == 401
    assert wrong.json()["detail"] == "Invalid password"

    mismatch = client.patch(
        "/auth/password",
        headers=auth_header(token),
        json={"current_password": "Passw0rd!123", "new_password": "NewPassw0rd!", "confirm_password": "Other0rd!!"},
    )
    assert mismatch.status_code == 400
    assert mismatch.json()["detail"] == "Passwords do not match"

    same = client.patch(
        "/auth/password",
        headers=auth_header(token),
        json={"current_password": "Passw0rd!123", "new_password": "Passw0rd!123", "confirm_password": "Passw0rd!123"},
    )
    assert same.status_code == 400
    assert same.json()["detail"] == "New password must be different"

    ok = client.patch(
        "/auth/password",
        headers=auth_header(token),
        json={"current_password": "Passw0rd!123", "new_password": "NewPassw0rd!", "confirm_password": "NewPassw0rd!"},
    )
    assert ok.status_code == 200, ok.text
    assert ok.json()["data"]["status"] == "password_updated"

    old = client.post("/auth/login", json={"email": user.email, "password": "Passw0rd!123"})
    assert old.status_code == 401
    login(client, user.email, "NewPassw0rd!")

    refreshed = get_user(db_session, str(user.id))
    assert refreshed.refresh_token_version >= 1
