# tests/test_refresh_flow.py
from tests.helpers import auth_header, create_account_in_db, login


def test_refresh_token_rotation_and_revocation(client, db_session):
    user = create_account_in_db(db_session)

    access1 = login(client, user.email)
    assert access1
    assert "refresh_token" in client.cookies
    refresh1 = client.cookies.get("refresh_token")
    assert refresh1

    r1 = client.post("/auth/refresh")
    assert r1.status_code == 200, r1.text
    access2 = r1.json()["data"]["access_token"]
    assert access2

    refresh2 = client.cookies.get("refresh_token")
    assert refresh2 and refresh2 != refresh1

    client.cookies.set("refresh_token", refresh1)
    r_old = client.post("/auth/refresh")
    assert r_old.status_code == 401
    assert r_old.json()["detail"] == "Refresh token revoked"

    client.cookies.set("refresh_token", refresh2)
    logout = client.post("/auth/logout", headers=auth_header(access2))
    assert logout.status_code == 204

    client.cookies.set("refresh_token", refresh2)
    after_logout = client.post("/auth/refresh")
    assert after_logout.status_code == 401


def test_refresh_without_cookie(client):
    r = client.post("/auth/refresh")
    assert r.status_code == 401
    assert r.json()["detail"] == "Missing refresh token"


def test_access_token_is_not_a_refresh_token(client, db_session):
    user = create_account_in_db(db_session)
    access = login(client, user.email)
    client.cookies.set("refresh_token", access)
    r = client.post("/auth/refresh")
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid refresh token"
