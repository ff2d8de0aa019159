# tests/helpers.py
import io
import uuid

from sqlalchemy.orm import Session
from sqlalchemy import select

from app.models.user import User, Role, AccountStatus
from app.services.accounts import create_account

DEFAULT_PASSWORD = "Passw0rd!123"


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def create_account_in_db(
    db: Session,
    *,
    role: Role = Role.USER,
    email: str | None = None,
    password: str = DEFAULT_PASSWORD,
    status: AccountStatus = AccountStatus.ACTIVE,
) -> User:
    account = create_account(
        db,
        email=email or f"{role.value}_{uuid.uuid4().hex[:6]}@test.com",
        password=password,
        first_name=role.value.title(),
        last_name="Tester",
        role=role,
        status=status,
        registration_source="test",
    )
    db.commit()
    db.refresh(account)
    return account


def login(client, email: str, password: str = DEFAULT_PASSWORD) -> str:
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["data"]["access_token"]


def login_as(client, db: Session, role: Role) -> tuple[User, dict]:
    """role 계정을 만들고 로그인한 뒤 (계정, Authorization 헤더) 반환"""
    account = create_account_in_db(db, role=role)
    return account, auth_header(login(client, account.email))


def get_user(db: Session, user_id: str) -> User | None:
    db.expire_all()
    return db.scalar(select(User).where(User.id == uuid.UUID(user_id)))


def csv_upload(text: str, filename: str = "members.csv") -> dict:
    return {"file": (filename, io.BytesIO(text.encode("utf-8")), "text/csv")}
