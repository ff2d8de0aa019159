"""

SUPERADMIN 초기 계정 생성 스크립트.

- 서버 최초 세팅 시 단 한 번 실행하는 용도
- .env에 정의된 SUPERADMIN_* 환경 변수를 읽어
  SUPERADMIN 계정을 생성한다. (권한 플래그는 superadmin 기준으로 계산)
- 이미 SUPERADMIN 계정이 존재하면 생성하지 않고 종료한다.

사용 방법
- 가상환경 접속
- (.venv) $ python -m scripts.create_superadmin

"""

import os
from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import select
from app.db.session import SessionLocal
from app.models.user import User, Role
from app.services.accounts import create_account


def main():
    db = SessionLocal()
    try:
        exists = db.scalar(
            select(User).where(User.role == Role.SUPERADMIN)
        )
        if exists:
            print("✅ SUPERADMIN already exists. Skip creation.")
            return

        email = os.environ["SUPERADMIN_EMAIL"]
        password = os.environ["SUPERADMIN_PASSWORD"]
        first_name = os.environ.get("SUPERADMIN_FIRST_NAME", "Super")
        last_name = os.environ.get("SUPERADMIN_LAST_NAME", "Admin")

        try:
            create_account(
                db,
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
                role=Role.SUPERADMIN,
                registration_source="bootstrap",
            )
        except ValueError:
            raise RuntimeError("Email already exists but is not SUPERADMIN")

        db.commit()

        print(f"🚀 SUPERADMIN created: {email}")

    finally:
        db.close()


if __name__ == "__main__":
    main()
