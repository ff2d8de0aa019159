"""
security.py

대시보드 계정의 비밀번호 해싱 및 JWT 토큰 생성/검증 유틸리티.

이 파일은 신원 확인(identity) 경계에서 사용하는
저수준(low-level) 보안 기능만을 제공하며,
라우터나 권한 판정 로직은 포함하지 않는다.

주요 기능:
- 비밀번호 해싱 및 검증 (bcrypt)
- JWT Access / Refresh Token 생성
- Refresh Token 디코딩 및 검증

설계 원칙:
- Access Token과 Refresh Token은 서로 다른 시크릿으로 서명
- Refresh Token에 version(rtv)을 포함하여 강제 로그아웃/토큰 무효화 지원
- 시간 기반(exp) 만료는 UTC 기준으로 처리

관련 파일:
- app.core.config        : JWT 시크릿 키 및 만료 설정
- app.core.deps          : Access Token 검증 의존성
- app.routers.auth       : 로그인 / 재발급 / 비밀번호 변경 API

"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Literal

from jose import jwt, JWTError
from passlib.context import CryptContext

from app.core.config import settings


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def _create_token(*, subject: str, token_type: Literal["access", "refresh"],
                  expires_delta: timedelta, secret: str, extra: Optional[dict] = None) -> str:
    expire = datetime.now(timezone.utc) + expires_delta
    payload = {
        "sub": subject,
        "type": token_type,
        "exp": int(expire.timestamp()),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, secret, algorithm=settings.ALGORITHM)


"""
Access Token 생성

- Authorization Header(Bearer)에 담겨 전달됨
- role은 토큰에 넣지 않음 (요청마다 DB의 현재 role로 판정)

"""

def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    return _create_token(
        subject=subject,
        token_type="access",
        expires_delta=expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        secret=settings.SECRET_KEY,
    )


def create_refresh_token(subject: str, refresh_token_version: int, expires_delta: Optional[timedelta] = None) -> str:
    return _create_token(
        subject=subject,
        token_type="refresh",
        expires_delta=expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        secret=settings.REFRESH_SECRET_KEY,
        extra={"rtv": refresh_token_version},
    )


"""
Refresh Token 디코딩 및 검증

- 토큰 타입(refresh) 확인
- subject(계정 UUID)와 rtv(version) 반환
- 유효하지 않으면 JWTError, subject가 UUID가 아니면 ValueError

"""

def decode_refresh_token(token: str) -> tuple[uuid.UUID, int]:
    payload = jwt.decode(token, settings.REFRESH_SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") != "refresh":
        raise JWTError("Not a refresh token")
    return uuid.UUID(payload["sub"]), int(payload.get("rtv", -1))
