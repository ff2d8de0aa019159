"""
auth.py

인증(Authentication) 및 본인 계정 관리 API 모음.

이 파일은 가입, 로그인, 토큰 재발급, 로그아웃, 본인 정보 조회,
비밀번호 변경과 같이 신원 확인(identity) 흐름 전반을 담당한다.
JWT 기반 인증 방식을 사용하며, Access Token + Refresh Token 구조를 따른다.

주요 기능:
- 가입 (기본 role = user, 권한 플래그는 가입 시점에 계산)
- 로그인 및 토큰 발급 (비활성/정지 계정 차단, 마지막 로그인 시각 기록)
- Refresh Token 기반 Access Token 재발급
- 로그아웃 (Refresh Token 무효화)
- 본인 정보 + 화면 표시용 권한 정보 조회
- 비밀번호 변경 (현재 비밀번호로 재인증 필수)

설계 원칙:
- Access Token은 Authorization Header로 전달
- Refresh Token은 HttpOnly Cookie로 관리
- Refresh Token Version을 이용해 강제 로그아웃 / 토큰 무효화 처리

관련 파일:
- app.core.security        : 비밀번호 해시 / JWT 생성·검증
- app.core.deps            : 인증 의존성(get_current_user)
- app.services.accounts    : 계정 생성 / 직렬화
- app.schemas.auth         : 인증 관련 요청/응답

"""

import logging

from jose import JWTError
from fastapi import APIRouter, Depends, HTTPException, status, Response, Request

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy import select

from app.core.deps import get_db, get_current_user
from app.core.config import settings
from app.core.security import (
    get_password_hash,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
)

from app.models.user import User, Role, AccountStatus
from app.schemas.auth import RegisterRequest, LoginRequest, TokenResponse, ChangePasswordRequest
from app.services.accounts import (
    create_account,
    get_by_email,
    record_login,
    serialize_session_account,
)

LOG = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

REFRESH_COOKIE_NAME = "refresh_token"


def _set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,        # 로컬 False / HTTPS 운영 True
        samesite=settings.COOKIE_SAMESITE,    # "lax" 추천
        domain=settings.COOKIE_DOMAIN,        # 보통 None
        path="/",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(key=REFRESH_COOKIE_NAME, path="/", domain=settings.COOKIE_DOMAIN)


"""
가입 API

- 이메일 기준으로 신규 계정 생성 (대소문자 무시 중복 검사)
- 기본 권한은 user, 상태는 active
- registration_source = "signup"

"""

@router.post("/register")
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    try:
        user = create_account(
            db,
            email=data.email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            city=data.city,
            province=data.province,
            role=Role.USER,
            registration_source="signup",
        )
        db.commit()
        db.refresh(user)
    except (ValueError, IntegrityError):
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {
        "data": {
            "id": str(user.id),
            "email": user.email,
            "role": user.role.value,
        }
    }


"""
로그인 API

- 이메일 / 비밀번호 인증
- inactive / suspended 계정은 로그인 불가 (403)
- 마지막 로그인 시각 기록
- Access Token은 응답 바디로, Refresh Token은 HttpOnly Cookie로 반환

"""

@router.post("/login")
def login(data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = get_by_email(db, data.email)

    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if user.status != AccountStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account {user.status.value}",
        )

    try:
        record_login(user)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    access = create_access_token(subject=str(user.id))
    refresh = create_refresh_token(subject=str(user.id), refresh_token_version=user.refresh_token_version)
    _set_refresh_cookie(response, refresh)

    LOG.info("login: %s", user.email)
    return {"data": TokenResponse(access_token=access).model_dump()}


"""
Access Token 재발급 API

- Refresh Token 쿠키를 사용해 새로운 Access Token 발급
- Refresh Token Version이 일치하지 않으면 재발급 거부
- 재발급 시 Refresh Token을 회전(rotation)

"""

@router.post("/refresh")
def refresh(request: Request, response: Response, db: Session = Depends(get_db)):
    token = request.cookies.get(REFRESH_COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing refresh token")

    try:
        user_id, token_rtv = decode_refresh_token(token)
    except (JWTError, ValueError, KeyError):
        _clear_refresh_cookie(response)
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = db.scalar(select(User).where(User.id == user_id))
    if not user or user.status != AccountStatus.ACTIVE:
        _clear_refresh_cookie(response)
        raise HTTPException(status_code=401, detail="User not found")

    if token_rtv != user.refresh_token_version:
        _clear_refresh_cookie(response)
        raise HTTPException(status_code=401, detail="Refresh token revoked")

    user.refresh_token_version += 1
    db.commit()
    db.refresh(user)

    new_access = create_access_token(subject=str(user.id))
    new_refresh = create_refresh_token(
        subject=str(user.id),
        refresh_token_version=user.refresh_token_version,
    )
    _set_refresh_cookie(response, new_refresh)

    return {"data": TokenResponse(access_token=new_access).model_dump()}


"""
로그아웃 API

- Refresh Token Version 증가로 기존 토큰 무효화
- 클라이언트의 Refresh Token 쿠키 삭제

"""

@router.post("/logout")
def logout(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        user.refresh_token_version += 1
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    response = Response(status_code=204)
    _clear_refresh_cookie(response)
    return response


# 본인 정보 + 권한 플래그 / 부여 가능한 role 목록 (화면 표시 여부 판단용)
@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"data": serialize_session_account(user)}


"""
비밀번호 변경 API

- 현재 비밀번호로 재인증한 뒤에만 새 비밀번호 적용
- 새 비밀번호는 기존 비밀번호와 달라야 함
- 비밀번호 변경 시 Refresh Token 무효화

"""

@router.patch("/password")
def change_password(
    data: ChangePasswordRequest,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    # 1) 현재 비밀번호 확인
    if not verify_password(data.current_password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password")

    # 2) 새 비밀번호 확인
    if data.new_password != data.confirm_password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Passwords do not match")

    # 3) 새 비밀번호가 기존과 같은지 방지
    if verify_password(data.new_password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="New password must be different")

    try:
        user.password_hash = get_password_hash(data.new_password)
        user.refresh_token_version += 1
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    # 비밀번호를 바꿨으면 다시 로그인하도록 refresh 쿠키 삭제
    _clear_refresh_cookie(response)

    return {
        "data": {
            "status": "password_updated",
        }
    }
