from pydantic import BaseModel, EmailStr, Field

from app.models.user import Role, AccountStatus


# 🔹 관리자 계정 생성 요청
class CreateUserRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=64)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: str | None = None
    role: Role = Role.USER
    status: AccountStatus = AccountStatus.ACTIVE
    city: str | None = None
    province: str | None = None


# 🔹 관리자 계정 정보 수정 요청 (None이면 기존 유지)
class UpdateUserRequest(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = None
    status: AccountStatus | None = None
    city: str | None = None
    province: str | None = None


# 🔹 관리자 role 변경 요청
class RoleUpdate(BaseModel):
    role: Role


# 🔹 다른 계정 비밀번호 변경 요청 (항상 거절됨)
class AdminPasswordRequest(BaseModel):
    new_password: str = Field(min_length=8, max_length=64)
