from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


class MemberFields(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    age_group: Optional[str] = None
    employment_type: Optional[str] = None
    about: Optional[str] = None
    city_province: Optional[str] = None
    instagram_follow: Optional[str] = None
    facebook_like: Optional[str] = None
    heard_about: Optional[str] = None
    industry: Optional[str] = None
    intersection: Optional[str] = None
    occupation: Optional[str] = None
    aspirations: Optional[str] = None


class MemberCreateRequest(MemberFields):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr


class MemberUpdateRequest(MemberFields):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None


SortDirection = Literal["asc", "desc"]


class ImportResultResponse(BaseModel):
    success: int
    failed: int
    duplicates: int
    errors: list[str]


class ImportPreviewResponse(BaseModel):
    header: list[str]
    rows: list[dict]
    total_rows: int
    errors: list[str]
