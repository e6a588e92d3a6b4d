"""Pydantic models for user and authentication."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field


# ── Request models ─────────────────────────────────────────────────────────────

class UserRegister(BaseModel):
    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=8)
    email: EmailStr
    phone: str = Field(min_length=5, max_length=32)
    nickname: str = Field(default="", max_length=100)


class UserUpdate(BaseModel):
    """Profile fields a user may change; omitted fields are left as they are."""

    nickname: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, min_length=5, max_length=32)


class UserLogin(BaseModel):
    username: str
    password: str


# ── Response models ────────────────────────────────────────────────────────────

class UserResponse(BaseModel):
    user_id: str
    username: str
    nickname: str
    email: str | None
    phone: str | None
    roles: list[str]
    is_active: bool
    last_login: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"
    expires_in: int


class RegisterResponse(TokenResponse):
    user_id: str


class ProfileUpdated(BaseModel):
    message: str = "用户信息更新成功"
    user: UserResponse
