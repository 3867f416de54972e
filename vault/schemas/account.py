"""Pydantic schemas for accounts, verification and password reset."""

import re
import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from vault.config import settings
from vault.utils.validation import is_email

_NICKNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{4,25}$")


def _check_password(v: str) -> str:
    if not settings.password_min_length <= len(v) <= settings.password_max_length:
        raise ValueError(
            f"Password must be {settings.password_min_length}-"
            f"{settings.password_max_length} characters long"
        )
    return v


class AccountCreateRequest(BaseModel):
    email: str = Field(..., max_length=320)
    nickname: str = Field(..., max_length=25)
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if not is_email(v):
            raise ValueError("Invalid email address")
        return v

    @field_validator("nickname")
    @classmethod
    def validate_nickname(cls, v: str) -> str:
        if not _NICKNAME_PATTERN.match(v):
            raise ValueError("Nickname must be 4-25 letters, digits or underscores")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


class AccountResponse(BaseModel):
    account_id: uuid.UUID
    email: str
    nickname: str
    avatar_url: str | None
    is_verified: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PasswordResetRequest(BaseModel):
    login: str = Field(..., min_length=1, max_length=320, description="Email or nickname")


class PasswordResetRedeem(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


class PasswordUpdateRequest(BaseModel):
    old_password: str = Field(..., max_length=64)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _check_password(v)


class MessageResponse(BaseModel):
    message: str
