from __future__ import annotations

import re
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

_AREA_NAME_RE = re.compile(r"^[a-zA-ZáéíóúÁÉÍÓÚñÑ0-9\s]+$")


def _normalize_email(value: str) -> str:
    return value.lower()


def _check_area_name(value):
    # Stripped before the length constraints run.
    if isinstance(value, str):
        value = value.strip()
        if not _AREA_NAME_RE.match(value):
            raise ValueError("Only letters, numbers and spaces are allowed")
    return value


def _check_password(value: str, require_symbol: bool) -> str:
    if not re.search(r"[a-zA-Z]", value):
        raise ValueError("Password must contain at least one letter")
    if not re.search(r"[0-9]", value):
        raise ValueError("Password must contain at least one number")
    if require_symbol and not re.search(r"[^a-zA-Z0-9]", value):
        raise ValueError("Password must contain at least one symbol")
    return value


# ---------------------------------------------------------------------------
# Company
# ---------------------------------------------------------------------------


class CompanyRegister(BaseModel):
    company_name: str = Field(min_length=2, max_length=100)
    full_name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password(value, require_symbol=True)


class CompanyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    logo_url: str | None = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Area
# ---------------------------------------------------------------------------


class AreaBase(BaseModel):
    name: str = Field(min_length=3, max_length=50)
    description: str | None = Field(default=None, max_length=255)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, value):
        return _check_area_name(value)


class AreaCreate(AreaBase):
    pass


class AreaUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=50)
    description: str | None = Field(default=None, max_length=255)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, value):
        return _check_area_name(value)


class AreaRead(AreaBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    created_at: datetime
    updated_at: datetime
    user_count: int | None = None
    document_count: int | None = None


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    full_name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)
    position: str | None = Field(default=None, max_length=120)
    area_id: UUID | None = None
    role: str = "user"

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password(value, require_symbol=False)


class UserRoleUpdate(BaseModel):
    role: str


class UserStatusUpdate(BaseModel):
    status: str


class UserAreaUpdate(BaseModel):
    area_id: UUID | None = None


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    email: str
    full_name: str
    avatar_url: str | None = None
    position: str | None = None
    role: str
    status: str
    area_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("role", "status", mode="before")
    @classmethod
    def enum_value(cls, value):
        return getattr(value, "value", value)


class RegistrationRead(BaseModel):
    company: CompanyRead
    user: UserRead


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)


class SessionRead(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    user_id: UUID
    email: str
