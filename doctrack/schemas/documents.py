from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _enum_value(value):
    return getattr(value, "value", value)


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


class UploadedFile(BaseModel):
    file_name: str = Field(min_length=1, max_length=500)
    content_type: str | None = None
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class DocumentCreate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=500)
    target_area_id: UUID
    target_user_id: UUID | None = None
    priority: str = "normal"
    due_date: datetime | None = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value):
        return value.strip() if isinstance(value, str) else value


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    title: str
    description: str | None = None
    file_name: str
    file_path: str
    file_size: int
    file_type: str
    mime_type: str
    current_area_id: UUID | None = None
    current_user_id: UUID | None = None
    origin_area_id: UUID | None = None
    created_by: UUID
    status: str
    priority: str
    version: int
    due_date: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("status", "priority", mode="before")
    @classmethod
    def enum_value(cls, value):
        return _enum_value(value)


class PreviewURLResponse(BaseModel):
    preview_url: str
    expires_in: int


# ---------------------------------------------------------------------------
# History ledger (append + read only)
# ---------------------------------------------------------------------------


class HistoryEntryCreate(BaseModel):
    document_id: UUID
    company_id: UUID
    user_id: UUID
    action: str
    from_area_id: UUID | None = None
    from_area_name: str | None = None
    to_area_id: UUID | None = None
    to_area_name: str | None = None
    from_user_id: UUID | None = None
    from_user_name: str | None = None
    to_user_id: UUID | None = None
    to_user_name: str | None = None
    comment: str | None = None
    metadata_: dict[str, Any] | None = Field(default=None, alias="metadata_")


class HistoryEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    company_id: UUID
    user_id: UUID
    action: str
    from_area_id: UUID | None = None
    from_area_name: str | None = None
    to_area_id: UUID | None = None
    to_area_name: str | None = None
    from_user_id: UUID | None = None
    from_user_name: str | None = None
    to_user_id: UUID | None = None
    to_user_name: str | None = None
    comment: str | None = None
    metadata_: dict[str, Any] | None = Field(default=None, alias="metadata_")
    created_at: datetime

    @field_validator("action", mode="before")
    @classmethod
    def enum_value(cls, value):
        return _enum_value(value)


class CommentCreate(BaseModel):
    comment: str = Field(min_length=1, max_length=500)


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------


class DeriveRequest(BaseModel):
    target_area_id: UUID
    target_user_id: UUID | None = None
    comment: str | None = Field(default=None, max_length=500)
    expected_version: int | None = Field(default=None, ge=1)


class DerivationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    document: DocumentRead
    history_entry: HistoryEntryRead


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class DashboardCounters(BaseModel):
    total_documents: int
    pending_documents: int
    active_users: int
    derived_today: int


class DashboardRead(BaseModel):
    counters: DashboardCounters
    recent_documents: list[DocumentRead]
    recent_activity: list[HistoryEntryRead]
