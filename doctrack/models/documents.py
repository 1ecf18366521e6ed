import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    event,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from doctrack.db import Base


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DocumentStatus(enum.Enum):
    pending = "pending"
    in_review = "in_review"
    approved = "approved"
    rejected = "rejected"
    derived = "derived"
    archived = "archived"


class DocumentPriority(enum.Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


class HistoryAction(enum.Enum):
    created = "created"
    viewed = "viewed"
    downloaded = "downloaded"
    derived = "derived"
    edited = "edited"
    status_changed = "status_changed"
    commented = "commented"


class NotificationType(enum.Enum):
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"
    document = "document"


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_company_id", "company_id"),
        Index("ix_documents_current_area_id", "current_area_id"),
        Index("ix_documents_current_user_id", "current_user_id"),
        Index("ix_documents_created_by", "created_by"),
        Index("ix_documents_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    file_type: Mapped[str] = mapped_column(String(20), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)

    # Current location; only the derivation workflow moves it.
    current_area_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("areas.id")
    )
    current_user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )
    # Write-once. Not a foreign key so that areas can be removed later.
    origin_area_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )

    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus), default=DocumentStatus.pending
    )
    priority: Mapped[DocumentPriority] = mapped_column(
        Enum(DocumentPriority), default=DocumentPriority.normal
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    current_area = relationship("Area", foreign_keys=[current_area_id])
    current_user = relationship("User", foreign_keys=[current_user_id])
    origin_area = relationship(
        "Area",
        primaryjoin="foreign(Document.origin_area_id) == Area.id",
        viewonly=True,
    )
    creator = relationship("User", foreign_keys=[created_by])
    history = relationship(
        "HistoryEntry",
        order_by="HistoryEntry.created_at.desc()",
        viewonly=True,
    )


# ---------------------------------------------------------------------------
# History ledger (append-only, no updated_at)
# ---------------------------------------------------------------------------


class HistoryEntry(Base):
    __tablename__ = "document_history"
    __table_args__ = (
        Index("ix_document_history_document_id", "document_id"),
        Index("ix_document_history_company_id", "company_id"),
        Index("ix_document_history_action", "action"),
        Index("ix_document_history_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id"), nullable=False
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    action: Mapped[HistoryAction] = mapped_column(Enum(HistoryAction), nullable=False)

    # Value snapshots taken at write time, not foreign keys.
    from_area_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    from_area_name: Mapped[str | None] = mapped_column(String(50))
    to_area_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    to_area_name: Mapped[str | None] = mapped_column(String(50))
    from_user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    from_user_name: Mapped[str | None] = mapped_column(String(100))
    to_user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    to_user_name: Mapped[str | None] = mapped_column(String(100))

    comment: Mapped[str | None] = mapped_column(Text)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    # Rows are immutable: no updated_at

    document = relationship("Document")
    actor = relationship("User", foreign_keys=[user_id])


@event.listens_for(HistoryEntry, "before_update")
def _block_history_update(mapper, connection, target) -> None:  # noqa: ANN001
    raise RuntimeError(f"History entry {target.id} is immutable")


@event.listens_for(HistoryEntry, "before_delete")
def _block_history_delete(mapper, connection, target) -> None:  # noqa: ANN001
    raise RuntimeError(f"History entry {target.id} cannot be deleted")


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_id", "user_id"),
        Index("ix_notifications_is_read", "is_read"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType), default=NotificationType.info
    )
    document_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id")
    )
    action_url: Mapped[str | None] = mapped_column(String(1024))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    recipient = relationship("User", foreign_keys=[user_id])
    document = relationship("Document")
