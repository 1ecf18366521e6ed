from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from doctrack.config import settings
from doctrack.errors import NotFoundError, ValidationError
from doctrack.models.documents import (
    Document,
    DocumentPriority,
    DocumentStatus,
    HistoryAction,
    HistoryEntry,
)
from doctrack.models.tenancy import Area, User, UserRole
from doctrack.schemas.documents import DocumentCreate, HistoryEntryCreate, UploadedFile
from doctrack.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    ensure_role,
    parse_enum,
)
from doctrack.services.event import EventType, publish_event
from doctrack.services.file_validation import get_file_type, is_previewable, validate_upload
from doctrack.services.history import LocationSnapshot, history
from doctrack.services.response import ListResponseMixin
from doctrack.services.storage import storage

logger = logging.getLogger(__name__)

CREATED_COMMENT = "Documento subido al sistema"
_BOXES = {"all", "inbox", "sent"}

T = TypeVar("T")


class Documents(ListResponseMixin):
    @staticmethod
    def create(
        db: Session, actor: User, payload: DocumentCreate, file: UploadedFile
    ) -> Document:
        """Upload the file, then insert the document and its ``created`` entry.

        The blob write gates the metadata write: a storage failure leaves no
        rows behind, and a metadata failure removes the uploaded blob.
        """
        validate_upload(file)
        priority = parse_enum(DocumentPriority, payload.priority, "priority")

        area = db.get(Area, payload.target_area_id)
        if not area or area.company_id != actor.company_id:
            raise ValidationError(
                "Target area does not belong to this company",
                details={"target_area_id": str(payload.target_area_id)},
            )
        if payload.target_user_id is not None:
            target = db.get(User, payload.target_user_id)
            if not target or target.company_id != actor.company_id:
                raise ValidationError(
                    "Target user does not belong to this company",
                    details={"target_user_id": str(payload.target_user_id)},
                )
            if target.area_id != area.id:
                logger.warning(
                    "Target user %s is not a member of target area %s",
                    target.id,
                    area.id,
                )

        storage_key = storage.generate_storage_key(str(actor.company_id), file.file_name)
        storage.upload(storage_key, file.content, file.content_type)

        try:
            document = Document(
                company_id=actor.company_id,
                title=payload.title,
                description=payload.description,
                file_name=file.file_name,
                file_path=storage_key,
                file_size=file.size,
                file_type=get_file_type(file.file_name),
                mime_type=file.content_type,
                current_area_id=area.id,
                current_user_id=payload.target_user_id,
                origin_area_id=actor.area_id,
                created_by=actor.id,
                status=DocumentStatus.pending,
                priority=priority,
                due_date=payload.due_date,
            )
            db.add(document)
            db.flush()
            snapshot = LocationSnapshot.capture(db, area.id, payload.target_user_id)
            history.append(
                db,
                HistoryEntryCreate(
                    document_id=document.id,
                    company_id=document.company_id,
                    user_id=actor.id,
                    action=HistoryAction.created.value,
                    comment=CREATED_COMMENT,
                    **snapshot.as_to(),
                ),
            )
            db.commit()
        except Exception:
            db.rollback()
            try:
                storage.delete(storage_key)
            except Exception:
                logger.exception("Failed to remove orphaned blob %s", storage_key)
            raise
        db.refresh(document)
        logger.info("Created document %s in area %s", document.id, area.id)
        publish_event(
            EventType.document_created,
            entity_type="document",
            entity_id=document.id,
            company_id=document.company_id,
            actor_id=actor.id,
            document_id=document.id,
        )
        return document

    @staticmethod
    def get(db: Session, company_id, document_id: str) -> Document:
        document = db.get(Document, coerce_uuid(document_id))
        if not document or document.company_id != coerce_uuid(company_id):
            raise NotFoundError("Document not found")
        return document

    @staticmethod
    def list(
        db: Session,
        actor: User,
        box: str,
        status: str | None,
        priority: str | None,
        area_id: str | None,
        search: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Document]:
        if box not in _BOXES:
            raise ValidationError(f"Invalid box. Allowed: {sorted(_BOXES)}")
        stmt = select(Document).where(Document.company_id == actor.company_id)
        if box == "inbox":
            mine = Document.current_user_id == actor.id
            if actor.area_id is not None:
                mine = or_(
                    mine,
                    and_(
                        Document.current_area_id == actor.area_id,
                        Document.current_user_id.is_(None),
                    ),
                )
            stmt = stmt.where(mine)
        elif box == "sent":
            stmt = stmt.where(Document.created_by == actor.id)
        if status is not None:
            stmt = stmt.where(
                Document.status == parse_enum(DocumentStatus, status, "status")
            )
        if priority is not None:
            stmt = stmt.where(
                Document.priority == parse_enum(DocumentPriority, priority, "priority")
            )
        if area_id is not None:
            stmt = stmt.where(Document.current_area_id == coerce_uuid(area_id))
        if search:
            stmt = stmt.where(Document.title.ilike(f"%{search}%"))
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "created_at": Document.created_at,
                "updated_at": Document.updated_at,
                "title": Document.title,
                "due_date": Document.due_date,
            },
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def _record(
        db: Session, actor: User, document_id: str, action: HistoryAction, **extra
    ) -> HistoryEntry:
        document = Documents.get(db, actor.company_id, document_id)
        entry = history.append(
            db,
            HistoryEntryCreate(
                document_id=document.id,
                company_id=document.company_id,
                user_id=actor.id,
                action=action.value,
                **extra,
            ),
        )
        db.commit()
        return entry

    @staticmethod
    def record_view(db: Session, actor: User, document_id: str) -> HistoryEntry:
        """Append a ``viewed`` entry. Every call is a distinct fact."""
        return Documents._record(db, actor, document_id, HistoryAction.viewed)

    @staticmethod
    def record_download(db: Session, actor: User, document_id: str) -> HistoryEntry:
        return Documents._record(db, actor, document_id, HistoryAction.downloaded)

    @staticmethod
    def download(
        db: Session,
        actor: User,
        document_id: str,
        deliver: Callable[[Document, bytes], T],
    ) -> T:
        """Fetch the blob and hand it to ``deliver``.

        The ``downloaded`` entry is written only once ``deliver`` has returned,
        so a failed fetch or a failed response build leaves no trace in the
        ledger.
        """
        document = Documents.get(db, actor.company_id, document_id)
        content = storage.download(document.file_path)
        delivered = deliver(document, content)
        Documents.record_download(db, actor, document.id)
        publish_event(
            EventType.document_downloaded,
            entity_type="document",
            entity_id=document.id,
            company_id=document.company_id,
            actor_id=actor.id,
            document_id=document.id,
        )
        return delivered

    @staticmethod
    def preview_url(db: Session, actor: User, document_id: str) -> dict:
        document = Documents.get(db, actor.company_id, document_id)
        if not is_previewable(document.file_type):
            raise ValidationError(
                "Preview not available for this file type",
                details={"file_type": document.file_type},
            )
        ttl = settings.s3_presigned_url_expiry
        url = storage.create_signed_read_url(document.file_path, ttl)
        return {"preview_url": url, "expires_in": ttl}

    @staticmethod
    def archive(db: Session, actor: User, document_id: str) -> Document:
        ensure_role(actor, UserRole.admin, UserRole.supervisor)
        document = Documents.get(db, actor.company_id, document_id)
        if document.status == DocumentStatus.archived:
            raise ValidationError("Document is already archived")
        previous = document.status
        document.status = DocumentStatus.archived
        history.append(
            db,
            HistoryEntryCreate(
                document_id=document.id,
                company_id=document.company_id,
                user_id=actor.id,
                action=HistoryAction.status_changed.value,
                metadata_={"from": previous.value, "to": DocumentStatus.archived.value},
            ),
        )
        db.commit()
        db.refresh(document)
        logger.info("Archived document %s", document.id)
        publish_event(
            EventType.document_archived,
            entity_type="document",
            entity_id=document.id,
            company_id=document.company_id,
            actor_id=actor.id,
            document_id=document.id,
        )
        return document

    @staticmethod
    def add_comment(
        db: Session, actor: User, document_id: str, comment: str
    ) -> HistoryEntry:
        entry = Documents._record(
            db, actor, document_id, HistoryAction.commented, comment=comment
        )
        publish_event(
            EventType.document_commented,
            entity_type="document",
            entity_id=entry.document_id,
            company_id=entry.company_id,
            actor_id=actor.id,
            document_id=entry.document_id,
        )
        return entry


documents = Documents()
