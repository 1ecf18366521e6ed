"""Routing of documents between areas and users.

A derivation updates the document's current location and appends the
matching ``derived`` ledger entry in one transaction. The recipient
notification and the event fan-out happen after commit and never fail the
derivation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from doctrack.config import settings
from doctrack.errors import ConflictError, NotFoundError, ValidationError
from doctrack.models.documents import (
    Document,
    DocumentStatus,
    HistoryAction,
    HistoryEntry,
    NotificationType,
)
from doctrack.models.tenancy import Area, User, UserStatus
from doctrack.schemas.documents import DeriveRequest, HistoryEntryCreate
from doctrack.services.common import coerce_uuid, parse_enum
from doctrack.services.event import EventType, publish_event
from doctrack.services.history import LocationSnapshot, history
from doctrack.services.notification import notifications

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Nuevo documento recibido"


@dataclass
class DerivationResult:
    document: Document
    history_entry: HistoryEntry


def _lock_document(db: Session, document_id) -> Document | None:
    stmt = (
        select(Document)
        .where(Document.id == coerce_uuid(document_id))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.scalar(stmt)


def _next_status(current: DocumentStatus) -> DocumentStatus:
    if current == DocumentStatus.derived:
        return parse_enum(DocumentStatus, settings.reroute_status, "reroute_status")
    return DocumentStatus.derived


def document_url(document_id) -> str:
    return settings.document_url_template.format(document_id=document_id)


class Derivation:
    @staticmethod
    def derive(
        db: Session, actor: User, document_id: str, payload: DeriveRequest
    ) -> DerivationResult:
        try:
            document = _lock_document(db, document_id)
            if not document or document.company_id != actor.company_id:
                raise NotFoundError("Document not found")
            if document.status == DocumentStatus.archived:
                raise ValidationError("Archived documents cannot be derived")
            if (
                payload.expected_version is not None
                and payload.expected_version != document.version
            ):
                raise ConflictError(
                    "Document was modified by another request",
                    details={
                        "expected_version": payload.expected_version,
                        "current_version": document.version,
                    },
                )

            area = db.get(Area, payload.target_area_id)
            if not area or area.company_id != actor.company_id:
                raise NotFoundError("Target area not found")
            target = None
            if payload.target_user_id is not None:
                target = db.get(User, payload.target_user_id)
                if not target or target.company_id != actor.company_id:
                    raise NotFoundError("Target user not found")
                if target.status == UserStatus.inactive:
                    raise ValidationError(
                        "Inactive users cannot receive documents",
                        details={"target_user_id": str(target.id)},
                    )

            # The from-snapshot must be read before the location is overwritten.
            source = LocationSnapshot.capture(
                db, document.current_area_id, document.current_user_id
            )
            destination = LocationSnapshot.capture(
                db, area.id, target.id if target else None
            )

            document.current_area_id = area.id
            document.current_user_id = target.id if target else None
            document.status = _next_status(document.status)
            document.version = document.version + 1
            db.flush()

            entry = history.append(
                db,
                HistoryEntryCreate(
                    document_id=document.id,
                    company_id=document.company_id,
                    user_id=actor.id,
                    action=HistoryAction.derived.value,
                    comment=payload.comment,
                    **source.as_from(),
                    **destination.as_to(),
                ),
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(document)
        db.refresh(entry)
        logger.info(
            "Derived document %s from %s to %s",
            document.id,
            source.area_id,
            destination.area_id,
        )

        if target is not None:
            notifications.emit(
                db,
                company_id=document.company_id,
                recipient_user_id=target.id,
                title=NOTIFICATION_TITLE,
                message=f'Se te ha derivado el documento "{document.title}"',
                document_id=document.id,
                action_url=document_url(document.id),
                notification_type=NotificationType.document,
            )
        publish_event(
            EventType.document_derived,
            entity_type="document",
            entity_id=document.id,
            company_id=document.company_id,
            actor_id=actor.id,
            document_id=document.id,
            payload={
                "recipient_id": str(target.id) if target else None,
                "to_area_id": str(area.id),
                "history_entry_id": str(entry.id),
            },
        )
        return DerivationResult(document=document, history_entry=entry)


derivation = Derivation()
