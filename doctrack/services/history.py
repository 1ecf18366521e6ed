"""Append-only document history ledger.

The ledger is write-once, read-many: this module exposes ``append`` and read
helpers only. Rows are additionally protected by ORM ``before_update`` /
``before_delete`` guards on :class:`HistoryEntry`.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from doctrack.errors import NotFoundError
from doctrack.models.documents import Document, HistoryAction, HistoryEntry
from doctrack.models.tenancy import Area, User
from doctrack.schemas.documents import HistoryEntryCreate
from doctrack.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    parse_enum,
)
from doctrack.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationSnapshot:
    """An (area, user) pair copied into a ledger entry at write time."""

    area_id: uuid.UUID | None = None
    area_name: str | None = None
    user_id: uuid.UUID | None = None
    user_name: str | None = None

    @classmethod
    def capture(
        cls, db: Session, area_id: uuid.UUID | None, user_id: uuid.UUID | None
    ) -> "LocationSnapshot":
        area = db.get(Area, area_id) if area_id else None
        user = db.get(User, user_id) if user_id else None
        return cls(
            area_id=area_id,
            area_name=area.name if area else None,
            user_id=user_id,
            user_name=user.full_name if user else None,
        )

    def as_from(self) -> dict:
        return {
            "from_area_id": self.area_id,
            "from_area_name": self.area_name,
            "from_user_id": self.user_id,
            "from_user_name": self.user_name,
        }

    def as_to(self) -> dict:
        return {
            "to_area_id": self.area_id,
            "to_area_name": self.area_name,
            "to_user_id": self.user_id,
            "to_user_name": self.user_name,
        }


class History(ListResponseMixin):
    @staticmethod
    def append(db: Session, payload: HistoryEntryCreate) -> HistoryEntry:
        """Persist one ledger entry inside the caller's transaction.

        Only the document reference is checked; ``from_*``/``to_*`` values are
        snapshots and are stored as given.
        """
        action = parse_enum(HistoryAction, payload.action, "action")
        document = db.get(Document, coerce_uuid(payload.document_id))
        if not document or document.company_id != coerce_uuid(payload.company_id):
            raise NotFoundError("Document not found")

        data = payload.model_dump()
        data["action"] = action
        entry = HistoryEntry(**data)
        db.add(entry)
        db.flush()
        db.refresh(entry)
        logger.info(
            "Appended %s entry %s to document %s",
            action.value,
            entry.id,
            entry.document_id,
        )
        return entry

    @staticmethod
    def list(
        db: Session,
        company_id: str,
        document_id: str,
        action: str | None,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[HistoryEntry]:  # type: ignore[override]
        """Entries of one document, newest first (``desc``) or as a timeline (``asc``)."""
        document = db.get(Document, coerce_uuid(document_id))
        if not document or document.company_id != coerce_uuid(company_id):
            raise NotFoundError("Document not found")

        stmt = select(HistoryEntry).where(
            HistoryEntry.document_id == document.id,
            HistoryEntry.company_id == document.company_id,
        )
        if action is not None:
            stmt = stmt.where(
                HistoryEntry.action == parse_enum(HistoryAction, action, "action")
            )
        stmt = apply_ordering(
            stmt, "created_at", order_dir, {"created_at": HistoryEntry.created_at}
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def recent_activity(
        db: Session, company_id: str, limit: int = 8
    ) -> list[HistoryEntry]:
        stmt = (
            select(HistoryEntry)
            .where(HistoryEntry.company_id == coerce_uuid(company_id))
            .order_by(HistoryEntry.created_at.desc())
            .limit(limit)
        )
        return db.scalars(stmt).all()

    @staticmethod
    def latest_location_entry(db: Session, document_id) -> HistoryEntry | None:
        """Newest ``created``/``derived`` entry, i.e. the last recorded move."""
        stmt = (
            select(HistoryEntry)
            .where(
                HistoryEntry.document_id == coerce_uuid(document_id),
                HistoryEntry.action.in_(
                    [HistoryAction.created, HistoryAction.derived]
                ),
            )
            .order_by(HistoryEntry.created_at.desc())
            .limit(1)
        )
        return db.scalar(stmt)


history = History()
