from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from doctrack.errors import ConflictError, NotFoundError
from doctrack.models.documents import Document
from doctrack.models.tenancy import Area, User, UserRole
from doctrack.schemas.tenancy import AreaCreate, AreaRead, AreaUpdate
from doctrack.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    ensure_role,
)
from doctrack.services.event import EventType, publish_event
from doctrack.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


class Areas(ListResponseMixin):
    @staticmethod
    def create(db: Session, actor: User, payload: AreaCreate) -> Area:
        ensure_role(actor, UserRole.admin)
        area = Area(company_id=actor.company_id, **payload.model_dump())
        try:
            db.add(area)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError(f"An area named '{payload.name}' already exists")
        db.refresh(area)
        logger.info("Created area %s in company %s", area.id, area.company_id)
        publish_event(
            EventType.area_created,
            entity_type="area",
            entity_id=area.id,
            company_id=area.company_id,
            actor_id=actor.id,
        )
        return area

    @staticmethod
    def get(db: Session, company_id, area_id: str) -> Area:
        area = db.get(Area, coerce_uuid(area_id))
        if not area or area.company_id != coerce_uuid(company_id):
            raise NotFoundError("Area not found")
        return area

    @staticmethod
    def list(
        db: Session,
        company_id,
        search: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[dict]:
        """Areas of a company with their ``user_count`` and ``document_count``."""
        stmt = select(Area).where(Area.company_id == coerce_uuid(company_id))
        if search:
            pattern = f"%{search.replace('%', '').replace('_', '')}%"
            stmt = stmt.where(
                Area.name.ilike(pattern) | Area.description.ilike(pattern)
            )
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"name": Area.name, "created_at": Area.created_at},
        )
        areas = db.scalars(apply_pagination(stmt, limit, offset)).all()
        if not areas:
            return []

        ids = [area.id for area in areas]
        user_counts = dict(
            db.execute(
                select(User.area_id, func.count(User.id))
                .where(User.area_id.in_(ids))
                .group_by(User.area_id)
            ).all()
        )
        document_counts = dict(
            db.execute(
                select(Document.current_area_id, func.count(Document.id))
                .where(Document.current_area_id.in_(ids))
                .group_by(Document.current_area_id)
            ).all()
        )
        return [
            AreaRead.model_validate(area).model_copy(
                update={
                    "user_count": user_counts.get(area.id, 0),
                    "document_count": document_counts.get(area.id, 0),
                }
            )
            for area in areas
        ]

    @staticmethod
    def update(db: Session, actor: User, area_id: str, payload: AreaUpdate) -> Area:
        ensure_role(actor, UserRole.admin)
        area = Areas.get(db, actor.company_id, area_id)
        data = payload.model_dump(exclude_unset=True)
        for key, value in data.items():
            setattr(area, key, value)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError(f"An area named '{data.get('name')}' already exists")
        db.refresh(area)
        logger.info("Updated area %s", area.id)
        publish_event(
            EventType.area_updated,
            entity_type="area",
            entity_id=area.id,
            company_id=area.company_id,
            actor_id=actor.id,
            payload={"changed_fields": list(data.keys())},
        )
        return area

    @staticmethod
    def delete(db: Session, actor: User, area_id: str) -> None:
        """Delete an area that no document is currently routed to.

        Users assigned to the area become unassigned; ledger entries keep
        their snapshot of the area name.
        """
        ensure_role(actor, UserRole.admin)
        area = Areas.get(db, actor.company_id, area_id)
        document_count = db.scalar(
            select(func.count(Document.id)).where(Document.current_area_id == area.id)
        )
        if document_count:
            raise ConflictError(
                "Area has documents assigned and cannot be deleted",
                details={"document_count": document_count},
            )
        db.execute(update(User).where(User.area_id == area.id).values(area_id=None))
        db.delete(area)
        db.commit()
        logger.info("Deleted area %s", area_id)
        publish_event(
            EventType.area_deleted,
            entity_type="area",
            entity_id=area_id,
            company_id=actor.company_id,
            actor_id=actor.id,
        )


areas = Areas()
