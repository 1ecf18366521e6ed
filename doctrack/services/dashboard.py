from datetime import datetime, time, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from doctrack.models.documents import Document, DocumentStatus, HistoryAction, HistoryEntry
from doctrack.services.common import coerce_uuid
from doctrack.services.history import history
from doctrack.services.users import users


def _start_of_day(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return datetime.combine(now.date(), time.min, tzinfo=timezone.utc)


class Dashboard:
    @staticmethod
    def counters(db: Session, company_id, now: datetime | None = None) -> dict:
        company_id = coerce_uuid(company_id)
        total = db.scalar(
            select(func.count(Document.id)).where(Document.company_id == company_id)
        )
        pending = db.scalar(
            select(func.count(Document.id)).where(
                Document.company_id == company_id,
                Document.status == DocumentStatus.pending,
            )
        )
        derived_today = db.scalar(
            select(func.count(HistoryEntry.id)).where(
                HistoryEntry.company_id == company_id,
                HistoryEntry.action == HistoryAction.derived,
                HistoryEntry.created_at >= _start_of_day(now),
            )
        )
        return {
            "total_documents": total or 0,
            "pending_documents": pending or 0,
            "active_users": users.count_active(db, company_id) or 0,
            "derived_today": derived_today or 0,
        }

    @staticmethod
    def recent_documents(db: Session, company_id, limit: int = 5) -> list[Document]:
        stmt = (
            select(Document)
            .where(Document.company_id == coerce_uuid(company_id))
            .order_by(Document.created_at.desc())
            .limit(limit)
        )
        return db.scalars(stmt).all()

    @staticmethod
    def overview(db: Session, company_id) -> dict:
        return {
            "counters": Dashboard.counters(db, company_id),
            "recent_documents": Dashboard.recent_documents(db, company_id),
            "recent_activity": history.recent_activity(db, company_id),
        }


dashboard = Dashboard()
