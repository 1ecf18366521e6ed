from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy.orm import Session

from doctrack.errors import NotFoundError
from doctrack.models.documents import Notification, NotificationType
from doctrack.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    parse_enum,
)
from doctrack.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


class Notifications(ListResponseMixin):
    @staticmethod
    def emit(
        db: Session,
        company_id,
        recipient_user_id,
        title: str,
        message: str,
        document_id=None,
        action_url: str | None = None,
        notification_type: NotificationType = NotificationType.document,
    ) -> Notification | None:
        """Create a notification in its own transaction.

        Best-effort: any failure is logged and rolled back, and ``None`` is
        returned instead of raising.
        """
        try:
            notification = Notification(
                company_id=coerce_uuid(company_id),
                user_id=coerce_uuid(recipient_user_id),
                title=title,
                message=message,
                type=notification_type,
                document_id=coerce_uuid(document_id),
                action_url=action_url,
            )
            db.add(notification)
            db.commit()
            db.refresh(notification)
        except Exception as e:
            db.rollback()
            logger.exception(
                "Failed to emit notification to user %s: %s", recipient_user_id, e
            )
            return None
        logger.info(
            "Emitted notification %s to user %s", notification.id, recipient_user_id
        )
        return notification

    @staticmethod
    def get(db: Session, user_id: str, notification_id: str) -> Notification:
        notification = db.get(Notification, coerce_uuid(notification_id))
        if not notification or notification.user_id != coerce_uuid(user_id):
            raise NotFoundError("Notification not found")
        return notification

    @staticmethod
    def list(
        db: Session,
        user_id: str,
        notification_type: str | None,
        is_read: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> List[Notification]:
        query = db.query(Notification).filter(
            Notification.user_id == coerce_uuid(user_id)
        )
        if notification_type is not None:
            query = query.filter(
                Notification.type
                == parse_enum(NotificationType, notification_type, "type")
            )
        if is_read is not None:
            query = query.filter(Notification.is_read == is_read)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": Notification.created_at},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def mark_read(db: Session, user_id: str, notification_ids: List[str]) -> int:
        now = datetime.now(timezone.utc)
        owner = coerce_uuid(user_id)
        count = 0
        for nid in notification_ids:
            notification = db.get(Notification, coerce_uuid(nid))
            if notification and notification.user_id == owner and not notification.is_read:
                notification.is_read = True
                notification.read_at = now
                count += 1
        db.commit()
        logger.info("Marked %d notifications as read", count)
        return count

    @staticmethod
    def mark_all_read(db: Session, user_id: str) -> int:
        now = datetime.now(timezone.utc)
        notifications = (
            db.query(Notification)
            .filter(
                Notification.user_id == coerce_uuid(user_id),
                Notification.is_read.is_(False),
            )
            .all()
        )
        for n in notifications:
            n.is_read = True
            n.read_at = now
        db.commit()
        logger.info(
            "Marked all %d notifications as read for user %s",
            len(notifications),
            user_id,
        )
        return len(notifications)

    @staticmethod
    def unread_count(db: Session, user_id: str) -> int:
        return (
            db.query(Notification)
            .filter(
                Notification.user_id == coerce_uuid(user_id),
                Notification.is_read.is_(False),
            )
            .count()
        )


notifications = Notifications()
