import logging

from doctrack.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="doctrack.tasks.notifications.send_notification_email", ignore_result=True
)
def send_notification_email(user_id: str, document_id: str | None = None) -> None:
    """Send the newest unread notification about a document to its recipient by e-mail.

    Delivery is logged only; no mail transport is configured.
    """
    from doctrack.db import SessionLocal
    from doctrack.models.documents import Notification
    from doctrack.models.tenancy import User
    from doctrack.services.common import coerce_uuid

    db = SessionLocal()
    try:
        user = db.get(User, coerce_uuid(user_id))
        if not user:
            logger.warning("Notification e-mail skipped: user %s not found", user_id)
            return
        query = db.query(Notification).filter(
            Notification.user_id == user.id, Notification.is_read.is_(False)
        )
        if document_id:
            query = query.filter(Notification.document_id == coerce_uuid(document_id))
        notification = query.order_by(Notification.created_at.desc()).first()
        if not notification:
            logger.info("No unread notification to e-mail for user %s", user_id)
            return
        logger.info(
            "Would send e-mail to %s: %s (%s)",
            user.email,
            notification.title,
            notification.action_url,
        )
    except Exception as e:
        logger.exception("Failed to send notification e-mail to %s: %s", user_id, e)
    finally:
        db.close()
