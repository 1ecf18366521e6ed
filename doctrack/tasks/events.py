import logging

from doctrack.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="doctrack.tasks.events.process_event", ignore_result=True)
def process_event(
    event_type: str,
    entity_type: str,
    entity_id: str,
    company_id: str | None = None,
    actor_id: str | None = None,
    document_id: str | None = None,
    payload: dict | None = None,
) -> None:
    """Fan-out task for domain events.

    Only derivations with a recipient currently fan out (a notification
    e-mail); other events are logged.
    """
    payload = payload or {}
    logger.info("Processing event %s for %s/%s", event_type, entity_type, entity_id)

    recipient_id = payload.get("recipient_id")
    if event_type == "document.derived" and recipient_id:
        _fanout_email(recipient_id, document_id)


def _fanout_email(recipient_id: str, document_id: str | None) -> None:
    try:
        from doctrack.tasks.notifications import send_notification_email

        send_notification_email.delay(
            user_id=recipient_id,
            document_id=document_id,
        )
    except Exception as e:
        logger.exception("Failed to fan-out notification e-mail: %s", e)
