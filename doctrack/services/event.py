import enum
import logging
import uuid

logger = logging.getLogger(__name__)


class EventType(enum.Enum):
    company_registered = "company.registered"

    user_created = "user.created"
    user_role_changed = "user.role_changed"
    user_status_changed = "user.status_changed"
    user_area_changed = "user.area_changed"

    area_created = "area.created"
    area_updated = "area.updated"
    area_deleted = "area.deleted"

    document_created = "document.created"
    document_derived = "document.derived"
    document_downloaded = "document.downloaded"
    document_archived = "document.archived"
    document_commented = "document.commented"


def publish_event(
    event_type: EventType,
    entity_type: str,
    entity_id: str | uuid.UUID,
    company_id: str | uuid.UUID | None = None,
    actor_id: str | uuid.UUID | None = None,
    document_id: str | uuid.UUID | None = None,
    payload: dict | None = None,
) -> None:
    """Fire-and-forget event publishing.

    Queues a Celery task for fan-out (notification e-mails).
    Never raises: failures are logged.
    """
    try:
        from doctrack.tasks.events import process_event

        process_event.delay(
            event_type=event_type.value,
            entity_type=entity_type,
            entity_id=str(entity_id),
            company_id=str(company_id) if company_id else None,
            actor_id=str(actor_id) if actor_id else None,
            document_id=str(document_id) if document_id else None,
            payload=payload or {},
        )
        logger.debug(
            "Published event %s for %s/%s", event_type.value, entity_type, entity_id
        )
    except Exception as e:
        logger.exception("Failed to publish event %s: %s", event_type.value, e)
