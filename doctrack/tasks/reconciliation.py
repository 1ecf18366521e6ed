import logging

from doctrack.celery_app import celery_app

logger = logging.getLogger(__name__)


def find_location_mismatches(db) -> list[str]:
    """Ids of documents whose location differs from their newest routing entry.

    Read-only: mismatching documents are reported, never repaired.
    """
    from doctrack.models.documents import Document
    from doctrack.services.history import history

    mismatches: list[str] = []
    for document in db.query(Document).order_by(Document.created_at).all():
        entry = history.latest_location_entry(db, document.id)
        if entry is None:
            logger.warning("Document %s has no routing entry", document.id)
            mismatches.append(str(document.id))
            continue
        if (
            entry.to_area_id != document.current_area_id
            or entry.to_user_id != document.current_user_id
        ):
            logger.warning(
                "Document %s is at %s/%s but its ledger says %s/%s",
                document.id,
                document.current_area_id,
                document.current_user_id,
                entry.to_area_id,
                entry.to_user_id,
            )
            mismatches.append(str(document.id))
    return mismatches


@celery_app.task(name="doctrack.tasks.reconciliation.check_ledger_consistency")
def check_ledger_consistency() -> list[str]:
    """Periodic sweep comparing document locations with the history ledger."""
    from doctrack.db import SessionLocal

    db = SessionLocal()
    try:
        mismatches = find_location_mismatches(db)
        logger.info("Ledger consistency check found %d mismatches", len(mismatches))
        return mismatches
    except Exception as e:
        logger.exception("Failed to check ledger consistency: %s", e)
        return []
    finally:
        db.close()
