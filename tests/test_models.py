import pytest

from doctrack.models import (
    DocumentPriority,
    DocumentStatus,
    HistoryAction,
    HistoryEntry,
    Notification,
    NotificationType,
)


class TestDocumentModel:
    def test_defaults(self, document):
        assert document.status == DocumentStatus.pending
        assert document.priority == DocumentPriority.normal
        assert document.version == 1
        assert document.created_at is not None

    def test_relationships(self, document, area, admin):
        assert document.current_area.id == area.id
        assert document.creator.id == admin.id
        assert document.origin_area.id == area.id

    def test_history_relationship(self, document):
        assert len(document.history) == 1
        assert document.history[0].action == HistoryAction.created


class TestHistoryEntryGuards:
    def test_update_is_rejected(self, db_session, document):
        entry = db_session.query(HistoryEntry).filter_by(document_id=document.id).one()
        entry.comment = "rewritten"
        with pytest.raises(RuntimeError, match="immutable"):
            db_session.flush()
        db_session.rollback()
        entry = db_session.query(HistoryEntry).filter_by(document_id=document.id).one()
        assert entry.comment == "Documento subido al sistema"

    def test_delete_is_rejected(self, db_session, document):
        entry = db_session.query(HistoryEntry).filter_by(document_id=document.id).one()
        db_session.delete(entry)
        with pytest.raises(RuntimeError, match="cannot be deleted"):
            db_session.flush()
        db_session.rollback()
        assert db_session.query(HistoryEntry).filter_by(document_id=document.id).count() == 1

    def test_snapshot_survives_area_rename(self, db_session, document, area):
        area.name = "Treasury"
        db_session.commit()
        entry = db_session.query(HistoryEntry).filter_by(document_id=document.id).one()
        assert entry.to_area_name == "Finance"
        assert entry.to_area_id == area.id


class TestNotificationModel:
    def test_defaults(self, db_session, company, person):
        notification = Notification(
            company_id=company.id,
            user_id=person.id,
            title="Hello",
            message="World",
        )
        db_session.add(notification)
        db_session.commit()
        db_session.refresh(notification)
        assert notification.is_read is False
        assert notification.type == NotificationType.info
        assert notification.read_at is None
