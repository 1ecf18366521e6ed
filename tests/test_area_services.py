from unittest.mock import patch

import pytest
from pydantic import ValidationError as PayloadError

from doctrack.errors import ConflictError, NotFoundError, PermissionDeniedError
from doctrack.models import Area, HistoryEntry
from doctrack.schemas.tenancy import AreaCreate, AreaUpdate
from doctrack.services.areas import Areas


class TestAreasCreate:
    def test_create(self, db_session, admin):
        area = Areas.create(
            db_session, admin, AreaCreate(name="Recursos Humanos", description="RRHH")
        )
        assert area.company_id == admin.company_id
        assert area.name == "Recursos Humanos"

    def test_duplicate_name(self, db_session, admin, area):
        with pytest.raises(ConflictError, match="already exists"):
            Areas.create(db_session, admin, AreaCreate(name="Finance"))

    def test_requires_admin(self, db_session, person):
        with pytest.raises(PermissionDeniedError):
            Areas.create(db_session, person, AreaCreate(name="Marketing"))

    @pytest.mark.parametrize("name", ["IT", "   ", "  AB  ", "Sales & Ops", "x" * 51])
    def test_invalid_names(self, name):
        with pytest.raises(PayloadError):
            AreaCreate(name=name)

    def test_accented_name(self):
        assert AreaCreate(name="Logística Área 2").name == "Logística Área 2"


class TestAreasRead:
    def test_get_other_tenant(self, db_session, area, company_factory):
        with pytest.raises(NotFoundError):
            Areas.get(db_session, company_factory().id, area.id)

    def test_list_counts(self, db_session, admin, area, other_area, person, document):
        items = Areas.list(db_session, admin.company_id, None, "name", "asc", 50, 0)
        by_name = {a.name: a for a in items}
        assert by_name["Finance"].user_count == 1
        assert by_name["Finance"].document_count == 1
        assert by_name["Legal"].user_count == 1
        assert by_name["Legal"].document_count == 0

    def test_list_search(self, db_session, admin, area, other_area):
        items = Areas.list(db_session, admin.company_id, "leg", "name", "asc", 50, 0)
        assert [a.name for a in items] == ["Legal"]


class TestAreasUpdate:
    def test_update(self, db_session, admin, area):
        updated = Areas.update(db_session, admin, area.id, AreaUpdate(description="Money"))
        assert updated.description == "Money"
        assert updated.name == "Finance"

    def test_rename_collision(self, db_session, admin, area, other_area):
        with pytest.raises(ConflictError):
            Areas.update(db_session, admin, other_area.id, AreaUpdate(name="Finance"))


class TestAreasDelete:
    def test_delete_blocked_by_document(self, db_session, admin, area, document):
        with pytest.raises(ConflictError, match="documents assigned") as exc:
            Areas.delete(db_session, admin, area.id)
        assert exc.value.details == {"document_count": 1}
        assert db_session.get(Area, area.id) is not None

    def test_delete_allowed_after_documents_move(
        self, db_session, admin, company, area, area_factory, document_factory
    ):
        archive = area_factory(company, "Archive")
        doc = document_factory(admin, archive)
        doc.current_area_id = area.id
        db_session.commit()
        Areas.delete(db_session, admin, archive.id)
        db_session.commit()
        assert db_session.get(Area, archive.id) is None
        entry = db_session.query(HistoryEntry).filter_by(document_id=doc.id).one()
        assert entry.to_area_name == "Archive"

    def test_delete_unassigns_users(self, db_session, admin, person, other_area):
        Areas.delete(db_session, admin, other_area.id)
        db_session.commit()
        db_session.refresh(person)
        assert person.area_id is None

    def test_delete_requires_admin(self, db_session, person, other_area):
        with pytest.raises(PermissionDeniedError):
            Areas.delete(db_session, person, other_area.id)


class TestAreaEvents:
    @patch("doctrack.services.areas.publish_event")
    def test_failed_commit_publishes_nothing(self, mock_publish, db_session, admin):
        with patch.object(db_session, "commit", side_effect=RuntimeError("db down")):
            with pytest.raises(RuntimeError):
                Areas.create(db_session, admin, AreaCreate(name="Marketing"))
        mock_publish.assert_not_called()

    @patch("doctrack.services.areas.publish_event")
    def test_delete_published_after_commit(self, mock_publish, db_session, admin, other_area):
        Areas.delete(db_session, admin, other_area.id)
        mock_publish.assert_called_once()
        db_session.expire_all()
        assert db_session.get(Area, other_area.id) is None
