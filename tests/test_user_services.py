import uuid
from unittest.mock import patch

import pytest
from pydantic import ValidationError as PayloadError

from doctrack.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from doctrack.models import User, UserRole, UserStatus
from doctrack.schemas.tenancy import UserCreate
from doctrack.services.auth import AuthIdentity
from doctrack.services.users import Users


def _create_payload(**overrides):
    data = dict(
        full_name="Bob Builder",
        email="bob@example.com",
        password="secret123",
        role="user",
    )
    data.update(overrides)
    return UserCreate(**data)


class TestAdminFloor:
    def test_last_admin_cannot_be_deactivated(self, db_session, admin):
        with pytest.raises(PermissionDeniedError, match="active administrator"):
            Users.update_status(db_session, admin, admin.id, "inactive")
        db_session.refresh(admin)
        assert admin.status == UserStatus.active

    def test_last_admin_cannot_be_demoted(self, db_session, admin):
        with pytest.raises(PermissionDeniedError):
            Users.update_role(db_session, admin, admin.id, "supervisor")
        db_session.refresh(admin)
        assert admin.role == UserRole.admin

    def test_last_admin_cannot_go_pending(self, db_session, admin):
        with pytest.raises(PermissionDeniedError):
            Users.update_status(db_session, admin, admin.id, "pending")

    def test_second_admin_allows_demotion(self, db_session, admin, company, user_factory):
        other = user_factory(company, full_name="Bea Admin", role=UserRole.admin)
        updated = Users.update_role(db_session, admin, other.id, "user")
        assert updated.role == UserRole.user

    def test_inactive_admin_does_not_count(self, db_session, admin, company, user_factory):
        user_factory(
            company, full_name="Old Admin", role=UserRole.admin, status=UserStatus.inactive
        )
        with pytest.raises(PermissionDeniedError):
            Users.update_status(db_session, admin, admin.id, "inactive")

    def test_promotion_is_unaffected(self, db_session, admin, person):
        updated = Users.update_role(db_session, admin, person.id, "admin")
        assert updated.role == UserRole.admin

    def test_non_admin_cannot_change_roles(self, db_session, person, admin):
        with pytest.raises(PermissionDeniedError):
            Users.update_role(db_session, person, admin.id, "user")

    def test_invalid_role(self, db_session, admin, person):
        with pytest.raises(ValidationError, match="role"):
            Users.update_role(db_session, admin, person.id, "owner")


class TestUsersCreate:
    def test_create(self, db_session, admin, area):
        identity = AuthIdentity(id=uuid.uuid4(), email="bob@example.com")
        with patch("doctrack.services.users.session_manager") as manager:
            manager.sign_up.return_value = identity
            user = Users.create(db_session, admin, _create_payload(area_id=area.id))
        assert user.id == identity.id
        assert user.company_id == admin.company_id
        assert user.area_id == area.id
        assert user.status == UserStatus.active
        _, _, metadata = manager.sign_up.call_args.args
        assert metadata["company_id"] == str(admin.company_id)

    def test_duplicate_email(self, db_session, admin, user_factory, company):
        existing = user_factory(company, full_name="Bob")
        with patch("doctrack.services.users.session_manager") as manager:
            with pytest.raises(ConflictError):
                Users.create(db_session, admin, _create_payload(email=existing.email))
        manager.sign_up.assert_not_called()

    def test_foreign_area(self, db_session, admin, company_factory, area_factory):
        foreign = area_factory(company_factory(), "Finance")
        with patch("doctrack.services.users.session_manager"):
            with pytest.raises(NotFoundError):
                Users.create(db_session, admin, _create_payload(area_id=foreign.id))

    def test_plain_user_cannot_create(self, db_session, person):
        with pytest.raises(PermissionDeniedError):
            Users.create(db_session, person, _create_payload())

    def test_supervisor_can_create(self, db_session, company, user_factory):
        supervisor = user_factory(company, full_name="Sam", role=UserRole.supervisor)
        identity = AuthIdentity(id=uuid.uuid4(), email="bob@example.com")
        with patch("doctrack.services.users.session_manager") as manager:
            manager.sign_up.return_value = identity
            user = Users.create(db_session, supervisor, _create_payload())
        assert user.role == UserRole.user

    def test_profile_failure_deletes_auth_account(self, db_session, admin, person):
        taken_id = person.id
        db_session.expunge(person)
        identity = AuthIdentity(id=taken_id, email="bob@example.com")
        with patch("doctrack.services.users.session_manager") as manager:
            manager.sign_up.return_value = identity
            with pytest.raises(ConflictError):
                Users.create(db_session, admin, _create_payload())
        manager.delete_account.assert_called_once_with(taken_id)

    @pytest.mark.parametrize("email", ["not-an-email", "bob@", "bob smith@example.com"])
    def test_malformed_email_rejected(self, email):
        with pytest.raises(PayloadError):
            _create_payload(email=email)

    def test_email_lowercased(self):
        assert _create_payload(email="Bob.Builder@Example.COM").email == "bob.builder@example.com"


class TestUsersRead:
    def test_list_filters(self, db_session, admin, person, other_area):
        items = Users.list(
            db_session, admin.company_id, str(other_area.id), None, None, None,
            "full_name", "asc", 50, 0,
        )
        assert [u.id for u in items] == [person.id]
        admins = Users.list(
            db_session, admin.company_id, None, None, "admin", None,
            "full_name", "asc", 50, 0,
        )
        assert [u.id for u in admins] == [admin.id]

    def test_list_search(self, db_session, admin, person):
        items = Users.list(
            db_session, admin.company_id, None, None, None, "jane",
            "full_name", "asc", 50, 0,
        )
        assert [u.full_name for u in items] == ["Jane Doe"]

    def test_derivation_targets(self, db_session, company, other_area, person, user_factory):
        user_factory(company, full_name="Ann Pending", status=UserStatus.pending, area=other_area)
        user_factory(company, full_name="Zed Gone", status=UserStatus.inactive, area=other_area)
        targets = Users.list_derivation_targets(db_session, company.id, other_area.id)
        assert [u.full_name for u in targets] == ["Ann Pending", "Jane Doe"]

    def test_get_other_tenant(self, db_session, person, company_factory):
        with pytest.raises(NotFoundError):
            Users.get(db_session, company_factory().id, person.id)

    def test_update_area(self, db_session, admin, person, area):
        updated = Users.update_area(db_session, admin, person.id, str(area.id))
        assert updated.area_id == area.id
        cleared = Users.update_area(db_session, admin, person.id, None)
        assert cleared.area_id is None

    def test_count_active(self, db_session, admin, person, company, user_factory):
        user_factory(company, full_name="Gone", status=UserStatus.inactive)
        assert Users.count_active(db_session, company.id) == 2
        assert db_session.query(User).count() == 3


class TestUserEvents:
    @patch("doctrack.services.users.publish_event")
    def test_role_change_published_after_commit(self, mock_publish, db_session, admin, person):
        Users.update_role(db_session, admin, person.id, "supervisor")
        mock_publish.assert_called_once()
        db_session.expire_all()
        assert db_session.get(User, person.id).role == UserRole.supervisor

    @patch("doctrack.services.users.publish_event")
    def test_failed_commit_publishes_nothing(self, mock_publish, db_session, admin, person):
        with patch.object(db_session, "commit", side_effect=RuntimeError("db down")):
            with pytest.raises(RuntimeError):
                Users.update_status(db_session, admin, person.id, "inactive")
        mock_publish.assert_not_called()
