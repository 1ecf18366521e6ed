import os
import tempfile
import uuid
from unittest.mock import MagicMock, patch

_DB_DIR = tempfile.mkdtemp(prefix="doctrack-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["S3_ENDPOINT_URL"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from doctrack.db import Base, SessionLocal, engine  # noqa: E402
from doctrack.models import (  # noqa: E402
    Area,
    Company,
    Document,
    DocumentStatus,
    HistoryAction,
    HistoryEntry,
    User,
    UserRole,
    UserStatus,
)
from doctrack.services.storage import StorageService  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        with engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())


def make_company(db, name="Acme Corp"):
    company = Company(name=name, slug=f"{name.lower().replace(' ', '-')}-{uuid.uuid4().hex[:6]}")
    db.add(company)
    db.commit()
    db.refresh(company)
    return company


def make_area(db, company, name="Finance"):
    area = Area(company_id=company.id, name=name)
    db.add(area)
    db.commit()
    db.refresh(area)
    return area


def make_user(
    db,
    company,
    full_name="Jane Doe",
    role=UserRole.user,
    status=UserStatus.active,
    area=None,
):
    user = User(
        id=uuid.uuid4(),
        company_id=company.id,
        email=f"{uuid.uuid4().hex[:8]}@example.com",
        full_name=full_name,
        role=role,
        status=status,
        area_id=area.id if area else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_document(db, creator, area, user=None, title="Invoice Jan"):
    document = Document(
        company_id=creator.company_id,
        title=title,
        file_name="invoice.pdf",
        file_path=f"{creator.company_id}/documents/1-abcd.pdf",
        file_size=2 * 1024 * 1024,
        file_type="pdf",
        mime_type="application/pdf",
        current_area_id=area.id,
        current_user_id=user.id if user else None,
        origin_area_id=creator.area_id,
        created_by=creator.id,
        status=DocumentStatus.pending,
    )
    db.add(document)
    db.flush()
    db.add(
        HistoryEntry(
            document_id=document.id,
            company_id=document.company_id,
            user_id=creator.id,
            action=HistoryAction.created,
            to_area_id=area.id,
            to_area_name=area.name,
            to_user_id=user.id if user else None,
            to_user_name=user.full_name if user else None,
            comment="Documento subido al sistema",
        )
    )
    db.commit()
    db.refresh(document)
    return document


@pytest.fixture()
def company(db_session):
    return make_company(db_session)


@pytest.fixture()
def area(db_session, company):
    return make_area(db_session, company, "Finance")


@pytest.fixture()
def other_area(db_session, company):
    return make_area(db_session, company, "Legal")


@pytest.fixture()
def admin(db_session, company, area):
    return make_user(
        db_session, company, full_name="Alice Admin", role=UserRole.admin, area=area
    )


@pytest.fixture()
def person(db_session, company, other_area):
    return make_user(db_session, company, full_name="Jane Doe", area=other_area)


@pytest.fixture()
def document(db_session, admin, area):
    return make_document(db_session, admin, area)


@pytest.fixture()
def fake_storage():
    mock = MagicMock()
    mock.generate_storage_key.side_effect = StorageService.generate_storage_key
    mock.upload.return_value = None
    mock.download.return_value = b"%PDF-1.4 test"
    mock.create_signed_read_url.return_value = "https://storage.example.com/signed"
    with patch("doctrack.services.documents.storage", mock):
        yield mock


@pytest.fixture()
def current_user(admin):
    return admin


@pytest.fixture()
def client(db_session, current_user):
    from doctrack.api.deps import get_current_user, get_db
    from doctrack.main import app

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = lambda: current_user
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    return {"Authorization": "Bearer test-token"}


@pytest.fixture()
def company_factory(db_session):
    return lambda name="Other Co": make_company(db_session, name)


@pytest.fixture()
def area_factory(db_session):
    return lambda company, name: make_area(db_session, company, name)


@pytest.fixture()
def user_factory(db_session):
    def factory(company, **kwargs):
        return make_user(db_session, company, **kwargs)

    return factory


@pytest.fixture()
def document_factory(db_session):
    def factory(creator, area, user=None, title="Invoice Jan"):
        return make_document(db_session, creator, area, user=user, title=title)

    return factory
