import logging
import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from doctrack.errors import ConflictError, NotFoundError, ValidationError
from doctrack.models.tenancy import Company, User, UserRole, UserStatus
from doctrack.schemas.tenancy import CompanyRegister
from doctrack.services.auth import session_manager
from doctrack.services.common import coerce_uuid
from doctrack.services.event import EventType, publish_event

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    slug = re.sub(r"\s+", "-", name.strip().lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


class Companies:
    @staticmethod
    def register(db: Session, payload: CompanyRegister) -> tuple[Company, User]:
        """Create a tenant and its first administrator.

        The company row is flushed before the auth account is created so a
        slug collision fails fast; any later failure rolls the company back.
        """
        slug = slugify(payload.company_name)
        if not slug:
            raise ValidationError("Company name must contain letters or numbers")
        if db.scalar(select(Company.id).where(Company.slug == slug)):
            raise ConflictError("A company with this name already exists")

        company = Company(name=payload.company_name.strip(), slug=slug)
        try:
            db.add(company)
            db.flush()
        except IntegrityError:
            db.rollback()
            raise ConflictError("A company with this name already exists")

        try:
            identity = session_manager.sign_up(
                payload.email,
                payload.password,
                {"full_name": payload.full_name, "company_id": str(company.id)},
            )
        except Exception:
            db.rollback()
            logger.warning("Rolled back company %s after failed sign-up", slug)
            raise

        admin = User(
            id=identity.id,
            company_id=company.id,
            email=payload.email,
            full_name=payload.full_name,
            role=UserRole.admin,
            status=UserStatus.active,
        )
        try:
            db.add(admin)
            db.commit()
        except IntegrityError:
            db.rollback()
            session_manager.delete_account(identity.id)
            raise ConflictError("Email is already registered")
        db.refresh(company)
        db.refresh(admin)
        logger.info("Registered company %s (%s) with admin %s", company.id, slug, admin.id)
        publish_event(
            EventType.company_registered,
            entity_type="company",
            entity_id=company.id,
            company_id=company.id,
            actor_id=admin.id,
        )
        return company, admin

    @staticmethod
    def get(db: Session, company_id: str) -> Company:
        company = db.get(Company, coerce_uuid(company_id))
        if not company:
            raise NotFoundError("Company not found")
        return company


companies = Companies()
