from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from doctrack.errors import ConflictError, NotFoundError, PermissionDeniedError
from doctrack.models.tenancy import Area, User, UserRole, UserStatus
from doctrack.schemas.tenancy import UserCreate
from doctrack.services.auth import session_manager
from doctrack.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    ensure_role,
    parse_enum,
)
from doctrack.services.event import EventType, publish_event
from doctrack.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

ADMIN_FLOOR_MESSAGE = "At least one active administrator must remain"


def _is_active_admin(role: UserRole, status: UserStatus) -> bool:
    return role == UserRole.admin and status == UserStatus.active


class Users(ListResponseMixin):
    @staticmethod
    def get(db: Session, company_id, user_id: str) -> User:
        user = db.get(User, coerce_uuid(user_id))
        if not user or user.company_id != coerce_uuid(company_id):
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def list(
        db: Session,
        company_id,
        area_id: str | None,
        status: str | None,
        role: str | None,
        search: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[User]:
        stmt = select(User).where(User.company_id == coerce_uuid(company_id))
        if area_id is not None:
            stmt = stmt.where(User.area_id == coerce_uuid(area_id))
        if status is not None:
            stmt = stmt.where(User.status == parse_enum(UserStatus, status, "status"))
        if role is not None:
            stmt = stmt.where(User.role == parse_enum(UserRole, role, "role"))
        if search:
            pattern = f"%{search.replace('%', '').replace('_', '')}%"
            stmt = stmt.where(User.full_name.ilike(pattern) | User.email.ilike(pattern))
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "full_name": User.full_name,
                "email": User.email,
                "created_at": User.created_at,
            },
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def list_derivation_targets(db: Session, company_id, area_id: str) -> list[User]:
        """Users of an area that may receive a derivation (active or pending)."""
        stmt = (
            select(User)
            .where(
                User.company_id == coerce_uuid(company_id),
                User.area_id == coerce_uuid(area_id),
                User.status.in_([UserStatus.active, UserStatus.pending]),
            )
            .order_by(User.full_name.asc())
        )
        return db.scalars(stmt).all()

    @staticmethod
    def create(db: Session, actor: User, payload: UserCreate) -> User:
        ensure_role(actor, UserRole.admin, UserRole.supervisor)
        role = parse_enum(UserRole, payload.role, "role")
        if payload.area_id is not None:
            area = db.get(Area, payload.area_id)
            if not area or area.company_id != actor.company_id:
                raise NotFoundError("Area not found")

        exists = db.scalar(
            select(User.id).where(
                User.company_id == actor.company_id, User.email == payload.email
            )
        )
        if exists:
            raise ConflictError("Email is already registered")

        identity = session_manager.sign_up(
            payload.email,
            payload.password,
            {"full_name": payload.full_name, "company_id": str(actor.company_id)},
        )
        user = User(
            id=identity.id,
            company_id=actor.company_id,
            email=payload.email,
            full_name=payload.full_name,
            position=payload.position,
            area_id=payload.area_id,
            role=role,
            status=UserStatus.active,
        )
        try:
            db.add(user)
            db.commit()
        except IntegrityError:
            db.rollback()
            session_manager.delete_account(identity.id)
            raise ConflictError("Email is already registered")
        db.refresh(user)
        logger.info("Created user %s in company %s", user.id, user.company_id)
        publish_event(
            EventType.user_created,
            entity_type="user",
            entity_id=user.id,
            company_id=user.company_id,
            actor_id=actor.id,
        )
        return user

    @staticmethod
    def _ensure_admin_floor(
        db: Session, user: User, new_role: UserRole, new_status: UserStatus
    ) -> None:
        if not _is_active_admin(user.role, user.status):
            return
        if _is_active_admin(new_role, new_status):
            return
        # Lock the company's active admins so concurrent demotions serialise.
        active_admins = db.scalars(
            select(User)
            .where(
                User.company_id == user.company_id,
                User.role == UserRole.admin,
                User.status == UserStatus.active,
            )
            .with_for_update()
        ).all()
        if len(active_admins) <= 1:
            logger.warning(
                "Refused change on user %s: would leave company %s without admins",
                user.id,
                user.company_id,
            )
            raise PermissionDeniedError(ADMIN_FLOOR_MESSAGE)

    @staticmethod
    def update_role(db: Session, actor: User, user_id: str, role: str) -> User:
        ensure_role(actor, UserRole.admin)
        user = Users.get(db, actor.company_id, user_id)
        new_role = parse_enum(UserRole, role, "role")
        Users._ensure_admin_floor(db, user, new_role, user.status)
        user.role = new_role
        db.commit()
        db.refresh(user)
        logger.info("Changed role of user %s to %s", user.id, new_role.value)
        publish_event(
            EventType.user_role_changed,
            entity_type="user",
            entity_id=user.id,
            company_id=user.company_id,
            actor_id=actor.id,
            payload={"role": new_role.value},
        )
        return user

    @staticmethod
    def update_status(db: Session, actor: User, user_id: str, status: str) -> User:
        ensure_role(actor, UserRole.admin)
        user = Users.get(db, actor.company_id, user_id)
        new_status = parse_enum(UserStatus, status, "status")
        Users._ensure_admin_floor(db, user, user.role, new_status)
        user.status = new_status
        db.commit()
        db.refresh(user)
        logger.info("Changed status of user %s to %s", user.id, new_status.value)
        publish_event(
            EventType.user_status_changed,
            entity_type="user",
            entity_id=user.id,
            company_id=user.company_id,
            actor_id=actor.id,
            payload={"status": new_status.value},
        )
        return user

    @staticmethod
    def update_area(db: Session, actor: User, user_id: str, area_id: str | None) -> User:
        ensure_role(actor, UserRole.admin)
        user = Users.get(db, actor.company_id, user_id)
        if area_id is not None:
            area = db.get(Area, coerce_uuid(area_id))
            if not area or area.company_id != actor.company_id:
                raise NotFoundError("Area not found")
            user.area_id = area.id
        else:
            user.area_id = None
        db.commit()
        db.refresh(user)
        logger.info("Moved user %s to area %s", user.id, user.area_id)
        publish_event(
            EventType.user_area_changed,
            entity_type="user",
            entity_id=user.id,
            company_id=user.company_id,
            actor_id=actor.id,
        )
        return user

    @staticmethod
    def count_active(db: Session, company_id) -> int:
        return db.scalar(
            select(func.count(User.id)).where(
                User.company_id == coerce_uuid(company_id),
                User.status == UserStatus.active,
            )
        )


users = Users()
