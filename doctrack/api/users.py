from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from doctrack.api.deps import get_current_user, get_db
from doctrack.models.tenancy import User
from doctrack.schemas.common import ListResponse
from doctrack.schemas.tenancy import (
    UserAreaUpdate,
    UserCreate,
    UserRead,
    UserRoleUpdate,
    UserStatusUpdate,
)
from doctrack.services.users import users

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserRead)
def read_me(actor: User = Depends(get_current_user)):
    return actor


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return users.create(db, actor, payload)


@router.get("", response_model=ListResponse[UserRead])
def list_users(
    area_id: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    role: str | None = None,
    search: str | None = None,
    order_by: str = Query(default="full_name"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return users.list_response(
        db,
        actor.company_id,
        area_id,
        status_filter,
        role,
        search,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: str,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return users.get(db, actor.company_id, user_id)


@router.patch("/{user_id}/role", response_model=UserRead)
def update_role(
    user_id: str,
    payload: UserRoleUpdate,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return users.update_role(db, actor, user_id, payload.role)


@router.patch("/{user_id}/status", response_model=UserRead)
def update_status(
    user_id: str,
    payload: UserStatusUpdate,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return users.update_status(db, actor, user_id, payload.status)


@router.patch("/{user_id}/area", response_model=UserRead)
def update_area(
    user_id: str,
    payload: UserAreaUpdate,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    area_id = str(payload.area_id) if payload.area_id else None
    return users.update_area(db, actor, user_id, area_id)
