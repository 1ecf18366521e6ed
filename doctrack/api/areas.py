from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from doctrack.api.deps import get_current_user, get_db
from doctrack.models.tenancy import User
from doctrack.schemas.common import ListResponse
from doctrack.schemas.tenancy import AreaCreate, AreaRead, AreaUpdate, UserRead
from doctrack.services.areas import areas
from doctrack.services.users import users

router = APIRouter(prefix="/areas", tags=["areas"])


@router.post("", response_model=AreaRead, status_code=status.HTTP_201_CREATED)
def create_area(
    payload: AreaCreate,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return areas.create(db, actor, payload)


@router.get("", response_model=ListResponse[AreaRead])
def list_areas(
    search: str | None = None,
    order_by: str = Query(default="name"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return areas.list_response(
        db, actor.company_id, search, order_by, order_dir, limit, offset
    )


@router.get("/{area_id}", response_model=AreaRead)
def get_area(
    area_id: str,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return areas.get(db, actor.company_id, area_id)


@router.get("/{area_id}/derivation-targets", response_model=list[UserRead])
def list_derivation_targets(
    area_id: str,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    areas.get(db, actor.company_id, area_id)
    return users.list_derivation_targets(db, actor.company_id, area_id)


@router.patch("/{area_id}", response_model=AreaRead)
def update_area(
    area_id: str,
    payload: AreaUpdate,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return areas.update(db, actor, area_id, payload)


@router.delete("/{area_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_area(
    area_id: str,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    areas.delete(db, actor, area_id)
