from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from doctrack.api.deps import get_current_user, get_db
from doctrack.models.tenancy import User
from doctrack.schemas.documents import DashboardCounters, DashboardRead
from doctrack.services.dashboard import dashboard

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardRead)
def get_dashboard(
    actor: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    return dashboard.overview(db, actor.company_id)


@router.get("/counters", response_model=DashboardCounters)
def get_counters(
    actor: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    return dashboard.counters(db, actor.company_id)
