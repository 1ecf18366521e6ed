from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from doctrack.api.deps import get_bearer_token, get_current_user, get_db
from doctrack.models.tenancy import User
from doctrack.schemas.tenancy import (
    CompanyRead,
    CompanyRegister,
    RegistrationRead,
    SessionRead,
    SignInRequest,
)
from doctrack.services.auth import session_manager
from doctrack.services.companies import companies

router = APIRouter(tags=["companies"])


@router.post(
    "/companies/register",
    response_model=RegistrationRead,
    status_code=status.HTTP_201_CREATED,
)
def register_company(payload: CompanyRegister, db: Session = Depends(get_db)):
    company, admin = companies.register(db, payload)
    return {"company": company, "user": admin}


@router.get("/companies/current", response_model=CompanyRead)
def current_company(
    actor: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    return companies.get(db, actor.company_id)


@router.post("/auth/sign-in", response_model=SessionRead)
def sign_in(payload: SignInRequest):
    session = session_manager.sign_in(payload.email, payload.password)
    return {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "expires_in": session.expires_in,
        "user_id": session.user.id,
        "email": session.user.email,
    }


@router.post("/auth/sign-out", status_code=status.HTTP_204_NO_CONTENT)
def sign_out(token: str = Depends(get_bearer_token)):
    session_manager.sign_out(token)
