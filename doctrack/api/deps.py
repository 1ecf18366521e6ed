from collections.abc import Generator

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from doctrack.db import SessionLocal
from doctrack.errors import PermissionDeniedError
from doctrack.models.tenancy import User, UserStatus
from doctrack.services.auth import AuthError, session_manager


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    if not authorization:
        raise AuthError("Missing bearer token")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Invalid authorization header")
    return token.strip()


def get_current_user(
    token: str = Depends(get_bearer_token), db: Session = Depends(get_db)
) -> User:
    identity = session_manager.current_user(token)
    if identity is None:
        raise AuthError("Invalid or expired session")
    user = db.get(User, identity.id)
    if user is None:
        raise AuthError("User profile not found")
    if user.status == UserStatus.inactive:
        raise PermissionDeniedError("User account is inactive")
    return user

