"""
FastAPI dependencies (DB session, authentication)
"""
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from tracker.auth import read_token
from tracker.domain.errors import AuthError
from tracker.infrastructure.db.models import User
from tracker.infrastructure.db.session import get_db as _get_db
from tracker.infrastructure.identity import FirebaseIdentityProvider, get_identity_provider


# Re-export get_db for the routers (and for dependency_overrides in tests)
get_db = _get_db

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the caller from `Authorization: Bearer <session token>`

    Raises:
        AuthError: missing, invalid or expired token, or the user is gone
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("No token, authorization denied")

    user_id = read_token(credentials.credentials)
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthError("User not found")
    return user


def get_identity() -> FirebaseIdentityProvider:
    return get_identity_provider()
