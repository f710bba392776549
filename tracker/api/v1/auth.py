"""
Authentication routes (register, login, federated sign-in, profile)
"""
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from tracker.api.deps import get_current_user, get_db, get_identity
from tracker.api.v1.schemas import CamelModel
from tracker.application.users import (
    FederatedSignInUseCase,
    LoginUseCase,
    RegisterUserUseCase,
    SaveAvatarUseCase,
    UpdateSettingsUseCase,
    effective_settings,
)
from tracker.auth import issue_token
from tracker.config import get_settings
from tracker.infrastructure.db.models import User
from tracker.infrastructure.identity import FirebaseIdentityProvider


router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(CamelModel):
    email: str = ""
    password: str = ""
    display_name: str | None = None


class LoginRequest(CamelModel):
    email: str = ""
    password: str = ""


class VerifyTokenRequest(CamelModel):
    token: str = ""
    firebase_uid: str | None = None
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None


class UserResponse(CamelModel):
    id: int
    email: str
    display_name: str | None
    photo_url: str | None
    is_federated: bool
    settings: dict[str, Any]
    last_login_at: datetime | None
    created_at: datetime | None


class AuthResponse(CamelModel):
    token: str
    user: UserResponse


class SettingsResponse(CamelModel):
    message: str
    settings: dict[str, Any]


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        photo_url=user.photo_url,
        is_federated=bool(user.is_federated),
        settings=effective_settings(user),
        last_login_at=user.last_login_at,
        created_at=user.created_at,
    )


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(token=issue_token(user), user=_user_response(user))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    user = RegisterUserUseCase(db).execute(req.email, req.password, req.display_name)
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user = LoginUseCase(db).execute(req.email, req.password)
    return _auth_response(user)


@router.post("/verify-token", response_model=AuthResponse)
def verify_token(
    req: VerifyTokenRequest,
    db: Session = Depends(get_db),
    provider: FirebaseIdentityProvider = Depends(get_identity),
):
    """Exchange an identity-provider ID token for a session token"""
    user = FederatedSignInUseCase(db, provider).execute(
        token=req.token,
        email=req.email,
        display_name=req.display_name,
        photo_url=req.photo_url,
    )
    return _auth_response(user)


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return _user_response(user)


@router.patch("/settings", response_model=SettingsResponse)
def update_settings(
    changes: dict[str, Any],
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    settings = UpdateSettingsUseCase(db).execute(user, changes)
    return SettingsResponse(message="Settings updated successfully", settings=settings)


@router.post("/upload-photo", response_model=UserResponse)
def upload_photo(
    photo: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # one byte past the limit is enough to reject an oversized file
    data = photo.file.read(get_settings().MAX_UPLOAD_BYTES + 1)
    user = SaveAvatarUseCase(db).execute(user, photo.content_type, data)
    return _user_response(user)
