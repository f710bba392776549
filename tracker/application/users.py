"""
User accounts: registration, password login, federated sign-in, settings, avatar.
"""
import copy
import logging
import os
import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy.orm import Session

from tracker.auth import get_user_by_email, hash_password, verify_password
from tracker.config import get_settings
from tracker.domain.errors import AuthError, ConflictError, FieldError, ValidationFailed, require
from tracker.infrastructure.db.models import User
from tracker.infrastructure.identity import FirebaseIdentityProvider
from tracker.utils.dates import utcnow

logger = logging.getLogger(__name__)

THEMES = ("light", "dark", "system")
MIN_PASSWORD_LENGTH = 6
EMAIL_MAX_LENGTH = 255
DISPLAY_NAME_MAX_LENGTH = 255

DEFAULT_SETTINGS: Dict[str, Any] = {
    "theme": "light",
    "notifications": {
        "email": {
            "dailyReminders": True,
            "weeklyReports": True,
            "goalDeadlines": True,
            "taskReminders": True,
            "habitReminders": True,
            "achievements": True,
        },
        "push": {
            "urgentTasks": True,
            "goalDeadlines": True,
            "habitReminders": False,
            "achievements": True,
        },
        "frequency": {
            "reminderTime": "08:00",
            "reportDay": "sunday",
            "snoozeMinutes": 30,
        },
    },
}

IMAGE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class UserValidationError(ValidationFailed):
    pass


def _deep_merge(base: dict, changes: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in (changes or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def effective_settings(user: User) -> Dict[str, Any]:
    """Stored settings with defaults filled in"""
    return _deep_merge(DEFAULT_SETTINGS, user.settings or {})


def email_enabled(user: User, toggle: str) -> bool:
    return bool(effective_settings(user)["notifications"]["email"].get(toggle, True))


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _profile_errors(email: str, display_name: str | None) -> list[FieldError]:
    errors = []
    if len(email) > EMAIL_MAX_LENGTH:
        errors.append(FieldError("email", "Email cannot exceed 255 characters"))
    if display_name and len(display_name.strip()) > DISPLAY_NAME_MAX_LENGTH:
        errors.append(FieldError("displayName", "Display name cannot exceed 255 characters"))
    return errors


def _touch_login(user: User, now: datetime) -> None:
    user.last_login_at = now


class RegisterUserUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, email: str, password: str, display_name: str | None = None) -> User:
        email = _normalize_email(email)
        errors = []
        if not email or "@" not in email:
            errors.append(FieldError("email", "Please enter a valid email"))
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            errors.append(FieldError("password", "Password must be at least 6 characters"))
        errors.extend(_profile_errors(email, display_name))
        require(errors, UserValidationError)

        if get_user_by_email(self.db, email):
            raise ConflictError("User already exists")

        user = User(
            email=email,
            password_hash=hash_password(password),
            display_name=(display_name or "").strip() or email.split("@")[0],
            settings={},
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Registered user %d", user.id)
        return user


class LoginUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, email: str, password: str, now: datetime | None = None) -> User:
        user = get_user_by_email(self.db, email or "")
        if not user or not verify_password(password, user.password_hash):
            raise AuthError("Invalid credentials")
        _touch_login(user, now or utcnow())
        self.db.commit()
        self.db.refresh(user)
        return user


class FederatedSignInUseCase:
    """
    Exchange a verified identity-provider token for a local account.

    The account is matched by provider uid, then by email; a match by email
    gets the uid linked. Name and photo from the provider overwrite local ones.
    """

    def __init__(self, db: Session, provider: FirebaseIdentityProvider):
        self.db = db
        self.provider = provider

    def execute(
        self,
        token: str,
        email: str | None = None,
        display_name: str | None = None,
        photo_url: str | None = None,
        now: datetime | None = None,
    ) -> User:
        require([FieldError("token", "Token is required")] if not token else [], UserValidationError)
        identity = self.provider.verify(token)

        email = _normalize_email(identity.email or email)
        if not email:
            raise UserValidationError([FieldError("email", "Email is required")])
        require(_profile_errors(email, identity.name or display_name), UserValidationError)

        user = self.db.query(User).filter(User.firebase_uid == identity.uid).first()
        if user is None:
            user = get_user_by_email(self.db, email)

        if user is None:
            user = User(
                firebase_uid=identity.uid,
                email=email,
                display_name=identity.name or display_name or email.split("@")[0],
                photo_url=identity.picture or photo_url,
                is_federated=True,
                settings={},
            )
            self.db.add(user)
            logger.info("Creating federated account for uid %s", identity.uid)
        else:
            if not user.firebase_uid:
                user.firebase_uid = identity.uid
                user.is_federated = True
            if identity.name and user.display_name != identity.name:
                user.display_name = identity.name
            if identity.picture and user.photo_url != identity.picture:
                user.photo_url = identity.picture

        _touch_login(user, now or utcnow())
        self.db.commit()
        self.db.refresh(user)
        return user


class UpdateSettingsUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user: User, changes: Dict[str, Any]) -> Dict[str, Any]:
        theme = changes.get("theme")
        if theme is not None and theme not in THEMES:
            raise UserValidationError([FieldError("theme", f"'{theme}' is not a valid theme")])
        notifications = changes.get("notifications")
        if notifications is not None and not isinstance(notifications, dict):
            raise UserValidationError([FieldError("notifications", "Must be an object")])

        user.settings = _deep_merge(user.settings or {}, changes)
        self.db.commit()
        self.db.refresh(user)
        return effective_settings(user)


class UpdateNotificationPreferencesUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user: User, changes: Dict[str, Any]) -> Dict[str, Any]:
        settings = UpdateSettingsUseCase(self.db).execute(user, {"notifications": changes})
        return settings["notifications"]


class SaveAvatarUseCase:
    """Store an uploaded image under UPLOAD_DIR and point photo_url at it"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user: User, content_type: str | None, data: bytes) -> User:
        settings = get_settings()
        if not content_type or not content_type.startswith("image/"):
            raise UserValidationError([FieldError("photo", "Only image files are allowed")])
        if not data:
            raise UserValidationError([FieldError("photo", "File is empty")])
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise UserValidationError([FieldError("photo", "File is too large")])

        extension = IMAGE_EXTENSIONS.get(content_type, ".img")
        filename = f"{user.id}-{uuid.uuid4().hex}{extension}"
        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
        with open(os.path.join(settings.UPLOAD_DIR, filename), "wb") as fh:
            fh.write(data)

        user.photo_url = f"/uploads/{filename}"
        self.db.commit()
        self.db.refresh(user)
        return user
