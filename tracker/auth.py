from passlib.context import CryptContext
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.orm import Session

from tracker.config import get_settings
from tracker.domain.errors import AuthError
from tracker.infrastructure.db.models import User

# pbkdf2_sha256 has no native deps
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

TOKEN_SALT = "tracker-session"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(get_settings().SECRET_KEY, salt=TOKEN_SALT)


def issue_token(user: User) -> str:
    """Signed, timestamped session token carrying the user id"""
    return _serializer().dumps({"uid": user.id})


def read_token(token: str) -> int:
    """Return the user id from a session token or raise AuthError"""
    max_age = get_settings().SESSION_TTL_DAYS * 24 * 3600
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        raise AuthError("Session expired")
    except BadSignature:
        raise AuthError("Invalid token")
    return int(payload["uid"])
