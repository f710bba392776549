"""
Federated identity: Firebase ID token verification via google-auth.

The provider is only usable when FIREBASE_PROJECT_ID is configured; callers
check `available` (or catch IdentityProviderUnavailable) instead of getting a
fake success.
"""
import logging
from dataclasses import dataclass

import google.auth.exceptions
import google.auth.transport.requests
from google.oauth2 import id_token

from tracker.config import get_settings
from tracker.domain.errors import IdentityProviderUnavailable, IdentityTokenError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    uid: str
    email: str | None = None
    name: str | None = None
    picture: str | None = None


class FirebaseIdentityProvider:
    def __init__(self, project_id: str | None = None):
        self.project_id = project_id if project_id is not None else get_settings().FIREBASE_PROJECT_ID
        self._request = None

    @property
    def available(self) -> bool:
        return bool(self.project_id)

    def verify(self, token: str) -> VerifiedIdentity:
        if not self.available:
            raise IdentityProviderUnavailable()
        if self._request is None:
            self._request = google.auth.transport.requests.Request()

        try:
            claims = id_token.verify_firebase_token(token, self._request, audience=self.project_id)
        except ValueError as e:
            # expired, wrong audience, bad signature or malformed token
            logger.warning("Identity token rejected: %s", e)
            raise IdentityTokenError("Invalid or expired identity token")
        except google.auth.exceptions.TransportError:
            logger.exception("Could not fetch identity provider certificates")
            raise IdentityTokenError("Identity provider unreachable")

        if not claims or not claims.get("sub"):
            raise IdentityTokenError("Invalid or expired identity token")
        return VerifiedIdentity(
            uid=claims["sub"],
            email=claims.get("email"),
            name=claims.get("name"),
            picture=claims.get("picture"),
        )


def get_identity_provider() -> FirebaseIdentityProvider:
    return FirebaseIdentityProvider()
