"""
Tests for Auth API endpoints
"""
import os

import pytest

from tracker.api.deps import get_identity
from tracker.config import get_settings
from tracker.domain.errors import IdentityTokenError
from tracker.infrastructure.identity import VerifiedIdentity


class FakeIdentityProvider:
    """Stands in for Firebase: maps token -> identity"""

    def __init__(self, identities):
        self.identities = identities

    @property
    def available(self):
        return True

    def verify(self, token):
        if token not in self.identities:
            raise IdentityTokenError("Invalid or expired identity token")
        return self.identities[token]


@pytest.fixture
def identity_client(client):
    provider = FakeIdentityProvider({
        "alice-token": VerifiedIdentity(uid="fb-1", email="alice@example.com", name="Alice A", picture="https://img/a.png"),
        "carol-token": VerifiedIdentity(uid="fb-2", email="carol@example.com", name="Carol"),
    })
    client.app.dependency_overrides[get_identity] = lambda: provider
    return client


class TestPasswordAuth:
    def test_register_and_login(self, client):
        response = client.post(
            "/api/auth/register",
            json={"email": "New@Example.com", "password": "secret1", "displayName": "Newbie"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["token"]
        assert data["user"]["email"] == "new@example.com"
        assert data["user"]["displayName"] == "Newbie"
        assert data["user"]["settings"]["theme"] == "light"

        response = client.post("/api/auth/login", json={"email": "new@example.com", "password": "secret1"})
        assert response.status_code == 200
        token = response.json()["token"]
        assert response.json()["user"]["lastLoginAt"] is not None

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["email"] == "new@example.com"

    def test_duplicate_email(self, client):
        body = {"email": "dup@example.com", "password": "secret1"}
        assert client.post("/api/auth/register", json=body).status_code == 201
        response = client.post("/api/auth/register", json=body)
        assert response.status_code == 400
        assert response.json() == {"message": "User already exists"}

    def test_register_validation(self, client):
        response = client.post("/api/auth/register", json={"email": "nope", "password": "123"})
        assert response.status_code == 400
        assert {e["field"] for e in response.json()["errors"]} == {"email", "password"}

    def test_register_overlong_profile_fields(self, client):
        response = client.post(
            "/api/auth/register",
            json={"email": "a" * 250 + "@example.com", "password": "secret1", "displayName": "n" * 256},
        )
        assert response.status_code == 400
        assert {e["field"] for e in response.json()["errors"]} == {"email", "displayName"}

    def test_bad_credentials(self, client):
        client.post("/api/auth/register", json={"email": "pw@example.com", "password": "secret1"})
        response = client.post("/api/auth/login", json={"email": "pw@example.com", "password": "wrong!"})
        assert response.status_code == 401
        assert response.json() == {"message": "Invalid credentials"}

        response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "secret1"})
        assert response.status_code == 401


class TestFederatedSignIn:
    def test_unconfigured_provider(self, client):
        response = client.post("/api/auth/verify-token", json={"token": "whatever"})
        assert response.status_code == 500
        assert response.json() == {"message": "Authentication service unavailable"}

    def test_links_existing_account_by_email(self, identity_client, user):
        response = identity_client.post("/api/auth/verify-token", json={"token": "alice-token"})
        assert response.status_code == 200
        data = response.json()["user"]
        assert data["id"] == user.id
        assert data["isFederated"] is True
        assert data["displayName"] == "Alice A"
        assert data["photoUrl"] == "https://img/a.png"

    def test_creates_account(self, identity_client):
        response = identity_client.post("/api/auth/verify-token", json={"token": "carol-token"})
        assert response.status_code == 200
        first = response.json()["user"]
        assert first["email"] == "carol@example.com"

        again = identity_client.post("/api/auth/verify-token", json={"token": "carol-token"}).json()["user"]
        assert again["id"] == first["id"]

    def test_rejected_token(self, identity_client):
        response = identity_client.post("/api/auth/verify-token", json={"token": "forged"})
        assert response.status_code == 401

    def test_token_required(self, identity_client):
        response = identity_client.post("/api/auth/verify-token", json={})
        assert response.status_code == 400


class TestProfile:
    def test_me(self, client, auth_headers, user):
        data = client.get("/api/auth/me", headers=auth_headers).json()
        assert data["id"] == user.id
        assert data["isFederated"] is False
        assert data["settings"]["notifications"]["email"]["dailyReminders"] is True

    def test_settings_deep_merge(self, client, auth_headers):
        response = client.patch(
            "/api/auth/settings",
            json={"theme": "dark", "notifications": {"email": {"weeklyReports": False}}},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Settings updated successfully"
        assert data["settings"]["theme"] == "dark"
        assert data["settings"]["notifications"]["email"]["weeklyReports"] is False
        assert data["settings"]["notifications"]["email"]["dailyReminders"] is True

        me = client.get("/api/auth/me", headers=auth_headers).json()
        assert me["settings"]["theme"] == "dark"

    def test_invalid_theme(self, client, auth_headers):
        response = client.patch("/api/auth/settings", json={"theme": "neon"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "theme"


class TestAvatarUpload:
    @pytest.fixture(autouse=True)
    def upload_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr(get_settings(), "UPLOAD_DIR", str(tmp_path))
        return tmp_path

    def test_upload_image(self, client, auth_headers, user, upload_dir):
        response = client.post(
            "/api/auth/upload-photo",
            files={"photo": ("me.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
            headers=auth_headers,
        )
        assert response.status_code == 200
        photo_url = response.json()["photoUrl"]
        assert photo_url.startswith(f"/uploads/{user.id}-")
        assert photo_url.endswith(".png")
        assert os.path.exists(upload_dir / photo_url.rsplit("/", 1)[1])

    def test_rejects_non_image(self, client, auth_headers):
        response = client.post(
            "/api/auth/upload-photo",
            files={"photo": ("notes.txt", b"hello", "text/plain")},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "photo"

    def test_rejects_oversized_file(self, client, auth_headers, upload_dir, monkeypatch):
        monkeypatch.setattr(get_settings(), "MAX_UPLOAD_BYTES", 10)
        response = client.post(
            "/api/auth/upload-photo",
            files={"photo": ("big.png", b"\x89PNG" + b"\x00" * 60, "image/png")},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["errors"] == [{"field": "photo", "message": "File is too large"}]
        assert os.listdir(upload_dir) == []
