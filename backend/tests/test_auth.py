import json
from urllib.parse import parse_qs, urlparse

import pytest
from sqlalchemy import select

from backend.app.core.security import create_access_token, decode_access_token
from backend.app.db.models.core_types import AuditAction, UserRole
from backend.app.db.models.models_v1 import AuditLog, Organization, User
from backend.services import auth as auth_service
from backend.services import oauth
from backend.services.errors import AuthError, ConflictError


def _headers(token):
    return {"Authorization": f"Bearer {token}"}


def _register(client, org="Acme", email="admin@acme.com", password="secret123", name="Ada Admin"):
    return client.post(
        "/v1/auth/register",
        json={"organization_name": org, "email": email, "password": password, "name": name},
    )


# ---------- register / login ----------
def test_register_creates_organization_and_admin(client):
    resp = _register(client)
    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "ADMIN"
    assert body["user"]["organization_name"] == "Acme"
    assert body["user"]["organization"]["name"] == "Acme"

    claims = decode_access_token(body["access_token"])
    assert claims["sub"] == str(body["user"]["id"])
    assert claims["organizationId"] == body["user"]["organization_id"]
    assert claims["role"] == "ADMIN"


def test_register_rejects_duplicate_organization_and_email(client):
    assert _register(client).status_code == 200

    resp = _register(client, org="acme", email="other@acme.com")
    assert resp.status_code == 409
    assert "Organization with this name already exists" in resp.json()["detail"]

    resp = _register(client, org="Globex", email="ADMIN@acme.com")
    assert resp.status_code == 409
    assert "email already exists" in resp.json()["detail"]


def test_register_validates_payload(client):
    resp = _register(client, email="not-an-email")
    assert resp.status_code == 422
    resp = _register(client, password="123")
    assert resp.status_code == 422


def test_login_and_me(client, admin_auth):
    resp = client.post(
        "/v1/auth/login",
        json={"organization_name": "acme", "email": "Admin@Acme.com", "password": "secret123"},
    )
    assert resp.status_code == 200
    token = resp.json()["access_token"]

    resp = client.get("/v1/auth/me", headers=_headers(token))
    assert resp.status_code == 200
    me = resp.json()
    assert me["email"] == "admin@acme.com"
    assert me["role"] == "ADMIN"


@pytest.mark.parametrize(
    "org, email, password",
    [
        ("Acme", "admin@acme.com", "wrongpass"),
        ("Nope Inc", "admin@acme.com", "secret123"),
        ("Acme", "ghost@acme.com", "secret123"),
    ],
)
def test_login_failures_share_one_message(client, admin_auth, org, email, password):
    resp = client.post(
        "/v1/auth/login",
        json={"organization_name": org, "email": email, "password": password},
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == auth_service.INVALID_CREDENTIALS


def test_login_is_audited(db_session, admin_auth):
    auth_service.login(
        db_session,
        organization_name="Acme",
        email="admin@acme.com",
        password="secret123",
        ip_address="10.0.0.1",
    )
    log = db_session.execute(select(AuditLog).where(AuditLog.action == AuditAction.login)).scalar_one()
    assert log.entity_type == "User"
    assert log.entity_id == str(admin_auth["user"]["id"])
    assert log.ip_address == "10.0.0.1"


def test_login_service_raises_auth_error(db_session, admin_auth):
    with pytest.raises(AuthError):
        auth_service.login(db_session, organization_name="Acme", email="admin@acme.com", password="nope123")


# ---------- tokens ----------
def test_missing_invalid_and_stale_tokens_are_401(client, admin_auth):
    assert client.get("/v1/auth/me").status_code == 401
    assert client.get("/v1/auth/me", headers=_headers("garbage")).status_code == 401

    # well-formed token for a user in another organization
    forged = create_access_token(
        user_id=admin_auth["user"]["id"],
        email="admin@acme.com",
        role="ADMIN",
        organization_id=admin_auth["user"]["organization_id"] + 1,
    )
    assert client.get("/v1/auth/me", headers=_headers(forged)).status_code == 401


# ---------- staff ----------
def test_admin_registers_staff_who_cannot_use_admin_routes(client, admin_headers):
    resp = client.post(
        "/v1/auth/register-staff",
        json={"email": "staff@acme.com", "password": "staffpass", "name": "Sam Staff"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "STAFF"

    resp = client.post(
        "/v1/auth/register-staff",
        json={"email": "staff@acme.com", "password": "staffpass", "name": "Sam Again"},
        headers=admin_headers,
    )
    assert resp.status_code == 409

    resp = client.post(
        "/v1/auth/login",
        json={"organization_name": "Acme", "email": "staff@acme.com", "password": "staffpass"},
    )
    staff = _headers(resp.json()["access_token"])

    assert client.get("/v1/users", headers=staff).status_code == 403
    assert client.get("/v1/audit-logs", headers=staff).status_code == 403
    resp = client.post(
        "/v1/auth/register-staff",
        json={"email": "x@acme.com", "password": "staffpass", "name": "X"},
        headers=staff,
    )
    assert resp.status_code == 403
    assert client.get("/v1/products", headers=staff).status_code == 200


def test_register_staff_service_requires_admin(db_session, admin_auth):
    admin = db_session.get(User, admin_auth["user"]["id"])
    staff = auth_service.register_staff(
        db_session, admin, email="staff@acme.com", password="staffpass", name="Sam"
    )
    assert staff.role is UserRole.staff
    assert staff.organization_id == admin.organization_id

    with pytest.raises(AuthError):
        auth_service.register_staff(db_session, staff, email="y@acme.com", password="pw1234", name="Y")

    with pytest.raises(ConflictError):
        auth_service.register_staff(db_session, admin, email="STAFF@acme.com", password="pw1234", name="Z")


# ---------- users ----------
def test_list_and_delete_users(client, admin_auth, admin_headers):
    resp = client.post(
        "/v1/auth/register-staff",
        json={"email": "staff@acme.com", "password": "staffpass", "name": "Sam Staff"},
        headers=admin_headers,
    )
    staff_id = resp.json()["id"]

    resp = client.get("/v1/users", headers=admin_headers)
    assert resp.status_code == 200
    assert {u["email"] for u in resp.json()} == {"admin@acme.com", "staff@acme.com"}

    resp = client.delete(f"/v1/users/{admin_auth['user']['id']}", headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot delete your own account"

    resp = client.delete(f"/v1/users/{staff_id}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["email"] == "staff@acme.com"

    resp = client.delete(f"/v1/users/{staff_id}", headers=admin_headers)
    assert resp.status_code == 404


def test_admin_can_remove_another_admin(client, admin_headers):
    resp = client.post(
        "/v1/auth/register-staff",
        json={"email": "boss@acme.com", "password": "bosspass", "name": "Boss", "role": "ADMIN"},
        headers=admin_headers,
    )
    assert resp.json()["role"] == "ADMIN"

    resp = client.delete(f"/v1/users/{resp.json()['id']}", headers=admin_headers)
    assert resp.status_code == 200

    resp = client.get("/v1/users", headers=admin_headers)
    assert [u["email"] for u in resp.json()] == ["admin@acme.com"]


# ---------- oauth ----------
def test_oauth_status_reports_unconfigured_providers(client):
    resp = client.get("/v1/auth/oauth-status")
    assert resp.status_code == 200
    assert resp.json() == {"google": {"enabled": False}, "facebook": {"enabled": False}}


def test_oauth_start_unconfigured_and_unknown(client):
    resp = client.get("/v1/auth/google", follow_redirects=False)
    assert resp.status_code in (302, 307)
    assert "error=oauth_not_configured" in resp.headers["location"]
    assert "provider=google" in resp.headers["location"]

    resp = client.get("/v1/auth/myspace", follow_redirects=False)
    assert resp.status_code == 404


def _enabled_google():
    return oauth.OAuthProvider(
        name="google",
        client_id="real-id",
        client_secret="real-secret",
        callback_url="http://testserver/v1/auth/google/callback",
        authorize_url="https://accounts.example/auth",
        token_url="https://accounts.example/token",
        profile_url="https://accounts.example/me",
        scope="email profile",
    )


def test_oauth_provider_helpers():
    provider = _enabled_google()
    assert provider.enabled
    url = provider.authorization_url()
    params = parse_qs(urlparse(url).query)
    assert params["client_id"] == ["real-id"]
    assert params["response_type"] == ["code"]
    assert params["access_type"] == ["offline"]

    placeholder = oauth.OAuthProvider(**{**provider.__dict__, "client_id": "dummy-client-id"})
    assert not placeholder.enabled


def test_oauth_callback_creates_organization_and_redirects(client, db_session, monkeypatch):
    monkeypatch.setattr(oauth, "get_provider", lambda name: _enabled_google())
    monkeypatch.setattr(
        oauth,
        "fetch_profile",
        lambda provider, code: {"email": "Jo@Example.com", "name": "Jo", "provider": "google"},
    )

    resp = client.get("/v1/auth/google/callback", params={"code": "abc"}, follow_redirects=False)
    assert resp.status_code in (302, 307)
    location = urlparse(resp.headers["location"])
    assert location.path == "/auth/callback"
    query = parse_qs(location.query)
    user = json.loads(query["user"][0])
    assert user["email"] == "jo@example.com"
    assert user["role"] == "ADMIN"
    assert decode_access_token(query["token"][0])["sub"] == str(user["id"])

    org = db_session.get(Organization, user["organization_id"])
    assert org.name.startswith("Jo's Organization")

    # second login reuses the account
    resp = client.get("/v1/auth/google/callback", params={"code": "def"}, follow_redirects=False)
    again = json.loads(parse_qs(urlparse(resp.headers["location"]).query)["user"][0])
    assert again["id"] == user["id"]


def test_oauth_callback_failures_redirect_to_login(client, monkeypatch):
    monkeypatch.setattr(oauth, "get_provider", lambda name: _enabled_google())

    resp = client.get("/v1/auth/google/callback", params={"error": "access_denied"}, follow_redirects=False)
    assert "error=oauth_failed" in resp.headers["location"]

    def _fail(provider, code):
        raise AuthError("OAuth code exchange failed")

    monkeypatch.setattr(oauth, "fetch_profile", _fail)
    resp = client.get("/v1/auth/google/callback", params={"code": "abc"}, follow_redirects=False)
    assert "error=oauth_failed" in resp.headers["location"]

    monkeypatch.setattr(oauth, "fetch_profile", lambda provider, code: {"name": "No Mail"})
    resp = client.get("/v1/auth/google/callback", params={"code": "abc"}, follow_redirects=False)
    assert "error=oauth_failed" in resp.headers["location"]
