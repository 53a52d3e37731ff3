import uuid

from identity_platform.identity_service.db import SessionLocal
from identity_platform.identity_service.models import LoginLog, User


def unique_email():
    return f"user_{uuid.uuid4().hex[:8]}@example.com"


def register(client, email, password="secret1", confirm=None, phone="0912345678", full_name="Alice"):
    return client.post("/api/auth/register", json={
        "full_name": full_name,
        "email": email,
        "phone": phone,
        "password": password,
        "confirm_password": confirm if confirm is not None else password,
    })


def login(client, email, password="secret1"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def test_register_and_login(client):
    email = unique_email()
    reg = register(client, email)
    assert reg.status_code == 201
    body = reg.json()
    assert body["email"] == email
    assert body["message"] == "Registration successful. Please verify your email."

    resp = login(client, email)
    assert resp.status_code == 200
    data = resp.json()
    assert data["access_token"]
    assert data["refresh_token"]
    assert data["token_type"] == "bearer"
    assert data["user_id"] == body["user_id"]
    assert data["role_id"] == 5


def test_register_missing_fields(client):
    # Missing required fields should return 422
    response = client.post("/api/auth/register", json={"email": unique_email(), "password": "secret1"})
    assert response.status_code == 422


def test_register_rejects_invalid_phone_and_short_password(client):
    assert register(client, unique_email(), phone="12345").status_code == 422
    assert register(client, unique_email(), password="123").status_code == 422
    assert register(client, "not-an-email").status_code == 422


def test_register_duplicate_email(client):
    email = unique_email()
    assert register(client, email).status_code == 201

    dup = register(client, email, full_name="Someone Else")
    assert dup.status_code == 409
    assert dup.json()["detail"] == "Email already exists"


def test_register_password_mismatch(client):
    resp = register(client, unique_email(), password="secret1", confirm="secret2")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Passwords do not match"


def test_login_failures_look_the_same(client):
    email = unique_email()
    register(client, email)

    wrong_password = login(client, email, "wrongpassword")
    unknown_email = login(client, unique_email())

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"detail": "Invalid email or password"}


def test_login_records_client_details(client):
    email = unique_email()
    user_id = register(client, email).json()["user_id"]

    client.post(
        "/api/auth/login",
        json={"email": email, "password": "secret1"},
        headers={"User-Agent": "Mozilla/5.0 Test Browser"},
    )

    db = SessionLocal()
    try:
        entry = db.query(LoginLog).filter(LoginLog.user_id == user_id).one()
        assert entry.status == "SUCCESS"
        assert entry.ip_address is not None
        assert entry.user_agent == "Mozilla/5.0 Test Browser"
    finally:
        db.close()


def test_login_suspended_account(client):
    email = unique_email()
    user_id = register(client, email).json()["user_id"]
    db = SessionLocal()
    try:
        db.get(User, user_id).status = "SUSPENDED"
        db.commit()
    finally:
        db.close()

    resp = login(client, email)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Account is suspended"


def test_refresh_rotation(client):
    email = unique_email()
    register(client, email)
    old_token = login(client, email).json()["refresh_token"]

    refreshed = client.post("/api/auth/refresh", json={"refresh_token": old_token})
    assert refreshed.status_code == 200
    assert refreshed.json()["refresh_token"] != old_token

    reused = client.post("/api/auth/refresh", json={"refresh_token": old_token})
    assert reused.status_code == 401
    assert reused.json()["detail"] == "Invalid refresh token"


def test_refresh_requires_token(client):
    resp = client.post("/api/auth/refresh", json={"refresh_token": ""})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Refresh token is required"


def test_logout_then_refresh(client):
    email = unique_email()
    register(client, email)
    token = login(client, email).json()["refresh_token"]

    out = client.post("/api/auth/logout", json={"refresh_token": token})
    assert out.status_code == 200
    assert out.json()["message"] == "Logout successful"

    assert client.post("/api/auth/refresh", json={"refresh_token": token}).status_code == 401
    assert client.post("/api/auth/logout", json={"refresh_token": token}).status_code == 401


def test_me_returns_token_identity(client):
    email = unique_email()
    user_id = register(client, email).json()["user_id"]
    access_token = login(client, email).json()["access_token"]

    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {access_token}"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["user_id"] == user_id
    assert data["email"] == email
    assert data["role"] == "Customer"


def test_me_requires_bearer_token(client):
    missing = client.get("/api/auth/me")
    assert missing.status_code == 401
    assert missing.json()["detail"] == "Not authenticated"

    bad = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401
    assert bad.json()["detail"] == "Invalid token"


def test_health_endpoints(client):
    assert client.get("/health").json()["status"] == "healthy"
    ready = client.get("/ready")
    assert ready.status_code == 200
    assert ready.json()["database"] == "connected"
