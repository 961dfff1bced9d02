from app.services.auth_service import create_government_user

from conftest import bearer, citizen_login, gov_login


def test_citizen_login_then_me_binds_device(client):
    token = citizen_login(client, "asha@example.com", "Asha")

    r = client.get("/api/v1/auth/me", headers=bearer(token, device_id="phone-1"))
    assert r.status_code == 200
    body = r.json()
    assert body["identity"] == "asha@example.com"
    assert body["role"] == "CITIZEN"
    assert body["issuedFor"] == "citizen"
    assert body["session"]["deviceId"] == "phone-1"


def test_citizen_login_rejects_malformed_email(client):
    r = client.post("/api/v1/auth/login", json={"email": "not-an-email"})
    assert r.status_code == 400


def test_gov_login_issues_government_token(client, db):
    token = gov_login(client, db)

    r = client.get("/api/v1/auth/me", headers=bearer(token))
    assert r.json()["role"] == "GOV_AUTHORITY"
    assert r.json()["issuedFor"] == "government"


def test_gov_login_outside_domain_is_unauthorized(client):
    r = client.post("/api/v1/auth/gov-login", json={"email": "someone@example.com", "password": "x"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid government email domain"


def test_gov_login_wrong_password(client, db):
    create_government_user(db, email="reviewer@gov.in", name="Reviewer", password="right")
    r = client.post("/api/v1/auth/gov-login", json={"email": "reviewer@gov.in", "password": "wrong"})
    assert r.status_code == 401


def test_missing_bearer_is_refused(client):
    r = client.get("/api/v1/auth/me")
    assert r.status_code in (401, 403)


def test_logout_invalidates_token(client):
    token = citizen_login(client)

    status = client.get("/api/v1/auth/check-token-status", headers=bearer(token)).json()
    assert status["valid"] is True
    assert status["issuedFor"] == "citizen"

    r = client.post("/api/v1/auth/logout", headers=bearer(token, device_id="phone-1"))
    assert r.status_code == 200
    assert r.json()["clearToken"] is True

    status = client.get("/api/v1/auth/check-token-status", headers=bearer(token)).json()
    assert status["valid"] is False
    assert client.get("/api/v1/auth/me", headers=bearer(token)).status_code == 401


def test_refresh_needs_device_session(client):
    token = citizen_login(client)

    r = client.post(
        "/api/v1/auth/refresh",
        json={"deviceInfo": {"deviceId": "phone-1"}},
        headers=bearer(token),
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid device session"


def test_refresh_rotates_token_for_one_device(client):
    token = citizen_login(client)
    client.get("/api/v1/auth/me", headers=bearer(token, device_id="phone-1"))

    r = client.post(
        "/api/v1/auth/refresh",
        json={"deviceInfo": {"deviceId": "phone-1", "platform": "android"}},
        headers=bearer(token),
    )
    assert r.status_code == 200
    new_token = r.json()["access_token"]
    assert r.json()["issued_for"] == "citizen"

    assert client.get("/api/v1/auth/me", headers=bearer(token)).status_code == 401
    assert client.get("/api/v1/auth/me", headers=bearer(new_token)).status_code == 200


def test_sync_then_invalidate_device(client):
    token = citizen_login(client)

    r = client.post(
        "/api/v1/auth/sync",
        json={"deviceInfo": {"deviceId": "tab-1", "platform": "ios"}},
        headers=bearer(token),
    )
    assert r.status_code == 200

    me = client.get("/api/v1/auth/me", headers=bearer(token, device_id="tab-1")).json()
    assert me["session"]["lastSyncIso"] is not None

    r = client.post("/api/v1/auth/invalidate", json={"deviceId": "tab-1"}, headers=bearer(token))
    assert r.status_code == 200
    assert client.get("/api/v1/auth/check-token-status", headers=bearer(token)).json()["valid"] is False


def test_long_user_agent_still_binds_device(client):
    token = citizen_login(client, "asha@example.com", "Asha")
    headers = {**bearer(token, device_id="phone-1"), "User-Agent": "Mozilla/5.0 " + "x" * 300}

    r = client.get("/api/v1/auth/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["session"]["deviceId"] == "phone-1"
