from fastapi.testclient import TestClient

from webapp.main import create_app


def _login(client, email="ada@example.com"):
    resp = client.post("/api/auth/login", json={"email": email, "password": "secret"})
    assert resp.status_code == 200
    return resp.json()["data"]


def test_login_and_me(client):
    tokens = _login(client)
    assert tokens["expiresIn"] == 3600

    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['accessToken']}"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "data": tokens["user"]}


def test_login_missing_fields(client):
    resp = client.post("/api/auth/login", json={"email": "ada@example.com"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "INVALID_CREDENTIALS"


def test_me_requires_token(client):
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json()["code"] == "MISSING_TOKEN"

    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_TOKEN"


def test_refresh_rotates_tokens(client):
    tokens = _login(client)
    resp = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 200
    fresh = resp.json()["data"]
    assert fresh["refreshToken"] != tokens["refreshToken"]

    resp = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_TOKEN"


def test_refresh_without_token(client):
    resp = client.post("/api/auth/refresh", json={})
    assert resp.status_code == 401
    assert resp.json()["code"] == "MISSING_TOKEN"


def test_logout_revokes_refresh_token(client):
    tokens = _login(client)
    resp = client.post("/api/auth/logout", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 200
    assert resp.json()["data"] == {"loggedOut": True}

    resp = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 401


def test_transactions_open_when_auth_not_required(client):
    assert client.get("/api/transactions").status_code == 200


def test_transactions_need_token_when_auth_required(config):
    config["auth"]["required"] = True
    client = TestClient(create_app(config))

    resp = client.get("/api/transactions")
    assert resp.status_code == 401
    assert resp.json()["code"] == "MISSING_TOKEN"

    tokens = _login(client)
    resp = client.get(
        "/api/transactions", headers={"Authorization": f"Bearer {tokens['accessToken']}"}
    )
    assert resp.status_code == 200

    # Health stays public.
    assert client.get("/api/health").status_code == 200
