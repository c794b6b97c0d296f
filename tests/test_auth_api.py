"""HTTP tests for the auth blueprint and the bearer gate."""

import pytest

from services.errors import StoreUnavailableError
from tests.conftest import ACCESS_TTL, REFRESH_TTL

PASSWORD = "CorrectHorse42!"


def _register(client, email="alice@example.com", password=PASSWORD):
    return client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password, "f_name": "Alice"},
    )


def _tokens(response):
    access = response.headers["Authorization"]
    assert access.startswith("Bearer ")
    return access.split(" ", 1)[1], response.headers["Refresh-Authorization"]


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def tokens(client):
    response = _register(client)
    assert response.status_code == 201
    return _tokens(response)


class TestRegisterAndLogin:
    def test_register_returns_tokens_in_headers(self, client):
        response = _register(client)

        assert response.status_code == 201
        access, refresh = _tokens(response)
        body = response.get_json()
        assert body["data"]["email"] == "alice@example.com"
        assert access not in response.get_data(as_text=True)
        assert refresh not in response.get_data(as_text=True)
        assert "password" not in body["data"]

    def test_register_duplicate_email(self, client):
        _register(client)
        response = _register(client, email="ALICE@example.com ")

        assert response.status_code == 409

    def test_register_short_password(self, client):
        response = _register(client, password="short")

        assert response.status_code == 422
        assert response.get_json()["error"] == "VALIDATION_ERROR"

    def test_login(self, client):
        _register(client)
        response = client.post(
            "/api/v1/auth/login", json={"email": "alice@example.com", "password": PASSWORD}
        )

        assert response.status_code == 200
        access, _ = _tokens(response)
        assert client.get("/api/v1/users/me", headers=_bearer(access)).status_code == 200

    @pytest.mark.parametrize(
        "email,password",
        [("alice@example.com", "wrong-password"), ("nobody@example.com", PASSWORD)],
    )
    def test_login_bad_credentials(self, client, email, password):
        _register(client)
        response = client.post("/api/v1/auth/login", json={"email": email, "password": password})

        assert response.status_code == 401
        assert response.get_json()["message"] == "Invalid credentials"
        assert "Authorization" not in response.headers


class TestGate:
    def test_me(self, client, tokens):
        access, _ = tokens
        response = client.get("/api/v1/users/me", headers=_bearer(access))

        assert response.status_code == 200
        assert response.get_json()["data"]["email"] == "alice@example.com"

    def test_missing_header(self, client):
        response = client.get("/api/v1/users/me")

        assert response.status_code == 401
        assert response.get_json()["error"] == "UNAUTHORIZED"

    def test_expired_access_token_gets_challenge(self, client, tokens, clock):
        access, _ = tokens
        clock.advance(ACCESS_TTL.total_seconds())

        response = client.get("/api/v1/users/me", headers=_bearer(access))

        assert response.status_code == 401
        assert response.get_json()["error"] == "TOKEN_EXPIRED"
        assert response.headers["WWW-Authenticate"] == (
            'Bearer realm="token-service-test",error="access_token_expired"'
        )

    def test_failures_are_indistinguishable(self, client, tokens, app):
        access, refresh = tokens
        forged = access[:-4] + ("AAAA" if not access.endswith("AAAA") else "BBBB")
        app.extensions["token_service"].revoke_refresh(refresh)

        bodies = []
        for token in (forged, "garbage", access, refresh):
            response = client.get("/api/v1/users/me", headers=_bearer(token))
            assert response.status_code == 401
            assert "WWW-Authenticate" not in response.headers
            bodies.append(response.get_json())
        assert all(body == bodies[0] for body in bodies)

    def test_refresh_token_is_not_an_access_token(self, client, tokens):
        _, refresh = tokens
        response = client.get("/api/v1/users/me", headers=_bearer(refresh))

        assert response.status_code == 401

    def test_expired_refresh_token_gets_no_challenge(self, client, tokens, clock):
        _, refresh = tokens
        clock.advance(REFRESH_TTL.total_seconds())

        response = client.get("/api/v1/users/me", headers=_bearer(refresh))

        assert response.status_code == 401
        assert response.get_json()["error"] == "UNAUTHORIZED"
        assert "WWW-Authenticate" not in response.headers


def _break(monkeypatch, app, method):
    def broken(*args, **kwargs):
        raise StoreUnavailableError("down")

    monkeypatch.setattr(app.extensions["storage"], method, broken)


class TestStoreOutage:
    def test_gate_reports_outage(self, client, tokens, app, monkeypatch):
        access, _ = tokens
        _break(monkeypatch, app, "find_access_by_token")

        response = client.get("/api/v1/users/me", headers=_bearer(access))

        assert response.status_code == 503
        assert response.get_json()["error"] == "STORE_UNAVAILABLE"
        assert "WWW-Authenticate" not in response.headers

    def test_refresh_reports_outage(self, client, tokens, app, monkeypatch):
        _, refresh = tokens
        _break(monkeypatch, app, "find_refresh_by_token")

        response = client.post("/api/v1/auth/refresh", headers=_bearer(refresh))

        assert response.status_code == 503
        assert response.get_json()["error"] == "STORE_UNAVAILABLE"
        assert "Refresh-Authorization" not in response.headers

    def test_logout_reports_outage(self, client, tokens, app, monkeypatch):
        access, _ = tokens
        _break(monkeypatch, app, "delete_refresh_cascade")

        response = client.post("/api/v1/auth/logout", headers=_bearer(access))

        assert response.status_code == 503
        assert response.get_json()["error"] == "STORE_UNAVAILABLE"

    def test_login_reports_outage(self, client, tokens, app, monkeypatch):
        _break(monkeypatch, app, "save_refresh")

        response = client.post(
            "/api/v1/auth/login", json={"email": "alice@example.com", "password": PASSWORD}
        )

        assert response.status_code == 503
        assert "Authorization" not in response.headers


class TestRefresh:
    def test_rotation_replaces_both_tokens(self, client, tokens):
        old_access, old_refresh = tokens
        response = client.post("/api/v1/auth/refresh", headers=_bearer(old_refresh))

        assert response.status_code == 200
        access, refresh = _tokens(response)
        assert refresh != old_refresh
        assert client.get("/api/v1/users/me", headers=_bearer(access)).status_code == 200
        assert client.get("/api/v1/users/me", headers=_bearer(old_access)).status_code == 401

    def test_replayed_refresh_token(self, client, tokens):
        _, refresh = tokens
        client.post("/api/v1/auth/refresh", headers=_bearer(refresh))

        response = client.post("/api/v1/auth/refresh", headers=_bearer(refresh))

        assert response.status_code == 401
        assert "Refresh-Authorization" not in response.headers

    def test_after_access_expiry(self, client, tokens, clock):
        _, refresh = tokens
        clock.advance(ACCESS_TTL.total_seconds() + 1)

        response = client.post("/api/v1/auth/refresh", headers=_bearer(refresh))

        assert response.status_code == 200

    def test_expired_refresh_token(self, client, tokens, clock):
        _, refresh = tokens
        clock.advance(REFRESH_TTL.total_seconds())

        response = client.post("/api/v1/auth/refresh", headers=_bearer(refresh))

        assert response.status_code == 401
        assert "Authorization" not in response.headers

    def test_access_token_rejected(self, client, tokens):
        access, _ = tokens
        response = client.post("/api/v1/auth/refresh", headers=_bearer(access))

        assert response.status_code == 401

    def test_missing_header(self, client):
        assert client.post("/api/v1/auth/refresh").status_code == 401


class TestLogout:
    def test_logout_revokes_pair(self, client, tokens):
        access, refresh = tokens
        response = client.post("/api/v1/auth/logout", headers=_bearer(access))

        assert response.status_code == 200
        assert client.get("/api/v1/users/me", headers=_bearer(access)).status_code == 401
        assert client.post("/api/v1/auth/refresh", headers=_bearer(refresh)).status_code == 401

    def test_double_logout(self, client, tokens):
        access, _ = tokens
        client.post("/api/v1/auth/logout", headers=_bearer(access))

        response = client.post("/api/v1/auth/logout", headers=_bearer(access))

        assert response.status_code == 200

    def test_logout_with_expired_access_token(self, client, tokens, clock, app):
        access, refresh = tokens
        clock.advance(ACCESS_TTL.total_seconds() + 60)

        response = client.post("/api/v1/auth/logout", headers=_bearer(access))

        assert response.status_code == 200
        assert app.extensions["storage"].find_refresh_by_token(refresh) is None

    def test_logout_with_forged_token(self, client):
        response = client.post("/api/v1/auth/logout", headers=_bearer("garbage"))

        assert response.status_code == 401


def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert body["service"] == "token-service-test"


def test_separate_apps_do_not_share_secrets(app, tokens):
    from api import create_app

    other = create_app("test")
    access, _ = tokens
    with other.app_context():
        response = other.test_client().get("/api/v1/users/me", headers=_bearer(access))
    assert response.status_code == 401
    other.extensions["storage"].close()
