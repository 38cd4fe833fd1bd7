"""Token verification, session accessor and sign-out."""

from datetime import timedelta

import jwt
import pytest

pytestmark = pytest.mark.integration

from Authentication import generate_token
from app import create_app
from config import DEFAULT_SECRET_KEY, ProductionConfig
from models import db, RevokedToken, utcnow


def test_health_is_public(client):
    assert client.get("/api/health").get_json() == {"status": "ok"}


def test_session_returns_identity(client, auth_headers, user_id):
    resp = client.get("/api/session", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json() == {"user": {"id": user_id, "email": "tester@example.com"}}


def test_missing_token(client):
    resp = client.get("/api/session")
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Not authenticated"


def test_token_without_bearer_prefix(client, app):
    token = generate_token("user-9")
    assert client.get("/api/session", headers={"Authorization": token}).status_code == 200


def test_expired_token(client, app):
    token = generate_token("user-1", expires_in=timedelta(seconds=-5))
    resp = client.get("/api/session", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_wrong_secret(client, app):
    token = jwt.encode({"sub": "user-1", "exp": 9999999999}, "not-the-secret", algorithm="HS256")
    resp = client.get("/api/session", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_token_missing_subject(client, app):
    token = jwt.encode({"exp": 9999999999}, app.config["JWT_SECRET_KEY"], algorithm="HS256")
    resp = client.get("/api/session", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_signout_revokes_token(client, auth_headers):
    resp = client.post("/api/signout", headers=auth_headers)
    assert resp.status_code == 200

    assert client.get("/api/session", headers=auth_headers).status_code == 401
    assert client.get("/api/habits", headers=auth_headers).status_code == 401


def test_signout_leaves_other_tokens_valid(client, app, auth_headers, user_id):
    other_token = generate_token(user_id)
    client.post("/api/signout", headers=auth_headers)

    resp = client.get("/api/session", headers={"Authorization": f"Bearer {other_token}"})
    assert resp.status_code == 200


def test_audience_checked_when_configured(client, app):
    app.config["JWT_AUDIENCE"] = "authenticated"
    good = generate_token("user-1")
    bad = jwt.encode(
        {"sub": "user-1", "exp": 9999999999, "aud": "someone-else"},
        app.config["JWT_SECRET_KEY"],
        algorithm="HS256",
    )

    assert client.get("/api/session", headers={"Authorization": f"Bearer {good}"}).status_code == 200
    assert client.get("/api/session", headers={"Authorization": f"Bearer {bad}"}).status_code == 401


def test_issue_token_command(app):
    result = app.test_cli_runner().invoke(args=["issue-token", "user-5", "--email", "dev@example.com"])

    assert result.exit_code == 0
    payload = jwt.decode(result.output.strip(), app.config["JWT_SECRET_KEY"], algorithms=["HS256"])
    assert payload["sub"] == "user-5"
    assert payload["email"] == "dev@example.com"


def test_signout_prunes_expired_revocations(client, app, auth_headers):
    db.session.add(RevokedToken(jti="old", user_id="user-1", expires_at=utcnow() - timedelta(days=1)))
    db.session.add(RevokedToken(jti="live", user_id="user-1", expires_at=utcnow() + timedelta(hours=1)))
    db.session.commit()

    assert client.post("/api/signout", headers=auth_headers).status_code == 200

    jtis = {row.jti for row in RevokedToken.query.all()}
    assert "old" not in jtis
    assert "live" in jtis
    assert len(jtis) == 2


class TestProductionSecret:
    def test_default_secret_refused(self, monkeypatch):
        monkeypatch.setattr(ProductionConfig, "JWT_SECRET_KEY", DEFAULT_SECRET_KEY)

        with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
            create_app("production")

    def test_empty_secret_refused(self, monkeypatch):
        monkeypatch.setattr(ProductionConfig, "JWT_SECRET_KEY", "")

        with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
            create_app("production")

    def test_configured_secret_accepted(self, monkeypatch):
        monkeypatch.setattr(ProductionConfig, "JWT_SECRET_KEY", "a-real-deployment-secret")
        monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", "sqlite://")

        app = create_app("production")

        assert app.config["JWT_SECRET_KEY"] == "a-real-deployment-secret"

    def test_testing_config_unaffected(self, app):
        assert app.config["TESTING"] is True
