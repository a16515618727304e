"""Tests covering registration, login, logout and token validation."""

from __future__ import annotations

from datetime import timedelta

import pytest
from flask.testing import FlaskClient

from models import db, utcnow
from models.session import AuthSession
from models.user import User, legacy_password_hash


def _register(client: FlaskClient, **overrides):
    payload = {"name": "山田 太郎", "email": "taro@example.com", "password": "pass1234"}
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


def test_register_returns_token_and_member(client: FlaskClient, app):
    response = _register(client, email="Taro@Example.com ")

    assert response.status_code == 201
    data = response.get_json()
    assert len(data["token"]) == 64
    assert data["user"]["email"] == "taro@example.com"
    assert data["user"]["role"] == "member"

    with app.app_context():
        assert AuthSession.query.count() == 1


def test_register_duplicate_email_conflicts(client: FlaskClient):
    assert _register(client).status_code == 201

    response = _register(client, email="TARO@example.com", name="Other")

    assert response.status_code == 409
    assert response.get_json()["error"] == "Conflict"


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": ""},
        {"email": ""},
        {"password": ""},
        {"password": "abc"},
        {"name": 42},
    ],
)
def test_register_validation(client: FlaskClient, overrides):
    response = _register(client, **overrides)
    assert response.status_code == 400


def test_login_returns_token(client: FlaskClient, create_user):
    create_user("j1@example.com", "Pass1234")

    response = client.post(
        "/api/auth/login",
        json={"email": "j1@example.com", "password": "Pass1234"},
    )

    assert response.status_code == 200
    data = response.get_json()
    assert "token" in data
    assert data["user"]["email"] == "j1@example.com"
    assert data["user"]["role"] == "member"


@pytest.mark.parametrize(
    "payload, status_code",
    [
        ({"email": "j1@example.com"}, 400),
        ({"password": "Pass1234"}, 400),
        ({"email": "j1@example.com", "password": "wrong"}, 401),
        ({"email": "nobody@example.com", "password": "Pass1234"}, 401),
    ],
)
def test_login_validation(client: FlaskClient, create_user, payload, status_code):
    create_user("j1@example.com", "Pass1234")

    response = client.post("/api/auth/login", json=payload)

    assert response.status_code == status_code


def test_me_requires_token(client: FlaskClient):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Token abc"}).status_code == 401
    malformed = client.get("/api/auth/me", headers={"Authorization": "Bearer not-hex"})
    assert malformed.status_code == 401
    unknown = client.get("/api/auth/me", headers={"Authorization": "Bearer " + "a" * 64})
    assert unknown.status_code == 401


def test_me_returns_current_user(client: FlaskClient, member_headers):
    response = client.get("/api/auth/me", headers=member_headers)

    assert response.status_code == 200
    assert response.get_json()["user"]["email"] == "member@example.com"


def test_logout_invalidates_token(client: FlaskClient, member_headers):
    assert client.get("/api/auth/me", headers=member_headers).status_code == 200

    response = client.post("/api/auth/logout", headers=member_headers)
    assert response.status_code == 200

    assert client.get("/api/auth/me", headers=member_headers).status_code == 401
    assert client.get("/api/selections", headers=member_headers).status_code == 401


def test_logout_keeps_other_sessions(client: FlaskClient, create_user, login):
    create_user("multi@example.com")
    first = login("multi@example.com")
    second = login("multi@example.com")

    client.post("/api/auth/logout", headers=first)

    assert client.get("/api/auth/me", headers=first).status_code == 401
    assert client.get("/api/auth/me", headers=second).status_code == 200


def test_expired_token_is_rejected_and_deleted(client: FlaskClient, app, member_headers):
    token = member_headers["Authorization"].split()[1]
    with app.app_context():
        session = db.session.get(AuthSession, token)
        session.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

    response = client.get("/api/auth/me", headers=member_headers)

    assert response.status_code == 401
    assert "expired" in response.get_json()["detail"]
    with app.app_context():
        assert db.session.get(AuthSession, token) is None


def test_token_of_deleted_user_is_rejected(client: FlaskClient, app, member_headers):
    with app.app_context():
        user = User.query.filter_by(email="member@example.com").first()
        db.session.delete(user)
        db.session.commit()

    assert client.get("/api/auth/me", headers=member_headers).status_code == 401


def test_legacy_hash_is_upgraded_on_login(client: FlaskClient, app):
    with app.app_context():
        salt = app.config["LEGACY_PASSWORD_SALT"]
        user = User(
            name="Legacy",
            email="legacy@example.com",
            password_hash=legacy_password_hash("oldpass", salt),
        )
        db.session.add(user)
        db.session.commit()

    response = client.post(
        "/api/auth/login", json={"email": "legacy@example.com", "password": "oldpass"}
    )
    assert response.status_code == 200

    with app.app_context():
        user = User.query.filter_by(email="legacy@example.com").first()
        assert user.has_legacy_hash() is False
        assert user.check_password("oldpass")
