"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.user import User  # noqa: E402


class _BaseTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    RATELIMIT_ENABLED = False
    CORS_ORIGINS = "*"


@pytest.fixture()
def app() -> Flask:
    """Create a Flask application instance for tests."""

    application = create_app(_BaseTestConfig)

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def db_session(app: Flask):
    """Yield the SQLAlchemy session inside an application context."""

    with app.app_context():
        yield db.session


@pytest.fixture()
def create_user(app: Flask) -> Callable[..., int]:
    """Persist a user directly and return its id."""

    def _create(
        email: str,
        password: str = "secret-pass",
        *,
        name: str = "Test User",
        role: str = "member",
    ) -> int:
        with app.app_context():
            user = User(name=name, email=email, role=role)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _create


@pytest.fixture()
def login(client: FlaskClient) -> Callable[[str, str], dict[str, str]]:
    """Log in through the API and return an Authorization header."""

    def _login(email: str, password: str = "secret-pass") -> dict[str, str]:
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.get_json()
        return {"Authorization": f"Bearer {response.get_json()['token']}"}

    return _login


@pytest.fixture()
def member_headers(create_user, login) -> dict[str, str]:
    create_user("member@example.com", name="Member One")
    return login("member@example.com")


@pytest.fixture()
def admin_headers(create_user, login) -> dict[str, str]:
    create_user("admin@example.com", name="Admin", role="admin")
    return login("admin@example.com")
