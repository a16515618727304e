"""Bearer-token authentication and role gates for API views."""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app, g, request
from werkzeug.exceptions import Forbidden, Unauthorized

from models import db, utcnow
from models.session import TOKEN_PATTERN, AuthSession
from models.user import User


def extract_bearer_token() -> str:
    """Return the token from the Authorization header or raise a 401 error."""

    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        raise Unauthorized("Login required.")
    token = header[len("Bearer "):].strip().lower()
    if not TOKEN_PATTERN.match(token):
        raise Unauthorized("Session is invalid. Please log in again.")
    return token


def resolve_session(token: str) -> AuthSession:
    """Look up a live session, deleting it if it has expired."""

    session = db.session.get(AuthSession, token)
    if session is None:
        raise Unauthorized("Session is invalid. Please log in again.")
    if session.is_expired(utcnow()):
        db.session.delete(session)
        db.session.commit()
        raise Unauthorized("Session has expired. Please log in again.")
    return session


def load_current_user() -> User:
    """Authenticate the request and store the user and session on ``g``."""

    session = resolve_session(extract_bearer_token())
    user = session.user
    if user is None:
        raise Unauthorized("User not found.")
    g.current_user = user
    g.auth_session = session
    return user


def current_user() -> User:
    """Return the user resolved by ``login_required`` for this request."""

    user = g.get("current_user")
    if user is None:
        return load_current_user()
    return user


def login_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        load_current_user()
        return fn(*args, **kwargs)

    return wrapped


def admin_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user = load_current_user()
        if not user.is_admin:
            current_app.logger.warning(
                "Admin endpoint %s refused for user_id=%s", request.path, user.id
            )
            raise Forbidden("Admin privileges required.")
        return fn(*args, **kwargs)

    return wrapped
