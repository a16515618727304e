"""Authentication blueprint providing register, login, logout and me endpoints."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import func
from werkzeug.exceptions import BadRequest, Conflict, Unauthorized

from models import db
from models.session import AuthSession
from models.user import User
from utils.auth import current_user, login_required
from utils.request_validation import parse_json_request

auth_bp = Blueprint("auth", __name__)


def _normalize_email(raw_email: object) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""
    if not isinstance(raw_email, str):
        return ""
    return raw_email.strip().lower()


def _text(payload: dict, field: str) -> str:
    value = payload.get(field)
    return value if isinstance(value, str) else ""


def _issue_token(user: User) -> str:
    session = AuthSession.issue(user, current_app.config["SESSION_TTL_DAYS"])
    return session.token


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple:
    """Register a new member and sign them in."""
    payload = parse_json_request(request)
    name = _text(payload, "name").strip()
    email = _normalize_email(payload.get("email"))
    password = _text(payload, "password")

    if not name or not email or not password:
        raise BadRequest("Name, email and password are required.")

    min_length = current_app.config["MIN_PASSWORD_LENGTH"]
    if len(password) < min_length:
        raise BadRequest(f"Password must be at least {min_length} characters.")

    # Case-insensitive unique check
    existing = User.query.filter(func.lower(User.email) == email).first()
    if existing is not None:
        raise Conflict("A user with that email already exists.")

    user = User(name=name, email=email, role="member")
    user.set_password(password)
    db.session.add(user)
    token = _issue_token(user)
    db.session.commit()

    current_app.logger.info("Registered user_id=%s", user.id)
    return (
        jsonify({"token": token, "user": user.to_dict()}),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple:
    """Authenticate a user and return a bearer token."""
    payload = parse_json_request(request)
    email = _normalize_email(payload.get("email"))
    password = _text(payload, "password")

    if not email or not password:
        raise BadRequest("Email and password are required.")

    user = User.query.filter(func.lower(User.email) == email).first()
    if user is None or not user.check_password(password):
        current_app.logger.warning("Failed login for %s", email)
        raise Unauthorized("Invalid email or password.")

    if user.has_legacy_hash():
        user.set_password(password)
        current_app.logger.info("Upgraded legacy password hash for user_id=%s", user.id)

    token = _issue_token(user)
    db.session.commit()

    current_app.logger.info("Login user_id=%s", user.id)
    return jsonify({"token": token, "user": user.to_dict()}), HTTPStatus.OK


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    """Revoke the token used for this request."""
    user_id = current_user().id
    db.session.delete(g.auth_session)
    db.session.commit()
    current_app.logger.info("Logout user_id=%s", user_id)
    return jsonify({"success": True})


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({"user": current_user().to_dict()})
