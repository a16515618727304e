"""Application factory."""

import json
import logging
import os
import uuid

import click
from flask import Flask, jsonify, g, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db, utcnow
from models.session import AuthSession
from models.user import User
from routes.admin import admin_bp
from routes.auth import auth_bp
from routes.events import admin_events_bp, events_bp
from routes.selections import selections_bp

migrate = Migrate()
limiter = Limiter(key_func=get_remote_address)


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)

    # CORS
    CORS(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
    )

    # Rate limiting
    storage_uri = app.config.get("RATELIMIT_STORAGE_URI", "memory://")
    headers_enabled = app.config.get("RATELIMIT_HEADERS_ENABLED", True)
    key_prefix = app.config.get("RATELIMIT_KEY_PREFIX") or str(uuid.uuid4())

    global limiter
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[lambda: app.config.get("RATE_LIMIT", "120 per minute")],
        storage_uri=storage_uri,
        headers_enabled=headers_enabled,
        key_prefix=key_prefix,
    )
    limiter.init_app(app)
    app.config["RATELIMIT_KEY_PREFIX"] = key_prefix

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(selections_bp, url_prefix="/api/selections")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(admin_events_bp, url_prefix="/api/admin/events")
    app.register_blueprint(events_bp, url_prefix="/api/events")

    # Health
    @app.route("/api/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok"})

    # Errors
    _register_error_handlers(app)
    _register_commands(app)

    return app


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with request IDs."""

    @app.before_request
    def _assign_request_id():  # pragma: no cover
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):  # pragma: no cover
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        request_id = g.get("request_id") or str(uuid.uuid4())
        response = error.get_response()
        payload = {
            "error": getattr(error, "name", "Error"),
            "detail": error.description,
            "request_id": request_id,
        }
        response.data = json.dumps(payload)
        response.content_type = "application/json"
        response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):  # pragma: no cover
        request_id = g.get("request_id") or str(uuid.uuid4())
        app.logger.exception("Unhandled application error", exc_info=error)
        db.session.rollback()
        payload = {
            "error": "Internal Server Error",
            "detail": "An unexpected error occurred.",
            "request_id": request_id,
        }
        response = jsonify(payload)
        response.status_code = 500
        response.headers.setdefault("X-Request-ID", request_id)
        return response


def ensure_default_admin(app: Flask) -> tuple[User, bool]:
    """Create the bootstrap administrator if no account uses its email."""

    email = app.config["DEFAULT_ADMIN_EMAIL"].strip().lower()
    admin = User.query.filter_by(email=email).first()
    if admin is not None:
        return admin, False
    admin = User(name=app.config["DEFAULT_ADMIN_NAME"], email=email, role="admin")
    admin.set_password(app.config["DEFAULT_ADMIN_PASSWORD"])
    db.session.add(admin)
    db.session.commit()
    return admin, True


def purge_expired_sessions() -> int:
    """Delete every expired session row and return how many were removed."""

    removed = AuthSession.query.filter(AuthSession.expires_at <= utcnow()).delete(
        synchronize_session=False
    )
    db.session.commit()
    return removed


def _register_commands(app: Flask) -> None:
    @app.cli.command("init-db")
    def init_db_command():
        """Create tables and the default administrator."""
        db.create_all()
        admin, created = ensure_default_admin(app)
        action = "created" if created else "already present"
        click.echo(f"Database initialized; admin {admin.email} {action}.")

    @app.cli.command("purge-sessions")
    def purge_sessions_command():
        """Delete expired login sessions."""
        removed = purge_expired_sessions()
        click.echo(f"Removed {removed} expired sessions.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
