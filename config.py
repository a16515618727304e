"""Application configuration module."""

import os


class Config:
    """Base configuration for the Flask application."""

    # Core
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///compass.db")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Auth
    SESSION_TTL_DAYS = int(os.getenv("SESSION_TTL_DAYS", "7"))
    MIN_PASSWORD_LENGTH = int(os.getenv("MIN_PASSWORD_LENGTH", "4"))
    # Salt used by the pre-werkzeug SHA-256 hashes; only read when verifying them.
    LEGACY_PASSWORD_SALT = os.getenv("LEGACY_PASSWORD_SALT", "_shakaika_salt_2026")

    # Events
    # Capped at models.event.EVENT_CODE_MAX_LENGTH, the column width.
    EVENT_CODE_LENGTH = int(os.getenv("EVENT_CODE_LENGTH", "6"))

    # Bootstrap admin created by `flask init-db`
    DEFAULT_ADMIN_NAME = os.getenv("DEFAULT_ADMIN_NAME", "管理者")
    DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@example.com")
    DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123")

    # CORS
    _raw_origins = os.getenv("ORIGINS", "*")
    if _raw_origins.strip() == "*":
        CORS_ORIGINS = "*"
    else:
        CORS_ORIGINS = [o.strip() for o in _raw_origins.split(",") if o.strip()]

    # Rate limiting
    RATE_LIMIT = os.getenv("RATE_LIMIT", "120 per minute")
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_KEY_PREFIX = os.getenv("RATELIMIT_KEY_PREFIX", "")
