"""User model definition."""

import hashlib
import hmac

from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

from . import db, utcnow


ROLES = ("member", "admin")
ROLE_LABELS = {"member": "会員", "admin": "管理者"}


def legacy_password_hash(password: str, salt: str) -> str:
    """Return the unsalted-per-user SHA-256 digest used by early accounts."""

    return hashlib.sha256((password + salt).encode("utf-8")).hexdigest()


class User(db.Model):
    """Represents a club member or administrator."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(
        db.String(16),
        nullable=False,
        default="member",
        server_default=db.text("'member'"),
        index=True,
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.CheckConstraint("role IN ('member', 'admin')", name="ck_users_role"),
    )

    sessions = db.relationship(
        "AuthSession",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    selections = db.relationship(
        "Selection",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    attendances = db.relationship(
        "Attendance",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    survey_answers = db.relationship(
        "SurveyAnswer",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    custom_answers = db.relationship(
        "CustomAnswer",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)

    def has_legacy_hash(self) -> bool:
        """Return True when the stored hash predates werkzeug hashing."""

        stored = self.password_hash or ""
        return len(stored) == 64 and ":" not in stored and "$" not in stored

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash.

        Legacy SHA-256 digests are compared in constant time; everything else
        goes through werkzeug.
        """

        if self.has_legacy_hash():
            salt = current_app.config.get("LEGACY_PASSWORD_SALT", "")
            candidate = legacy_password_hash(password, salt)
            return hmac.compare_digest(candidate, self.password_hash.lower())
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> dict:
        """Serialize the user without credentials."""

        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
