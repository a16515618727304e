"""Persisted login sessions backing bearer tokens."""

import re
import secrets
from datetime import datetime, timedelta

from . import db, utcnow


TOKEN_BYTES = 32
TOKEN_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def generate_token() -> str:
    """Return a random 256-bit token as lowercase hex."""

    return secrets.token_hex(TOKEN_BYTES)


class AuthSession(db.Model):
    """A bearer token issued at login or registration."""

    __tablename__ = "sessions"

    token = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User", back_populates="sessions")

    @classmethod
    def issue(cls, user, ttl_days: int) -> "AuthSession":
        """Create (but do not commit) a new session for the user."""

        session = cls(
            token=generate_token(),
            expires_at=utcnow() + timedelta(days=ttl_days),
        )
        user.sessions.append(session)
        return session

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return self.expires_at <= now

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<AuthSession user_id={self.user_id} expires_at={self.expires_at}>"
