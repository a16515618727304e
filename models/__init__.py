"""Database initialization and model exports."""

from datetime import UTC, datetime
from typing import Callable, TypeVar

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import IntegrityError


db = SQLAlchemy()

T = TypeVar("T")


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime, matching stored values."""

    return datetime.now(UTC).replace(tzinfo=None)


def commit_upsert(apply: Callable[[], T]) -> T:
    """Run a get-or-create ``apply`` and commit it.

    When a concurrent request inserts the same unique row first, the commit
    fails with an ``IntegrityError``; the session is rolled back and ``apply``
    runs once more, now finding the stored row and updating it instead.
    """

    try:
        result = apply()
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.info("Unique row inserted concurrently; retrying as update")
        result = apply()
        db.session.commit()
    return result


# Import models to register them with SQLAlchemy metadata.
from .user import User  # noqa: E402,F401
from .session import AuthSession  # noqa: E402,F401
from .selection import Selection  # noqa: E402,F401
from .event import Attendance, Event  # noqa: E402,F401
from .survey import CustomAnswer, SurveyAnswer, SurveyQuestion  # noqa: E402,F401

__all__ = [
    "db",
    "utcnow",
    "commit_upsert",
    "User",
    "AuthSession",
    "Selection",
    "Event",
    "Attendance",
    "SurveyQuestion",
    "SurveyAnswer",
    "CustomAnswer",
]
