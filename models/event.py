"""Event and attendance models."""

import secrets

from . import db, utcnow


# Excludes 0/O, 1/I/L so codes survive being read aloud or typed from a poster.
EVENT_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
EVENT_CODE_MAX_LENGTH = 16


def generate_event_code(length: int = 6) -> str:
    """Return a random check-in code drawn from the unambiguous alphabet."""

    return "".join(secrets.choice(EVENT_CODE_ALPHABET) for _ in range(length))


class Event(db.Model):
    """A club meeting members check in to by code."""

    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="", server_default="")
    event_date = db.Column(db.String(10), nullable=False)
    event_code = db.Column(
        db.String(EVENT_CODE_MAX_LENGTH), unique=True, nullable=False, index=True
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True, server_default=db.true())
    created_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    creator = db.relationship("User", backref=db.backref("created_events", lazy="select"))
    attendances = db.relationship(
        "Attendance",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="Attendance.attended_at",
    )
    questions = db.relationship(
        "SurveyQuestion",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="[SurveyQuestion.sort_order, SurveyQuestion.id]",
    )
    survey_answers = db.relationship(
        "SurveyAnswer",
        back_populates="event",
        cascade="all, delete-orphan",
    )
    custom_answers = db.relationship(
        "CustomAnswer",
        back_populates="event",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_questions: bool = False) -> dict:
        """Serialize the event to a dictionary."""

        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description or "",
            "event_date": self.event_date,
            "event_code": self.event_code,
            "is_active": self.is_active,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_questions:
            data["questions"] = [question.to_dict() for question in self.questions]
        return data


class Attendance(db.Model):
    """A member's check-in to an event; at most one per pair."""

    __tablename__ = "attendances"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(
        db.Integer,
        db.ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attended_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.UniqueConstraint("event_id", "user_id", name="uq_attendances_event_user"),
    )

    event = db.relationship("Event", back_populates="attendances")
    user = db.relationship("User", back_populates="attendances")

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "user_id": self.user_id,
            "attended_at": self.attended_at.isoformat() if self.attended_at else None,
        }
