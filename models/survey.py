"""Survey questions and answers attached to events."""

from . import db, utcnow


QUESTION_TYPES = ("text", "radio", "rating")
RATING_RANGE = (1, 5)


class SurveyQuestion(db.Model):
    """An event-specific question shown after check-in."""

    __tablename__ = "survey_questions"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(
        db.Integer,
        db.ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_text = db.Column(db.Text, nullable=False)
    question_type = db.Column(db.String(16), nullable=False)
    options = db.Column(db.JSON, nullable=False, default=list)
    sort_order = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    __table_args__ = (
        db.CheckConstraint(
            "question_type IN ('text', 'radio', 'rating')",
            name="ck_survey_questions_type",
        ),
    )

    event = db.relationship("Event", back_populates="questions")
    answers = db.relationship(
        "CustomAnswer",
        back_populates="question",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "question_text": self.question_text,
            "question_type": self.question_type,
            "options": list(self.options or []),
            "sort_order": self.sort_order,
        }


class SurveyAnswer(db.Model):
    """The fixed satisfaction/comment survey; one per user per event."""

    __tablename__ = "survey_answers"

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
    )
    satisfaction = db.Column(db.Integer, nullable=True)
    comment = db.Column(db.Text, nullable=False, default="", server_default="")
    answered_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint("event_id", "user_id", name="uq_survey_answers_event_user"),
        db.CheckConstraint(
            "satisfaction IS NULL OR satisfaction BETWEEN 1 AND 5",
            name="ck_survey_answers_satisfaction",
        ),
    )

    event = db.relationship("Event", back_populates="survey_answers")
    user = db.relationship("User", back_populates="survey_answers")

    def to_dict(self) -> dict:
        return {
            "satisfaction": self.satisfaction,
            "comment": self.comment or "",
            "answered_at": self.answered_at.isoformat() if self.answered_at else None,
        }


class CustomAnswer(db.Model):
    """An answer to a SurveyQuestion; one per user per question."""

    __tablename__ = "custom_answers"

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
    )
    question_id = db.Column(
        db.Integer,
        db.ForeignKey("survey_questions.id", ondelete="CASCADE"),
        nullable=False,
    )
    answer_text = db.Column(db.Text, nullable=False, default="", server_default="")

    __table_args__ = (
        db.UniqueConstraint(
            "event_id",
            "user_id",
            "question_id",
            name="uq_custom_answers_event_user_question",
        ),
    )

    event = db.relationship("Event", back_populates="custom_answers")
    user = db.relationship("User", back_populates="custom_answers")
    question = db.relationship("SurveyQuestion", back_populates="answers")

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "answer": self.answer_text or "",
        }
