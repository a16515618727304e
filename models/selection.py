"""Selection model: a member's step for one viewpoint."""

from . import db, utcnow


VIEWPOINTS = (
    "lesson_plan",
    "lesson_practice",
    "student_eval",
    "connection",
    "research",
)
VIEWPOINT_LABELS = {
    "lesson_plan": "授業をつくる",
    "lesson_practice": "授業をする",
    "student_eval": "子供を見る",
    "connection": "つながる",
    "research": "深める",
}
STEPS = (1, 2, 3, 4)
STEP_LABELS = {
    1: "STEP1(まずはここから)",
    2: "STEP2(自分で工夫する)",
    3: "STEP3(みんなと高める)",
    4: "STEP4(未来を創る)",
}


class Selection(db.Model):
    """The step a user picked for a viewpoint, with an optional memo."""

    __tablename__ = "selections"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    viewpoint = db.Column(db.String(32), nullable=False)
    step = db.Column(db.Integer, nullable=False)
    memo = db.Column(db.Text, nullable=False, default="", server_default="")
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint("user_id", "viewpoint", name="uq_selections_user_viewpoint"),
        db.CheckConstraint("step BETWEEN 1 AND 4", name="ck_selections_step"),
    )

    user = db.relationship("User", back_populates="selections")

    def to_dict(self) -> dict:
        return {
            "viewpoint": self.viewpoint,
            "step": self.step,
            "memo": self.memo or "",
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
