"""Seed demo members, selections, and an event with a survey."""

from datetime import date
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app, ensure_default_admin
from models import db
from models.event import Attendance, Event, generate_event_code
from models.selection import Selection
from models.survey import SurveyQuestion
from models.user import User

DEMO_PASSWORD = "MemberPass123"
DEMO_MEMBERS = (
    ("山田 太郎", "taro@example.com", {"lesson_plan": 1, "connection": 2}),
    ("佐藤 花子", "hanako@example.com", {
        "lesson_plan": 3,
        "lesson_practice": 2,
        "student_eval": 2,
        "connection": 4,
        "research": 3,
    }),
    ("鈴木 一郎", "ichiro@example.com", {}),
)


def get_or_create_member(name: str, email: str) -> User:
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(name=name, email=email, role="member")
        db.session.add(user)
    user.set_password(DEMO_PASSWORD)
    return user


def set_steps(user: User, steps: dict[str, int]) -> None:
    for viewpoint, step in steps.items():
        selection = Selection.query.filter_by(user_id=user.id, viewpoint=viewpoint).first()
        if selection is None:
            selection = Selection(user_id=user.id, viewpoint=viewpoint, memo="")
            db.session.add(selection)
        selection.step = step


def get_or_create_event(admin: User) -> Event:
    title = "夏の授業づくり研究会"
    event = Event.query.filter_by(title=title).first()
    if event is None:
        event = Event(
            title=title,
            description="実践発表と意見交換",
            event_date=date.today().isoformat(),
            event_code=generate_event_code(),
            created_by=admin.id,
        )
        event.questions.append(
            SurveyQuestion(
                question_text="次回参加したいテーマは？",
                question_type="radio",
                options=["地域学習", "歴史", "公民"],
                sort_order=0,
            )
        )
        event.questions.append(
            SurveyQuestion(
                question_text="感想をお書きください",
                question_type="text",
                options=[],
                sort_order=1,
            )
        )
        db.session.add(event)
    return event


def main() -> None:
    app = create_app()
    with app.app_context():
        db.create_all()
        admin, _ = ensure_default_admin(app)

        members = []
        for name, email, steps in DEMO_MEMBERS:
            member = get_or_create_member(name, email)
            db.session.flush()
            set_steps(member, steps)
            members.append(member)

        event = get_or_create_event(admin)
        db.session.flush()
        for member in members[:2]:
            if Attendance.query.filter_by(event_id=event.id, user_id=member.id).first() is None:
                db.session.add(Attendance(event_id=event.id, user_id=member.id))

        db.session.commit()
        print(f"Seeded {len(members)} members; event code {event.event_code}")


if __name__ == "__main__":
    main()
