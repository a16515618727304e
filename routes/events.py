"""Event check-in, surveys, and the admin endpoints that manage them."""

from __future__ import annotations

from datetime import date

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func
from sqlalchemy.orm import selectinload
from werkzeug.exceptions import BadRequest, Forbidden, InternalServerError, NotFound

from models import commit_upsert, db
from models.event import EVENT_CODE_MAX_LENGTH, Attendance, Event, generate_event_code
from models.survey import (
    QUESTION_TYPES,
    RATING_RANGE,
    CustomAnswer,
    SurveyAnswer,
    SurveyQuestion,
)
from utils.auth import admin_required, current_user, login_required
from utils.csv_export import csv_response, render_csv
from utils.request_validation import (
    optional_text,
    parse_bool,
    parse_int_in_range,
    parse_json_request,
)

events_bp = Blueprint("events", __name__)
admin_events_bp = Blueprint("admin_events", __name__)

MAX_CODE_ATTEMPTS = 10


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _parse_event_date(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise BadRequest("event_date is required.")
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except ValueError as exc:
        raise BadRequest("event_date must be an ISO 8601 date (YYYY-MM-DD).") from exc


def _get_event_or_404(event_id: int) -> Event:
    event = db.session.get(Event, event_id)
    if event is None:
        raise NotFound("Event not found.")
    return event


def _get_event_by_code_or_404(code: str) -> Event:
    event = Event.query.filter(Event.event_code == code.strip().upper()).first()
    if event is None:
        raise NotFound("Event not found.")
    return event


def _require_active(event: Event) -> None:
    if not event.is_active:
        raise BadRequest("This event is no longer accepting check-ins.")


def _allocate_event_code() -> str:
    length = min(current_app.config.get("EVENT_CODE_LENGTH", 6), EVENT_CODE_MAX_LENGTH)
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_event_code(length)
        if Event.query.filter_by(event_code=code).first() is None:
            return code
    raise InternalServerError("Could not allocate a unique event code.")


def _parse_options(question_type: str, raw: object) -> list[str]:
    if question_type != "radio":
        return []
    if not isinstance(raw, list):
        raise BadRequest("options must be a list of choices for radio questions.")
    options = []
    for item in raw:
        if not isinstance(item, str):
            raise BadRequest("Each option must be a string.")
        item = item.strip()
        if item and item not in options:
            options.append(item)
    if len(options) < 2:
        raise BadRequest("Radio questions need at least two options.")
    return options


def _normalize_answer(question: SurveyQuestion, value: object) -> str:
    if question.question_type == "rating":
        low, high = RATING_RANGE
        return str(parse_int_in_range(value, "answer", low, high))
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise BadRequest("answer must be a string.")
    value = value.strip()
    if question.question_type == "radio" and value and value not in (question.options or []):
        raise BadRequest(f"answer for question {question.id} must be one of its options.")
    return value


def _attendance_for(event: Event, user_id: int) -> Attendance | None:
    return Attendance.query.filter_by(event_id=event.id, user_id=user_id).first()


def _survey_for(event_id: int, user_id: int) -> SurveyAnswer | None:
    return SurveyAnswer.query.filter_by(event_id=event_id, user_id=user_id).first()


# ---------------------------------------------------------------------------
# Member endpoints
# ---------------------------------------------------------------------------


@events_bp.route("/mine", methods=["GET"])
@login_required
def my_events():
    """Events the caller attended, newest first."""

    user = current_user()
    attendances = (
        Attendance.query.filter_by(user_id=user.id)
        .join(Event)
        .order_by(Event.event_date.desc(), Event.id.desc())
        .all()
    )
    answered = {
        answer.event_id
        for answer in SurveyAnswer.query.filter_by(user_id=user.id).all()
    }
    payload = []
    for attendance in attendances:
        data = attendance.event.to_dict()
        data["attended_at"] = attendance.to_dict()["attended_at"]
        data["survey_answered"] = attendance.event_id in answered
        payload.append(data)
    return jsonify({"events": payload})


@events_bp.route("/<code>", methods=["GET"])
@login_required
def get_event(code: str):
    """Event details and survey questions for the check-in page."""

    user = current_user()
    event = _get_event_by_code_or_404(code)
    data = event.to_dict(include_questions=True)
    data["attended"] = _attendance_for(event, user.id) is not None
    return jsonify({"event": data})


@events_bp.route("/<code>/attend", methods=["POST"])
@login_required
def attend_event(code: str):
    """Record attendance; checking in twice is a no-op."""

    user = current_user()
    event = _get_event_by_code_or_404(code)
    _require_active(event)
    event_id, user_id = event.id, user.id

    def record() -> tuple[Attendance, bool]:
        attendance = _attendance_for(event, user_id)
        if attendance is not None:
            return attendance, False
        attendance = Attendance(event_id=event_id, user_id=user_id)
        db.session.add(attendance)
        return attendance, True

    attendance, created = commit_upsert(record)
    if created:
        current_app.logger.info("user_id=%s attended event_id=%s", user_id, event_id)

    return jsonify(
        {
            "success": True,
            "already_attended": not created,
            "attendance": attendance.to_dict(),
        }
    )


@events_bp.route("/<code>/survey", methods=["POST"])
@login_required
def submit_survey(code: str):
    """Save the satisfaction survey and custom answers, overwriting earlier ones."""

    user = current_user()
    event = _get_event_by_code_or_404(code)
    _require_active(event)
    if _attendance_for(event, user.id) is None:
        raise Forbidden("Check in to this event before answering its survey.")

    data = parse_json_request(request, allow_empty=True)

    satisfaction = data.get("satisfaction")
    if satisfaction is not None:
        low, high = RATING_RANGE
        satisfaction = parse_int_in_range(satisfaction, "satisfaction", low, high)
    comment = optional_text(data, "comment")

    raw_answers = data.get("answers") or []
    if not isinstance(raw_answers, list):
        raise BadRequest("answers must be a list.")
    questions = {question.id: question for question in event.questions}
    answers: dict[int, str] = {}
    for item in raw_answers:
        if not isinstance(item, dict):
            raise BadRequest("Each answer must be an object.")
        question_id = item.get("question_id")
        question = questions.get(question_id) if isinstance(question_id, int) else None
        if question is None:
            raise BadRequest(f"Unknown question for this event: {question_id}.")
        answers[question.id] = _normalize_answer(question, item.get("answer"))

    event_id, user_id = event.id, user.id

    def save() -> SurveyAnswer:
        survey = _survey_for(event_id, user_id)
        if survey is None:
            survey = SurveyAnswer(event_id=event_id, user_id=user_id)
            db.session.add(survey)
        survey.satisfaction = satisfaction
        survey.comment = comment

        existing = {
            answer.question_id: answer
            for answer in CustomAnswer.query.filter_by(event_id=event_id, user_id=user_id).all()
        }
        for question_id, text in answers.items():
            answer = existing.get(question_id)
            if answer is None:
                answer = CustomAnswer(event_id=event_id, user_id=user_id, question_id=question_id)
                db.session.add(answer)
            answer.answer_text = text
        return survey

    survey = commit_upsert(save)
    return jsonify({"success": True, "survey": survey.to_dict()})


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------


@admin_events_bp.route("", methods=["POST"])
@admin_required
def create_event():
    """Create an active event with a fresh check-in code."""

    user = current_user()
    data = parse_json_request(request)
    title = optional_text(data, "title")
    if not title:
        raise BadRequest("title is required.")

    event = Event(
        title=title,
        description=optional_text(data, "description"),
        event_date=_parse_event_date(data.get("event_date")),
        event_code=_allocate_event_code(),
        is_active=True,
        created_by=user.id,
    )
    db.session.add(event)
    db.session.commit()

    current_app.logger.info(
        "user_id=%s created event_id=%s code=%s", user.id, event.id, event.event_code
    )
    return jsonify({"event": event.to_dict(include_questions=True)}), 201


@admin_events_bp.route("", methods=["GET"])
@admin_required
def list_events():
    """All events with attendance and survey counts."""

    attendance_counts = dict(
        db.session.query(Attendance.event_id, func.count(Attendance.id))
        .group_by(Attendance.event_id)
        .all()
    )
    survey_counts = dict(
        db.session.query(SurveyAnswer.event_id, func.count(SurveyAnswer.id))
        .group_by(SurveyAnswer.event_id)
        .all()
    )
    events = Event.query.order_by(Event.event_date.desc(), Event.id.desc()).all()

    payload = []
    for event in events:
        data = event.to_dict()
        data["attendance_count"] = attendance_counts.get(event.id, 0)
        data["survey_count"] = survey_counts.get(event.id, 0)
        payload.append(data)
    return jsonify({"events": payload})


@admin_events_bp.route("/<int:event_id>", methods=["PATCH"])
@admin_required
def update_event(event_id: int):
    event = _get_event_or_404(event_id)
    data = parse_json_request(request)

    if "title" in data:
        title = optional_text(data, "title")
        if not title:
            raise BadRequest("title must not be empty.")
        event.title = title
    if "description" in data:
        event.description = optional_text(data, "description")
    if "event_date" in data:
        event.event_date = _parse_event_date(data.get("event_date"))
    if "is_active" in data:
        parsed = parse_bool(data.get("is_active"))
        if parsed is None:
            raise BadRequest("is_active must be boolean.")
        event.is_active = parsed

    db.session.commit()
    return jsonify({"event": event.to_dict(include_questions=True)})


@admin_events_bp.route("/<int:event_id>", methods=["DELETE"])
@admin_required
def delete_event(event_id: int):
    event = _get_event_or_404(event_id)
    db.session.delete(event)
    db.session.commit()
    current_app.logger.info("user_id=%s deleted event_id=%s", current_user().id, event_id)
    return jsonify({"success": True})


@admin_events_bp.route("/<int:event_id>/questions", methods=["POST"])
@admin_required
def add_question(event_id: int):
    """Attach a custom survey question to an event."""

    event = _get_event_or_404(event_id)
    data = parse_json_request(request)

    question_text = optional_text(data, "question_text")
    if not question_text:
        raise BadRequest("question_text is required.")
    question_type = data.get("question_type")
    if question_type not in QUESTION_TYPES:
        raise BadRequest(
            "question_type must be one of: {}.".format(", ".join(QUESTION_TYPES))
        )

    sort_order = data.get("sort_order")
    if sort_order is None:
        sort_order = len(event.questions)
    elif isinstance(sort_order, bool) or not isinstance(sort_order, int):
        raise BadRequest("sort_order must be an integer.")

    question = SurveyQuestion(
        question_text=question_text,
        question_type=question_type,
        options=_parse_options(question_type, data.get("options")),
        sort_order=sort_order,
    )
    event.questions.append(question)
    db.session.commit()
    return jsonify({"question": question.to_dict()}), 201


@admin_events_bp.route("/<int:event_id>/questions/<int:question_id>", methods=["DELETE"])
@admin_required
def delete_question(event_id: int, question_id: int):
    event = _get_event_or_404(event_id)
    question = db.session.get(SurveyQuestion, question_id)
    if question is None or question.event_id != event.id:
        raise NotFound("Question not found.")
    db.session.delete(question)
    db.session.commit()
    return jsonify({"success": True})


def _attendee_rows(event: Event) -> list[dict]:
    """Join each attendance to its (at most one) survey answer and custom answers."""

    surveys = {answer.user_id: answer for answer in event.survey_answers}
    customs: dict[int, dict[int, str]] = {}
    for answer in event.custom_answers:
        customs.setdefault(answer.user_id, {})[answer.question_id] = answer.answer_text or ""

    rows = []
    for attendance in event.attendances:
        survey = surveys.get(attendance.user_id)
        rows.append(
            {
                "user": attendance.user.to_dict(),
                "attended_at": attendance.attended_at,
                "survey": survey.to_dict() if survey else None,
                "answers": customs.get(attendance.user_id, {}),
            }
        )
    return rows


def _load_event_with_answers(event_id: int) -> Event:
    event = (
        Event.query.options(
            selectinload(Event.attendances).selectinload(Attendance.user),
            selectinload(Event.survey_answers),
            selectinload(Event.custom_answers),
            selectinload(Event.questions),
        )
        .filter(Event.id == event_id)
        .first()
    )
    if event is None:
        raise NotFound("Event not found.")
    return event


@admin_events_bp.route("/<int:event_id>/attendances", methods=["GET"])
@admin_required
def list_attendances(event_id: int):
    event = _load_event_with_answers(event_id)
    attendees = []
    for row in _attendee_rows(event):
        row["attended_at"] = row["attended_at"].isoformat() if row["attended_at"] else None
        row["answers"] = {str(qid): text for qid, text in row["answers"].items()}
        attendees.append(row)
    return jsonify(
        {
            "event": event.to_dict(include_questions=True),
            "attendees": attendees,
            "count": len(attendees),
        }
    )


def build_event_csv(event: Event) -> str:
    """Render one row per attendee with survey and custom-question columns."""

    questions = list(event.questions)
    header = ["名前", "メールアドレス", "出席日時", "満足度", "コメント"]
    header.extend(question.question_text for question in questions)

    rows = []
    for row in _attendee_rows(event):
        survey = row["survey"] or {}
        attended_at = row["attended_at"]
        line = [
            row["user"]["name"],
            row["user"]["email"],
            attended_at.strftime("%Y-%m-%d %H:%M:%S") if attended_at else "",
            survey.get("satisfaction") if survey.get("satisfaction") is not None else "",
            survey.get("comment", ""),
        ]
        line.extend(row["answers"].get(question.id, "") for question in questions)
        rows.append(line)

    return render_csv(header, rows)


@admin_events_bp.route("/<int:event_id>/export", methods=["GET"])
@admin_required
def export_event(event_id: int):
    """Download attendance and survey answers for one event as CSV."""

    event = _load_event_with_answers(event_id)
    current_app.logger.info(
        "user_id=%s exported event_id=%s", current_user().id, event.id
    )
    return csv_response(build_event_csv(event), f"event_{event.event_code}_export.csv")
