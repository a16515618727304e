"""Upserts that lose an insert race fall back to updating the stored row."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

import routes.events as events_routes
import routes.selections as selections_routes
from models import commit_upsert, db
from models.event import Attendance
from models.selection import Selection
from models.survey import SurveyAnswer


def _miss_first_lookup(monkeypatch, module, name: str) -> list:
    """Make the first lookup report no row, as if another request inserted it meanwhile."""

    real = getattr(module, name)
    calls = []

    def lookup(*args):
        calls.append(args)
        if len(calls) == 1:
            return None
        return real(*args)

    monkeypatch.setattr(module, name, lookup)
    return calls


def _create_event(client, admin_headers) -> dict:
    response = client.post(
        "/api/admin/events",
        json={"title": "研究会", "event_date": "2026-07-20"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    return response.get_json()["event"]


def test_duplicate_check_in_is_reported_as_already_attended(
    client, app, monkeypatch, admin_headers, member_headers
):
    event = _create_event(client, admin_headers)
    code = event["event_code"]
    assert client.post(f"/api/events/{code}/attend", headers=member_headers).status_code == 200
    calls = _miss_first_lookup(monkeypatch, events_routes, "_attendance_for")

    response = client.post(f"/api/events/{code}/attend", headers=member_headers)

    assert response.status_code == 200
    assert response.get_json()["already_attended"] is True
    assert len(calls) == 2
    with app.app_context():
        assert Attendance.query.filter_by(event_id=event["id"]).count() == 1


def test_racing_survey_submission_overwrites(
    client, app, monkeypatch, admin_headers, member_headers
):
    event = _create_event(client, admin_headers)
    code = event["event_code"]
    client.post(f"/api/events/{code}/attend", headers=member_headers)
    client.post(f"/api/events/{code}/survey", json={"satisfaction": 2}, headers=member_headers)
    _miss_first_lookup(monkeypatch, events_routes, "_survey_for")

    response = client.post(
        f"/api/events/{code}/survey",
        json={"satisfaction": 5, "comment": "again"},
        headers=member_headers,
    )

    assert response.status_code == 200
    with app.app_context():
        surveys = SurveyAnswer.query.filter_by(event_id=event["id"]).all()
        assert [(s.satisfaction, s.comment) for s in surveys] == [(5, "again")]


def test_racing_selection_overwrites(client, app, monkeypatch, member_headers):
    client.post(
        "/api/selections",
        json={"viewpoint": "lesson_plan", "step": 1},
        headers=member_headers,
    )
    _miss_first_lookup(monkeypatch, selections_routes, "_selection_for")

    response = client.post(
        "/api/selections",
        json={"viewpoint": "lesson_plan", "step": 3, "memo": "later"},
        headers=member_headers,
    )

    assert response.status_code == 200
    assert response.get_json()["selection"]["step"] == 3
    with app.app_context():
        rows = Selection.query.filter_by(viewpoint="lesson_plan").all()
        assert [(row.step, row.memo) for row in rows] == [(3, "later")]


def test_racing_bulk_replace_overwrites(client, app, monkeypatch, member_headers):
    client.post(
        "/api/selections",
        json={"viewpoint": "research", "step": 2},
        headers=member_headers,
    )
    _miss_first_lookup(monkeypatch, selections_routes, "_selection_for")

    response = client.put(
        "/api/selections",
        json={"selections": {"research": {"step": 4}}},
        headers=member_headers,
    )

    assert response.status_code == 200
    assert [(r["viewpoint"], r["step"]) for r in response.get_json()["selections"]] == [
        ("research", 4)
    ]


def test_commit_upsert_propagates_persistent_conflicts(app, create_user):
    user_id = create_user("conflict@example.com")

    with app.app_context():
        db.session.add(Selection(user_id=user_id, viewpoint="research", step=1, memo=""))
        db.session.commit()

        def always_insert():
            db.session.add(Selection(user_id=user_id, viewpoint="research", step=2, memo=""))

        with pytest.raises(IntegrityError):
            commit_upsert(always_insert)
        db.session.rollback()

        assert Selection.query.filter_by(user_id=user_id).count() == 1
