"""Tests for the selection endpoints."""

from __future__ import annotations

import pytest

from models.selection import VIEWPOINTS, Selection


def test_selections_require_login(client):
    assert client.get("/api/selections").status_code == 401
    response = client.post("/api/selections", json={"viewpoint": "research", "step": 1})
    assert response.status_code == 401


def test_set_and_list_selection(client, member_headers):
    response = client.post(
        "/api/selections",
        json={"viewpoint": "lesson_plan", "step": 2, "memo": "地域教材を使った"},
        headers=member_headers,
    )
    assert response.status_code == 200
    assert response.get_json()["selection"]["step"] == 2

    listed = client.get("/api/selections", headers=member_headers).get_json()["selections"]
    assert len(listed) == 1
    assert listed[0]["viewpoint"] == "lesson_plan"
    assert listed[0]["memo"] == "地域教材を使った"


def test_setting_same_viewpoint_twice_overwrites(client, app, member_headers):
    client.post(
        "/api/selections",
        json={"viewpoint": "research", "step": 1, "memo": "first"},
        headers=member_headers,
    )
    client.post(
        "/api/selections",
        json={"viewpoint": "research", "step": 3},
        headers=member_headers,
    )

    with app.app_context():
        rows = Selection.query.filter_by(viewpoint="research").all()
        assert len(rows) == 1
        assert rows[0].step == 3
        assert rows[0].memo == ""


@pytest.mark.parametrize("viewpoint", VIEWPOINTS)
def test_step_five_is_rejected_for_every_viewpoint(client, member_headers, viewpoint):
    response = client.post(
        "/api/selections",
        json={"viewpoint": viewpoint, "step": 5},
        headers=member_headers,
    )
    assert response.status_code == 400


@pytest.mark.parametrize(
    "payload",
    [
        {"viewpoint": "lesson_plan", "step": 0},
        {"viewpoint": "lesson_plan", "step": True},
        {"viewpoint": "lesson_plan", "step": "two"},
        {"viewpoint": "lesson_plan", "step": "--3"},
        {"viewpoint": "lesson_plan", "step": "-"},
        {"viewpoint": "lesson_plan", "step": "²"},
        {"viewpoint": "lesson_plan", "step": "３"},
        {"viewpoint": "lesson_plan", "step": 2.5},
        {"viewpoint": "lesson_plan"},
        {"viewpoint": "cooking", "step": 1},
        {"step": 1},
        {"viewpoint": "lesson_plan", "step": 1, "memo": 12},
    ],
)
def test_invalid_selection_rejected(client, member_headers, payload):
    response = client.post("/api/selections", json=payload, headers=member_headers)
    assert response.status_code == 400


def test_delete_selection_is_idempotent(client, member_headers):
    client.post(
        "/api/selections",
        json={"viewpoint": "connection", "step": 4},
        headers=member_headers,
    )

    first = client.delete("/api/selections/connection", headers=member_headers)
    second = client.delete("/api/selections/connection", headers=member_headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert client.get("/api/selections", headers=member_headers).get_json()["selections"] == []


def test_selections_are_scoped_to_caller(client, create_user, login, member_headers):
    create_user("other@example.com")
    other_headers = login("other@example.com")
    client.post(
        "/api/selections",
        json={"viewpoint": "student_eval", "step": 2},
        headers=other_headers,
    )

    client.delete("/api/selections/student_eval", headers=member_headers)

    assert client.get("/api/selections", headers=member_headers).get_json()["selections"] == []
    remaining = client.get("/api/selections", headers=other_headers).get_json()["selections"]
    assert [row["viewpoint"] for row in remaining] == ["student_eval"]


def test_bulk_replace_deselects_missing_viewpoints(client, member_headers):
    client.post(
        "/api/selections",
        json={"viewpoint": "research", "step": 2},
        headers=member_headers,
    )

    response = client.put(
        "/api/selections",
        json={
            "selections": {
                "lesson_plan": {"step": 1, "memo": "a"},
                "connection": {"step": 4},
            }
        },
        headers=member_headers,
    )

    assert response.status_code == 200
    rows = response.get_json()["selections"]
    assert {row["viewpoint"]: row["step"] for row in rows} == {
        "connection": 4,
        "lesson_plan": 1,
    }


def test_bulk_replace_is_all_or_nothing(client, member_headers):
    client.post(
        "/api/selections",
        json={"viewpoint": "research", "step": 2},
        headers=member_headers,
    )

    response = client.put(
        "/api/selections",
        json={"selections": {"lesson_plan": {"step": 1}, "research": {"step": 9}}},
        headers=member_headers,
    )

    assert response.status_code == 400
    rows = client.get("/api/selections", headers=member_headers).get_json()["selections"]
    assert [(row["viewpoint"], row["step"]) for row in rows] == [("research", 2)]
