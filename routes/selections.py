"""Selections blueprint: a member's step per viewpoint."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import BadRequest

from models import commit_upsert, db
from models.selection import STEPS, VIEWPOINTS, Selection
from models.user import User
from utils.auth import current_user, login_required
from utils.request_validation import optional_text, parse_int_in_range, parse_json_request

selections_bp = Blueprint("selections", __name__)


def _validate_entry(viewpoint: object, data: dict) -> tuple[str, int, str]:
    if not isinstance(viewpoint, str) or viewpoint not in VIEWPOINTS:
        raise BadRequest("viewpoint must be one of: {}.".format(", ".join(VIEWPOINTS)))
    step = parse_int_in_range(data.get("step"), "step", STEPS[0], STEPS[-1])
    memo = optional_text(data, "memo")
    return viewpoint, step, memo


def _selection_for(user_id: int, viewpoint: str) -> Selection | None:
    return Selection.query.filter_by(user_id=user_id, viewpoint=viewpoint).first()


def upsert_selection(user: User, viewpoint: str, step: int, memo: str) -> Selection:
    """Insert or overwrite the (user, viewpoint) row. Caller commits."""

    selection = _selection_for(user.id, viewpoint)
    if selection is None:
        selection = Selection(user_id=user.id, viewpoint=viewpoint)
        db.session.add(selection)
    selection.step = step
    selection.memo = memo
    return selection


@selections_bp.route("", methods=["GET"])
@login_required
def list_selections():
    """Return every selection the caller has made."""

    user = current_user()
    rows = (
        Selection.query.filter_by(user_id=user.id)
        .order_by(Selection.viewpoint.asc())
        .all()
    )
    return jsonify({"selections": [row.to_dict() for row in rows]})


@selections_bp.route("", methods=["POST"])
@login_required
def set_selection():
    """Set the step (and memo) for a single viewpoint."""

    user = current_user()
    data = parse_json_request(request)
    viewpoint, step, memo = _validate_entry(data.get("viewpoint"), data)

    selection = commit_upsert(lambda: upsert_selection(user, viewpoint, step, memo))
    return jsonify({"success": True, "selection": selection.to_dict()})


@selections_bp.route("", methods=["PUT"])
@login_required
def replace_selections():
    """Save the whole rubric at once; omitted viewpoints are deselected."""

    user = current_user()
    data = parse_json_request(request, allow_empty=True)
    mapping = data.get("selections", {})
    if not isinstance(mapping, dict):
        raise BadRequest("selections must be an object keyed by viewpoint.")

    entries = []
    for viewpoint, entry in mapping.items():
        if not isinstance(entry, dict):
            raise BadRequest(f"Selection for {viewpoint} must be an object.")
        entries.append(_validate_entry(viewpoint, entry))

    chosen = {viewpoint for viewpoint, _, _ in entries}

    def replace() -> None:
        for existing in Selection.query.filter_by(user_id=user.id).all():
            if existing.viewpoint not in chosen:
                db.session.delete(existing)
        for viewpoint, step, memo in entries:
            upsert_selection(user, viewpoint, step, memo)

    commit_upsert(replace)

    rows = (
        Selection.query.filter_by(user_id=user.id)
        .order_by(Selection.viewpoint.asc())
        .all()
    )
    return jsonify({"success": True, "selections": [row.to_dict() for row in rows]})


@selections_bp.route("/<viewpoint>", methods=["DELETE"])
@login_required
def delete_selection(viewpoint: str):
    """Deselect a viewpoint. Deleting a missing selection is not an error."""

    user = current_user()
    Selection.query.filter_by(user_id=user.id, viewpoint=viewpoint).delete(
        synchronize_session=False
    )
    db.session.commit()
    return jsonify({"success": True})
