"""Admin blueprint: member overview, role changes, deletion and CSV export."""

from __future__ import annotations

from collections import Counter

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func, or_
from sqlalchemy.orm import selectinload
from werkzeug.exceptions import BadRequest, NotFound

from models import db
from models.selection import STEP_LABELS, STEPS, VIEWPOINT_LABELS, VIEWPOINTS
from models.user import ROLE_LABELS, ROLES, User
from utils.auth import admin_required, current_user
from utils.csv_export import csv_response, render_csv
from utils.request_validation import parse_json_request

admin_bp = Blueprint("admin", __name__)

MEMBERS_EXPORT_FILENAME = "shakaika_members_export.csv"
UNSELECTED_LABEL = "未選択"


def _get_user_or_404(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("Member not found.")
    return user


def _selection_map(user: User) -> dict[str, dict]:
    return {
        selection.viewpoint: {"step": selection.step, "memo": selection.memo or ""}
        for selection in user.selections
    }


def _serialize_member(user: User) -> dict:
    data = user.to_dict()
    data["selections"] = _selection_map(user)
    return data


@admin_bp.route("/members", methods=["GET"])
@admin_required
def list_members():
    """Return every user with their selections keyed by viewpoint."""

    query = User.query.options(selectinload(User.selections))

    search_term = (request.args.get("q") or "").strip().lower()
    if search_term:
        like = f"%{search_term}%"
        query = query.filter(
            or_(
                func.lower(User.name).like(like),
                func.lower(User.email).like(like),
            )
        )

    members = query.order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify({"members": [_serialize_member(member) for member in members]})


@admin_bp.route("/stats", methods=["GET"])
@admin_required
def member_stats():
    """Summarise how far non-admin members have filled in the rubric."""

    members = (
        User.query.options(selectinload(User.selections))
        .filter(User.role != "admin")
        .all()
    )

    complete = partial = none = 0
    histogram = {viewpoint: Counter() for viewpoint in VIEWPOINTS}
    for member in members:
        chosen = {s.viewpoint for s in member.selections if s.viewpoint in histogram}
        if len(chosen) == len(VIEWPOINTS):
            complete += 1
        elif chosen:
            partial += 1
        else:
            none += 1
        for selection in member.selections:
            if selection.viewpoint in histogram:
                histogram[selection.viewpoint][selection.step] += 1

    return jsonify(
        {
            "total": len(members),
            "complete": complete,
            "partial": partial,
            "none": none,
            "viewpoints": {
                viewpoint: {str(step): histogram[viewpoint][step] for step in STEPS}
                for viewpoint in VIEWPOINTS
            },
        }
    )


@admin_bp.route("/members/<int:user_id>/role", methods=["PUT"])
@admin_required
def change_role(user_id: int):
    """Promote or demote a member."""

    data = parse_json_request(request)
    role = data.get("role")
    if role not in ROLES:
        raise BadRequest("role must be one of: {}.".format(", ".join(ROLES)))

    user = _get_user_or_404(user_id)
    user.role = role
    db.session.commit()

    current_app.logger.info(
        "user_id=%s set role of user_id=%s to %s", current_user().id, user.id, role
    )
    return jsonify({"success": True, "user": user.to_dict()})


@admin_bp.route("/members/<int:user_id>", methods=["DELETE"])
@admin_required
def delete_member(user_id: int):
    """Delete a member together with everything they recorded."""

    actor = current_user()
    if actor.id == user_id:
        raise BadRequest("You cannot delete your own account.")

    user = _get_user_or_404(user_id)
    db.session.delete(user)
    db.session.commit()

    current_app.logger.info("user_id=%s deleted user_id=%s", actor.id, user_id)
    return jsonify({"success": True})


def build_members_csv(members: list[User]) -> str:
    """Render one row per member with a step and memo column per viewpoint."""

    header = ["名前", "メールアドレス", "役割", "登録日"]
    for viewpoint in VIEWPOINTS:
        header.append(f"{VIEWPOINT_LABELS[viewpoint]}(ステップ)")
        header.append(f"{VIEWPOINT_LABELS[viewpoint]}(メモ)")

    rows = []
    for member in members:
        selections = _selection_map(member)
        row = [
            member.name,
            member.email,
            ROLE_LABELS.get(member.role, member.role),
            member.created_at.strftime("%Y-%m-%d %H:%M:%S") if member.created_at else "",
        ]
        for viewpoint in VIEWPOINTS:
            selection = selections.get(viewpoint)
            if selection is None:
                row.extend([UNSELECTED_LABEL, ""])
            else:
                step = selection["step"]
                row.extend([STEP_LABELS.get(step, f"STEP{step}"), selection["memo"]])
        rows.append(row)

    return render_csv(header, rows)


@admin_bp.route("/export", methods=["GET"])
@admin_required
def export_members():
    """Download every member's selections as CSV."""

    members = (
        User.query.options(selectinload(User.selections))
        .order_by(User.created_at.asc(), User.id.asc())
        .all()
    )
    current_app.logger.info(
        "user_id=%s exported %d members", current_user().id, len(members)
    )
    return csv_response(build_members_csv(members), MEMBERS_EXPORT_FILENAME)
