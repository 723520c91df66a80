from __future__ import annotations

from flask import Blueprint, jsonify, request

from bazaar.services import listing_query, moderation_service
from bazaar.utils.auth import current_actor, require_moderator
from bazaar.utils.pagination import calculate_pagination
from bazaar.utils.results import http_status_for


admin_moderation_bp = Blueprint("admin_moderation_bp", __name__, url_prefix="/api/admin")


def _respond(result: dict):
    return jsonify(result), http_status_for(result)


def _body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _moderation_list(kind: str):
    require_moderator(current_actor())
    pagination = calculate_pagination(
        page=request.args.get("page"),
        limit=request.args.get("limit"),
        sort_by=request.args.get("sort_by"),
        sort_order=request.args.get("sort_order"),
    )
    return _respond(listing_query.moderation_list(kind, pagination))


@admin_moderation_bp.get("/posts/review")
def review_posts():
    return _moderation_list("review")


@admin_moderation_bp.get("/posts/approved")
def approved_posts():
    return _moderation_list("approved")


@admin_moderation_bp.get("/posts/declined")
def declined_posts():
    return _moderation_list("declined")


@admin_moderation_bp.get("/posts/reported")
def reported_posts():
    return _moderation_list("reported")


@admin_moderation_bp.post("/posts/<int:post_id>/approve")
def approve_post(post_id: int):
    return _respond(moderation_service.approve_post(post_id, current_actor()))


@admin_moderation_bp.post("/posts/<int:post_id>/decline")
def decline_post(post_id: int):
    body = _body()
    return _respond(moderation_service.decline_post(post_id, current_actor(), body.get("feedback") or ""))


@admin_moderation_bp.post("/posts/<int:post_id>/feedback")
def post_feedback(post_id: int):
    body = _body()
    return _respond(moderation_service.send_feedback(post_id, current_actor(), body.get("message") or ""))


@admin_moderation_bp.post("/posts/<int:post_id>/withdraw-report")
def withdraw_report(post_id: int):
    actor = require_moderator(current_actor())
    raw = _body().get("reporter_id")
    try:
        reporter_id = int(raw) if raw not in (None, "") else None
    except (TypeError, ValueError):
        return jsonify({"status": "fail", "code": "VALIDATION_FAILED", "message": "reporter_id must be an integer"}), 400
    return _respond(moderation_service.withdraw_report(post_id, actor, reporter_id))


@admin_moderation_bp.delete("/posts/<int:post_id>")
def delete_post(post_id: int):
    reason = str(_body().get("reason") or "")
    return _respond(moderation_service.moderator_delete_post(post_id, current_actor(), reason))


@admin_moderation_bp.post("/users/<int:user_id>/warn")
def warn_user(user_id: int):
    return _respond(moderation_service.warn_account(user_id, current_actor(), str(_body().get("reason") or "")))


@admin_moderation_bp.post("/users/<int:user_id>/restrict")
def restrict_user(user_id: int):
    return _respond(moderation_service.restrict_account(user_id, current_actor(), str(_body().get("reason") or "")))


@admin_moderation_bp.post("/users/<int:user_id>/withdraw-restriction")
def withdraw_user_restriction(user_id: int):
    return _respond(moderation_service.withdraw_restriction(user_id, current_actor()))
