from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from bazaar.services import listing_images, listing_query, moderation_service
from bazaar.utils.auth import require_actor
from bazaar.utils.results import http_status_for
from bazaar.utils.uploads import save_uploads, upload_tmp_dir


posts_bp = Blueprint("posts_bp", __name__, url_prefix="/api/posts")


def _respond(result: dict, ok_status: int = 200):
    return jsonify(result), http_status_for(result, ok_status)


def _form_payload() -> dict:
    if request.files or request.form:
        return request.form.to_dict()
    return request.get_json(silent=True) or {}


def _saved_images() -> list[str]:
    files = [f for f in request.files.getlist("images") if f and f.filename]
    return save_uploads(files, upload_tmp_dir(current_app.config))


@posts_bp.post("")
def create_post():
    actor = require_actor()
    payload = _form_payload()
    result = listing_images.create_listing(actor, payload, _saved_images())
    return _respond(result, 201)


@posts_bp.put("/<int:post_id>")
def update_post(post_id: int):
    actor = require_actor()
    payload = _form_payload()
    result = listing_images.update_listing(actor, post_id, payload, _saved_images())
    return _respond(result)


@posts_bp.delete("/<int:post_id>")
def delete_post(post_id: int):
    actor = require_actor()
    return _respond(moderation_service.owner_delete_post(post_id, actor))


@posts_bp.delete("/<int:post_id>/images")
def delete_post_image(post_id: int):
    actor = require_actor()
    object_id = (request.args.get("object_id") or "").strip()
    if not object_id:
        body = request.get_json(silent=True) or {}
        object_id = str(body.get("object_id") or "").strip()
    if not object_id:
        return jsonify({"status": "fail", "code": "VALIDATION_FAILED", "message": "object_id is required"}), 400
    return _respond(listing_images.delete_image(actor, post_id, object_id))


@posts_bp.get("/mine")
def my_posts():
    actor = require_actor()
    status_filter = (request.args.get("status") or "approved").strip().lower()
    return _respond(listing_query.owner_listings(actor.user_id, status_filter))


@posts_bp.get("/mine/pending")
def my_pending_posts():
    actor = require_actor()
    return _respond(listing_query.owner_listings(actor.user_id, "pending"))


@posts_bp.post("/<int:post_id>/report")
def report_post(post_id: int):
    actor = require_actor()
    return _respond(moderation_service.report_post(post_id, actor))
