from __future__ import annotations

from flask import Blueprint, jsonify, request

from bazaar.services import listing_query
from bazaar.utils.results import http_status_for


public_posts_bp = Blueprint("public_posts_bp", __name__, url_prefix="/api/public/posts")


def _criteria() -> dict:
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        return body
    return request.args.to_dict()


@public_posts_bp.get("")
def feed():
    result = listing_query.public_feed()
    return jsonify(result), http_status_for(result)


@public_posts_bp.post("/filter")
def filter_posts():
    result = listing_query.filter_listings(_criteria())
    return jsonify(result), http_status_for(result)


@public_posts_bp.post("/search")
def search_posts():
    criteria = _criteria()
    keyword = request.args.get("keyword")
    if keyword is None:
        keyword = criteria.get("keyword")
    result = listing_query.search_listings(keyword, criteria)
    return jsonify(result), http_status_for(result)


@public_posts_bp.get("/<int:post_id>")
def post_detail(post_id: int):
    result = listing_query.listing_detail(post_id)
    return jsonify(result), http_status_for(result)
