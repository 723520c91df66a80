"""Persistence for the Post/PostDetails pair.

Both rows are written together. Callers never see a Post without its
PostDetails: `create` compensates when the second insert fails and
`update_and_bump_edit_count` writes both rows in one commit.
"""
from __future__ import annotations

import logging

from bazaar.errors import ValidationFailure
from bazaar.extensions import db
from bazaar.models import Post, PostDetails, ModerationState


logger = logging.getLogger(__name__)


POST_FIELDS = (
    "title",
    "price",
    "discount",
    "discount_price",
    "stock",
    "division_id",
    "district_id",
    "area_id",
    "address",
)
DETAIL_FIELDS = ("brand_id", "category_id", "model_id", "description", "keyword")

_INT_FIELDS = ("stock", "division_id", "district_id", "area_id", "brand_id", "category_id", "model_id")
_FLOAT_FIELDS = ("price", "discount_price")

OWNER_STATUS_FILTERS = {
    "approved": (ModerationState.APPROVED,),
    "pending": (ModerationState.REVIEW,),
    "declined": (ModerationState.DECLINED,),
}


def _truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


def split_listing_fields(payload, *, require_title: bool = True) -> tuple[dict, dict]:
    """Coerce a form/JSON payload into (post_fields, details_fields)."""
    payload = payload or {}
    post_fields: dict = {}
    details_fields: dict = {}
    for key in POST_FIELDS + DETAIL_FIELDS:
        if key not in payload:
            continue
        raw = payload.get(key)
        if key in _INT_FIELDS:
            value = _coerce(raw, int, key)
        elif key in _FLOAT_FIELDS:
            value = _coerce(raw, float, key)
            if value is not None and value < 0:
                raise ValidationFailure(f"{key} must not be negative")
        elif key == "discount":
            value = _truthy(raw)
        else:
            value = str(raw or "").strip()
        if key in POST_FIELDS:
            post_fields[key] = value
        else:
            details_fields[key] = value

    if require_title and not post_fields.get("title"):
        raise ValidationFailure("title is required")
    if "title" in post_fields and not post_fields["title"]:
        raise ValidationFailure("title must not be empty")
    if require_title and post_fields.get("price") is None:
        raise ValidationFailure("price is required")
    return post_fields, details_fields


def _coerce(raw, kind, key):
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        return kind(raw)
    except (TypeError, ValueError):
        raise ValidationFailure(f"{key} must be a number")


def create(post_fields: dict, details_fields: dict) -> tuple[Post, PostDetails]:
    post = Post(**post_fields)
    post.moderation_state = ModerationState.REVIEW
    db.session.add(post)
    db.session.commit()

    try:
        details = PostDetails(post_id=int(post.id), **details_fields)
        db.session.add(details)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("post_details_insert_failed post_id=%s", post.id)
        Post.query.filter_by(id=int(post.id)).delete(synchronize_session=False)
        db.session.commit()
        raise
    return post, details


def find_owned_by(user_id: int, status_filter: str | None = None) -> list[Post]:
    q = Post.query.filter(
        Post.owner_id == int(user_id),
        Post.moderation_state != ModerationState.DELETED,
    )
    states = OWNER_STATUS_FILTERS.get((status_filter or "").strip().lower())
    if states:
        q = q.filter(Post.moderation_state.in_(states))
    return q.order_by(Post.created_at.desc(), Post.id.desc()).all()


def visibility_predicate() -> list:
    """Approved and active: the one definition of a publicly visible post."""
    return [
        Post.moderation_state == ModerationState.APPROVED,
        Post.is_active.is_(True),
    ]


def find_public(post_id: int) -> Post | None:
    return Post.query.filter(Post.id == int(post_id), *visibility_predicate()).first()


def load_owned_pair(post_id: int, owner_id: int) -> tuple[Post | None, PostDetails | None]:
    post = Post.query.filter(
        Post.id == int(post_id),
        Post.owner_id == int(owner_id),
        Post.moderation_state != ModerationState.DELETED,
    ).first()
    if post is None:
        return None, None
    return post, PostDetails.query.filter_by(post_id=int(post.id)).first()


def update_and_bump_edit_count(post_id: int, details_id: int, post_fields: dict, details_fields: dict) -> bool:
    """Write both rows, force re-review and bump edit_count by one, in a single commit."""
    values = dict(post_fields or {})
    values["moderation_state"] = ModerationState.REVIEW
    values["edit_count"] = Post.edit_count + 1
    try:
        updated = Post.query.filter(
            Post.id == int(post_id),
            Post.moderation_state != ModerationState.DELETED,
        ).update(values, synchronize_session=False)
        if updated != 1:
            db.session.rollback()
            return False
        if details_fields:
            PostDetails.query.filter_by(id=int(details_id)).update(dict(details_fields), synchronize_session=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire_all()
    return True


def increment_views(post_id: int) -> int:
    updated = Post.query.filter_by(id=int(post_id)).update(
        {"views_count": Post.views_count + 1}, synchronize_session=False
    )
    db.session.commit()
    return int(updated or 0)
