"""Joined, redacted read views over posts.

Reads are assembled from small predicate builders so the feed, filter,
search, detail and moderator lists share one join and differ only in the
predicates they stack on it.
"""
from __future__ import annotations

from sqlalchemy import and_, or_

from bazaar.errors import ValidationFailure
from bazaar.extensions import db
from bazaar.models import (
    AccountStatus,
    Area,
    Brand,
    BrandModel,
    Category,
    District,
    Division,
    ModerationState,
    Post,
    PostDetails,
    PostReport,
    User,
)
from bazaar.services import listing_store
from bazaar.utils.pagination import Pagination
from bazaar.utils.results import fail, success


MODERATION_FIELDS = (
    "on_review",
    "is_approved",
    "is_declined",
    "is_active",
    "is_deleted",
    "moderation_state",
    "report_count",
    "reported_by",
    "feedback",
)
FOREIGN_KEY_FIELDS = (
    "owner_id",
    "division_id",
    "district_id",
    "area_id",
    "brand_id",
    "category_id",
    "model_id",
    "post_id",
)
OWNER_SENSITIVE_FIELDS = (
    "email",
    "role",
    "password_hash",
    "email_verified",
    "nid_submitted",
    "nid_verified",
    "nid_number",
    "nid_front",
    "nid_back",
    "session_id",
    "login_attempt",
    "last_login",
    "account_status",
    "warning_count",
    "address",
    "created_at",
    "updated_at",
)
TAXONOMY_KEYS = ("division", "district", "area", "brand", "category", "model")

SORT_COLUMNS = {
    "created_at": Post.created_at,
    "updated_at": Post.updated_at,
    "price": Post.price,
    "title": Post.title,
    "views_count": Post.views_count,
    "report_count": Post.report_count,
}

MODERATION_LISTS = ("review", "approved", "declined", "reported")


def _joined():
    return (
        db.session.query(Post, User, PostDetails, Division, District, Area, Brand, Category, BrandModel)
        .join(User, User.id == Post.owner_id)
        .join(PostDetails, PostDetails.post_id == Post.id)
        .outerjoin(Division, Division.id == Post.division_id)
        .outerjoin(District, District.id == Post.district_id)
        .outerjoin(Area, Area.id == Post.area_id)
        .outerjoin(Brand, Brand.id == PostDetails.brand_id)
        .outerjoin(Category, Category.id == PostDetails.category_id)
        .outerjoin(BrandModel, BrandModel.id == PostDetails.model_id)
    )


def visibility_predicate() -> list:
    return listing_store.visibility_predicate()


def owner_status_predicate() -> list:
    return [User.account_status.in_(AccountStatus.PUBLIC)]


def location_predicate(*, division_id=None, district_id=None, area_id=None) -> list:
    clauses = []
    if division_id is not None:
        clauses.append(Post.division_id == int(division_id))
    if district_id is not None:
        clauses.append(Post.district_id == int(district_id))
    if area_id is not None:
        clauses.append(Post.area_id == int(area_id))
    return clauses


def taxonomy_predicate(*, brand_id=None, category_id=None, model_id=None) -> list:
    clauses = []
    if brand_id is not None:
        clauses.append(PostDetails.brand_id == int(brand_id))
    if category_id is not None:
        clauses.append(PostDetails.category_id == int(category_id))
    if model_id is not None:
        clauses.append(PostDetails.model_id == int(model_id))
    return clauses


def price_predicate(*, min_price=None, max_price=None) -> list:
    """Discounted posts match on discount_price, every post also matches on price."""
    if min_price is None and max_price is None:
        return []
    low = float(min_price) if min_price is not None else 0.0

    def in_range(column):
        bounds = [column >= low]
        if max_price is not None:
            bounds.append(column <= float(max_price))
        return and_(*bounds)

    discounted = and_(Post.discount.is_(True), Post.discount_price.isnot(None), in_range(Post.discount_price))
    return [or_(discounted, in_range(Post.price))]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def keyword_predicate(keyword: str | None) -> list:
    text = (keyword or "").strip()
    if not text:
        return []
    pattern = f"%{_escape_like(text)}%"
    return [
        or_(
            Post.title.ilike(pattern, escape="\\"),
            PostDetails.description.ilike(pattern, escape="\\"),
            PostDetails.keyword.ilike(pattern, escape="\\"),
        )
    ]


def _document(row, *, reported_by=None) -> dict:
    post, owner, details, division, district, area, brand, category, model = row
    doc = post.to_dict(reported_by=reported_by)
    for key, value in details.to_dict().items():
        if key in ("id", "created_at", "updated_at"):
            continue
        doc[key] = value
    doc["owner"] = owner.to_dict()
    for key, entity in zip(TAXONOMY_KEYS, (division, district, area, brand, category, model)):
        doc[key] = entity.to_dict() if entity is not None else None
    return doc


def redact(doc: dict) -> dict:
    """Strip moderation internals, resolved foreign keys and private owner fields."""
    out = {k: v for k, v in doc.items() if k not in MODERATION_FIELDS and k not in FOREIGN_KEY_FIELDS}
    owner = doc.get("owner")
    if isinstance(owner, dict):
        owner = {k: v for k, v in owner.items() if k not in OWNER_SENSITIVE_FIELDS}
        avatar = owner.get("avatar")
        if isinstance(avatar, dict):
            owner["avatar"] = {"url": avatar.get("url", "")}
        out["owner"] = owner
    for key in TAXONOMY_KEYS:
        entity = doc.get(key)
        if isinstance(entity, dict):
            out[key] = {"id": entity.get("id"), "name": entity.get("name", "")}
    return out


def summarize(doc: dict) -> dict:
    out = redact(doc)
    owner = out.get("owner") or {}
    out["owner"] = {"id": owner.get("id"), "name": owner.get("name", "")}
    return out


def _int_or_none(criteria: dict, key: str):
    raw = criteria.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationFailure(f"{key} must be an integer")


def _float_or_none(criteria: dict, key: str):
    raw = criteria.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationFailure(f"{key} must be a number")
    if value < 0:
        raise ValidationFailure(f"{key} must not be negative")
    return value


def criteria_predicates(criteria: dict | None) -> list:
    criteria = criteria or {}
    min_price = _float_or_none(criteria, "min_price")
    max_price = _float_or_none(criteria, "max_price")
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationFailure("min_price must not exceed max_price")
    return (
        location_predicate(
            division_id=_int_or_none(criteria, "division_id"),
            district_id=_int_or_none(criteria, "district_id"),
            area_id=_int_or_none(criteria, "area_id"),
        )
        + taxonomy_predicate(
            brand_id=_int_or_none(criteria, "brand_id"),
            category_id=_int_or_none(criteria, "category_id"),
            model_id=_int_or_none(criteria, "model_id"),
        )
        + price_predicate(min_price=min_price, max_price=max_price)
    )


def _public_rows(extra: list):
    return (
        _joined()
        .filter(*visibility_predicate(), *owner_status_predicate(), *extra)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .all()
    )


def public_feed() -> dict:
    data = [summarize(_document(row)) for row in _public_rows([])]
    return success(data, total=len(data))


def filter_listings(criteria: dict | None) -> dict:
    data = [summarize(_document(row)) for row in _public_rows(criteria_predicates(criteria))]
    return success(data, total=len(data))


def search_listings(keyword: str | None, criteria: dict | None = None) -> dict:
    rows = _public_rows(keyword_predicate(keyword) + criteria_predicates(criteria))
    if not rows:
        return fail("No data found", code="NOT_FOUND")
    data = [summarize(_document(row)) for row in rows]
    return success(data, total=len(data))


def listing_detail(post_id: int) -> dict:
    # Views are counted for every lookup, including ones that end up hidden.
    listing_store.increment_views(post_id)
    post = listing_store.find_public(post_id)
    if post is None:
        return fail("Post not found", code="NOT_FOUND")
    row = _joined().filter(Post.id == int(post.id)).first()
    if row is None:
        return fail("Post not found", code="NOT_FOUND")
    return success(redact(_document(row)))


def _reporters_by_post(post_ids: list[int]) -> dict:
    if not post_ids:
        return {}
    out: dict = {}
    rows = PostReport.query.filter(PostReport.post_id.in_(post_ids)).order_by(PostReport.id.asc()).all()
    for report in rows:
        out.setdefault(int(report.post_id), []).append(int(report.reporter_id))
    return out


def moderation_list(kind: str, pagination: Pagination) -> dict:
    """Paginated moderator view; keeps moderation fields, still hides private owner fields."""
    if kind not in MODERATION_LISTS:
        raise ValidationFailure(f"Unknown list '{kind}'")
    q = _joined()
    if kind == "reported":
        q = q.filter(Post.report_count > 0, Post.moderation_state != ModerationState.DELETED)
    else:
        q = q.filter(Post.moderation_state == kind)
    total = q.count()
    column = SORT_COLUMNS.get(pagination.sort_by, Post.created_at)
    order = column.desc() if pagination.descending else column.asc()
    rows = q.order_by(order, Post.id.desc()).offset(pagination.offset).limit(pagination.limit).all()

    reporters = _reporters_by_post([int(row[0].id) for row in rows])
    data = []
    for row in rows:
        doc = _document(row, reported_by=reporters.get(int(row[0].id), []))
        owner = doc["owner"]
        doc["owner"] = {
            "id": owner["id"],
            "name": owner["name"],
            "email": owner["email"],
            "account_status": owner["account_status"],
            "warning_count": owner["warning_count"],
        }
        data.append(doc)
    return success(data, total=total, pagination=pagination.meta(total))


def owner_listings(user_id: int, status_filter: str | None = None) -> dict:
    posts = listing_store.find_owned_by(user_id, status_filter)
    details = {}
    if posts:
        rows = PostDetails.query.filter(PostDetails.post_id.in_([int(p.id) for p in posts])).all()
        details = {int(d.post_id): d for d in rows}
    data = []
    for post in posts:
        doc = post.to_dict()
        d = details.get(int(post.id))
        doc["details"] = d.to_dict() if d is not None else None
        data.append(doc)
    return success(data, total=len(data))
