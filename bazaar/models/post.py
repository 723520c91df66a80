from datetime import datetime

import sqlalchemy as sa

from bazaar.extensions import db


class ModerationState:
    REVIEW = "review"
    APPROVED = "approved"
    DECLINED = "declined"
    DELETED = "deleted"

    ALL = (REVIEW, APPROVED, DECLINED, DELETED)


MAIN_SLOT = "main"
DETAIL_SLOTS = ("img1", "img2", "img3", "img4")
IMAGE_SLOTS = (MAIN_SLOT,) + DETAIL_SLOTS

# slot name -> (url column, object id column)
_DETAIL_SLOT_COLUMNS = {
    "img1": ("img1_url", "img1_object_id"),
    "img2": ("img2_url", "img2_object_id"),
    "img3": ("img3_url", "img3_object_id"),
    "img4": ("img4_url", "img4_object_id"),
}


def _slot_payload(url, object_id):
    if not url and not object_id:
        return None
    return {"url": url or "", "object_id": object_id or ""}


class Post(db.Model):
    __tablename__ = "posts"

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    title = db.Column(db.String(160), nullable=False)
    price = db.Column(db.Float, nullable=False, default=0.0)
    discount = db.Column(db.Boolean, nullable=False, default=False, server_default=sa.text("false"))
    discount_price = db.Column(db.Float, nullable=True)
    stock = db.Column(db.Integer, nullable=False, default=1, server_default="1")

    main_image_url = db.Column(db.String(1024), nullable=True)
    main_image_object_id = db.Column(db.String(255), nullable=True, index=True)

    division_id = db.Column(db.Integer, db.ForeignKey("divisions.id"), nullable=True, index=True)
    district_id = db.Column(db.Integer, db.ForeignKey("districts.id"), nullable=True, index=True)
    area_id = db.Column(db.Integer, db.ForeignKey("areas.id"), nullable=True, index=True)
    address = db.Column(db.String(255), nullable=True)

    # Replaces the onReview/isApproved/isDeclined/isDeleted flag combinations.
    moderation_state = db.Column(
        db.String(16),
        nullable=False,
        default=ModerationState.REVIEW,
        server_default=ModerationState.REVIEW,
        index=True,
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True, server_default=sa.text("true"))
    report_count = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    feedback = db.Column(db.Text, nullable=True)

    edit_count = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    views_count = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def on_review(self) -> bool:
        return self.moderation_state == ModerationState.REVIEW

    @property
    def is_approved(self) -> bool:
        return self.moderation_state == ModerationState.APPROVED

    @property
    def is_declined(self) -> bool:
        return self.moderation_state == ModerationState.DECLINED

    @property
    def is_deleted(self) -> bool:
        return self.moderation_state == ModerationState.DELETED

    @property
    def main_image(self):
        return _slot_payload(self.main_image_url, self.main_image_object_id)

    def set_main_image(self, url: str | None, object_id: str | None) -> None:
        self.main_image_url = url
        self.main_image_object_id = object_id

    def to_dict(self, *, reported_by: list[int] | None = None) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title or "",
            "price": float(self.price or 0.0),
            "discount": bool(self.discount),
            "discount_price": float(self.discount_price) if self.discount_price is not None else None,
            "stock": int(self.stock or 0),
            "main_image": self.main_image,
            "division_id": self.division_id,
            "district_id": self.district_id,
            "area_id": self.area_id,
            "address": self.address or "",
            "moderation_state": self.moderation_state or ModerationState.REVIEW,
            "on_review": self.on_review,
            "is_approved": self.is_approved,
            "is_declined": self.is_declined,
            "is_deleted": self.is_deleted,
            "is_active": bool(self.is_active),
            "report_count": int(self.report_count or 0),
            "reported_by": list(reported_by or []),
            "feedback": self.feedback or "",
            "edit_count": int(self.edit_count or 0),
            "views_count": int(self.views_count or 0),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class PostDetails(db.Model):
    __tablename__ = "post_details"

    id = db.Column(db.Integer, primary_key=True)
    # Deferred so the Post row can be removed first inside the deletion transaction.
    post_id = db.Column(
        db.Integer,
        db.ForeignKey("posts.id", deferrable=True, initially="DEFERRED"),
        nullable=False,
        unique=True,
        index=True,
    )

    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=True, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    model_id = db.Column(db.Integer, db.ForeignKey("brand_models.id"), nullable=True, index=True)

    description = db.Column(db.Text, nullable=True)
    keyword = db.Column(db.String(255), nullable=True)

    img1_url = db.Column(db.String(1024), nullable=True)
    img1_object_id = db.Column(db.String(255), nullable=True)
    img2_url = db.Column(db.String(1024), nullable=True)
    img2_object_id = db.Column(db.String(255), nullable=True)
    img3_url = db.Column(db.String(1024), nullable=True)
    img3_object_id = db.Column(db.String(255), nullable=True)
    img4_url = db.Column(db.String(1024), nullable=True)
    img4_object_id = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def image_slot(self, name: str):
        url_col, object_col = _DETAIL_SLOT_COLUMNS[name]
        return _slot_payload(getattr(self, url_col), getattr(self, object_col))

    def set_image_slot(self, name: str, url: str | None, object_id: str | None) -> None:
        url_col, object_col = _DETAIL_SLOT_COLUMNS[name]
        setattr(self, url_col, url)
        setattr(self, object_col, object_id)

    @staticmethod
    def slot_columns(name: str) -> tuple[str, str]:
        return _DETAIL_SLOT_COLUMNS[name]

    def to_dict(self) -> dict:
        payload = {
            "id": self.id,
            "post_id": self.post_id,
            "brand_id": self.brand_id,
            "category_id": self.category_id,
            "model_id": self.model_id,
            "description": self.description or "",
            "keyword": self.keyword or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        for name in DETAIL_SLOTS:
            payload[name] = self.image_slot(name)
        return payload


class PostReport(db.Model):
    __tablename__ = "post_reports"
    __table_args__ = (
        db.UniqueConstraint("post_id", "reporter_id", name="uq_post_reports_post_reporter"),
    )

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(
        db.Integer,
        db.ForeignKey("posts.id", deferrable=True, initially="DEFERRED"),
        nullable=False,
        index=True,
    )
    reporter_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
