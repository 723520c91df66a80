"""listing moderation schema

Revision ID: 3c7a9e1b5d20
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3c7a9e1b5d20"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(bind, table_name: str) -> bool:
    return sa.inspect(bind).has_table(table_name)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _indexes(table: str, columns, *, unique: bool = False) -> None:
    for column in columns:
        op.create_index(f"ix_{table}_{column}", table, [column], unique=unique)


def upgrade():
    bind = op.get_bind()

    if not _table_exists(bind, "users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("phone", sa.String(length=32), nullable=True),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("role", sa.String(length=32), nullable=False),
            sa.Column("account_status", sa.String(length=16), nullable=False),
            sa.Column("warning_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("email_verified", sa.Boolean(), nullable=False),
            sa.Column("nid_submitted", sa.Boolean(), nullable=False),
            sa.Column("nid_verified", sa.Boolean(), nullable=False),
            sa.Column("nid_number", sa.String(length=32), nullable=True),
            sa.Column("nid_front", sa.String(length=1024), nullable=True),
            sa.Column("nid_back", sa.String(length=1024), nullable=True),
            sa.Column("avatar_url", sa.String(length=1024), nullable=True),
            sa.Column("avatar_object_id", sa.String(length=255), nullable=True),
            sa.Column("address", sa.String(length=255), nullable=True),
            sa.Column("session_id", sa.String(length=64), nullable=True),
            sa.Column("login_attempt", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("last_login", sa.DateTime(), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
        _indexes("users", ["email", "phone"], unique=True)
        _indexes("users", ["account_status"])

    if not _table_exists(bind, "divisions"):
        op.create_table(
            "divisions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name"),
        )

    if not _table_exists(bind, "districts"):
        op.create_table(
            "districts",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("division_id", sa.Integer(), nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(["division_id"], ["divisions.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _indexes("districts", ["division_id"])

    if not _table_exists(bind, "areas"):
        op.create_table(
            "areas",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("district_id", sa.Integer(), nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(["district_id"], ["districts.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _indexes("areas", ["district_id"])

    if not _table_exists(bind, "categories"):
        op.create_table(
            "categories",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("parent_id", sa.Integer(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            *_timestamps(),
            sa.ForeignKeyConstraint(["parent_id"], ["categories.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _indexes("categories", ["parent_id"])

    if not _table_exists(bind, "brands"):
        op.create_table(
            "brands",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("category_id", sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _indexes("brands", ["category_id"])

    if not _table_exists(bind, "brand_models"):
        op.create_table(
            "brand_models",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("brand_id", sa.Integer(), nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(["brand_id"], ["brands.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _indexes("brand_models", ["brand_id"])

    if not _table_exists(bind, "posts"):
        op.create_table(
            "posts",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("owner_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=160), nullable=False),
            sa.Column("price", sa.Float(), nullable=False),
            sa.Column("discount", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("discount_price", sa.Float(), nullable=True),
            sa.Column("stock", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("main_image_url", sa.String(length=1024), nullable=True),
            sa.Column("main_image_object_id", sa.String(length=255), nullable=True),
            sa.Column("division_id", sa.Integer(), nullable=True),
            sa.Column("district_id", sa.Integer(), nullable=True),
            sa.Column("area_id", sa.Integer(), nullable=True),
            sa.Column("address", sa.String(length=255), nullable=True),
            sa.Column("moderation_state", sa.String(length=16), nullable=False, server_default="review"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            sa.Column("report_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("feedback", sa.Text(), nullable=True),
            sa.Column("edit_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("views_count", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
            sa.ForeignKeyConstraint(["division_id"], ["divisions.id"]),
            sa.ForeignKeyConstraint(["district_id"], ["districts.id"]),
            sa.ForeignKeyConstraint(["area_id"], ["areas.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _indexes(
            "posts",
            ["owner_id", "main_image_object_id", "division_id", "district_id", "area_id", "moderation_state", "created_at"],
        )

    if not _table_exists(bind, "post_details"):
        op.create_table(
            "post_details",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("post_id", sa.Integer(), nullable=False),
            sa.Column("brand_id", sa.Integer(), nullable=True),
            sa.Column("category_id", sa.Integer(), nullable=True),
            sa.Column("model_id", sa.Integer(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("keyword", sa.String(length=255), nullable=True),
            *[
                sa.Column(f"img{n}_{suffix}", sa.String(length=length), nullable=True)
                for n in range(1, 5)
                for suffix, length in (("url", 1024), ("object_id", 255))
            ],
            *_timestamps(),
            sa.ForeignKeyConstraint(["post_id"], ["posts.id"], deferrable=True, initially="DEFERRED"),
            sa.ForeignKeyConstraint(["brand_id"], ["brands.id"]),
            sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
            sa.ForeignKeyConstraint(["model_id"], ["brand_models.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _indexes("post_details", ["post_id"], unique=True)
        _indexes("post_details", ["brand_id", "category_id", "model_id"])

    if not _table_exists(bind, "post_reports"):
        op.create_table(
            "post_reports",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("post_id", sa.Integer(), nullable=False),
            sa.Column("reporter_id", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["post_id"], ["posts.id"], deferrable=True, initially="DEFERRED"),
            sa.ForeignKeyConstraint(["reporter_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("post_id", "reporter_id", name="uq_post_reports_post_reporter"),
        )
        _indexes("post_reports", ["post_id", "reporter_id"])

    if not _table_exists(bind, "moderation_transitions"):
        op.create_table(
            "moderation_transitions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("post_id", sa.Integer(), nullable=False),
            sa.Column("action", sa.String(length=32), nullable=False),
            sa.Column("from_state", sa.String(length=16), nullable=False),
            sa.Column("to_state", sa.String(length=16), nullable=False),
            sa.Column("actor_id", sa.Integer(), nullable=True),
            sa.Column("actor_role", sa.String(length=32), nullable=False),
            sa.Column("reason", sa.String(length=500), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        _indexes("moderation_transitions", ["post_id", "created_at"])

    if not _table_exists(bind, "notifications"):
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("channel", sa.String(length=32), nullable=False),
            sa.Column("title", sa.String(length=160), nullable=True),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("status", sa.String(length=24), nullable=False),
            sa.Column("provider", sa.String(length=64), nullable=True),
            sa.Column("provider_ref", sa.String(length=120), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("sent_at", sa.DateTime(), nullable=True),
            sa.Column("meta", sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        _indexes("notifications", ["user_id"])


def downgrade():
    bind = op.get_bind()
    for table in (
        "notifications",
        "moderation_transitions",
        "post_reports",
        "post_details",
        "posts",
        "brand_models",
        "brands",
        "categories",
        "areas",
        "districts",
        "divisions",
        "users",
    ):
        if _table_exists(bind, table):
            op.drop_table(table)
