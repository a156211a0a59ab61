"""
Entitlement core schema.

- viewers (identity projection), subscriptions (state records)
- series / episodes / video_assets (catalog)
- watch_progress with the (viewer_id, episode_id) upsert key
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic.
revision = "20261018_01_entitlement_core"
down_revision = None
branch_labels = None
depends_on = None


def _enum(name: str, *values: str) -> postgresql.ENUM:
    return postgresql.ENUM(*values, name=name, create_type=False)


viewer_role = _enum("viewer_role", "viewer", "creator", "admin")
account_status = _enum("account_status", "active", "suspended", "banned")
subscription_plan = _enum("subscription_plan", "weekly", "monthly")
subscription_status = _enum("subscription_status", "trial", "active", "past_due", "canceled", "expired")
content_status = _enum("content_status", "draft", "pending", "published", "archived")
asset_status = _enum("asset_status", "pending", "uploading", "processing", "ready", "failed")

_ENUMS = (viewer_role, account_status, subscription_plan, subscription_status, content_status, asset_status)


def _timestamps(updated: bool = True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False))
    return cols


def upgrade() -> None:
    bind = op.get_bind()
    for e in _ENUMS:
        e.create(bind, checkfirst=True)

    op.create_table(
        "viewers",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("display_name", sa.String(length=120), nullable=True),
        sa.Column("role", viewer_role, nullable=False),
        sa.Column("status", account_status, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_viewers"),
    )
    op.create_index("ix_viewers_status", "viewers", ["status"])

    op.create_table(
        "subscriptions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("viewer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("plan", subscription_plan, nullable=False),
        sa.Column("status", subscription_status, nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("renews_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_subscriptions"),
        sa.ForeignKeyConstraint(["viewer_id"], ["viewers.id"], name="fk_subscriptions_viewer_id_viewers", ondelete="CASCADE"),
        sa.CheckConstraint("amount >= 0", name="ck_subscriptions_amount_nonneg"),
    )
    op.create_index(
        "ix_subscriptions_viewer_latest",
        "subscriptions",
        ["viewer_id", sa.text("start_date DESC"), sa.text("created_at DESC")],
    )

    op.create_table(
        "series",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("synopsis", sa.Text(), nullable=True),
        sa.Column("poster_url", sa.String(length=1024), nullable=True),
        sa.Column("status", content_status, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_series"),
    )
    op.create_index("ix_series_status", "series", ["status"])

    op.create_table(
        "video_assets",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("storage_key", sa.String(length=1024), nullable=True),
        sa.Column("status", asset_status, nullable=False),
        sa.Column("content_type", sa.String(length=128), nullable=True),
        sa.Column("size_bytes", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_video_assets"),
    )

    op.create_table(
        "episodes",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("series_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("synopsis", sa.Text(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("thumbnail_url", sa.String(length=1024), nullable=True),
        sa.Column("status", content_status, nullable=False),
        sa.Column("video_asset_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_episodes"),
        sa.ForeignKeyConstraint(["series_id"], ["series.id"], name="fk_episodes_series_id_series", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["video_asset_id"], ["video_assets.id"], name="fk_episodes_video_asset_id_video_assets", ondelete="SET NULL"
        ),
        sa.UniqueConstraint("series_id", "order", name="uq_episodes_series_order"),
        sa.CheckConstraint('"order" >= 1', name="ck_episodes_order_positive"),
        sa.CheckConstraint("duration_seconds IS NULL OR duration_seconds > 0", name="ck_episodes_duration_positive"),
    )
    op.create_index("ix_episodes_series_id", "episodes", ["series_id"])

    op.create_table(
        "watch_progress",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("viewer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("episode_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("progress_seconds", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("completed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("last_watched_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id", name="pk_watch_progress"),
        sa.ForeignKeyConstraint(["viewer_id"], ["viewers.id"], name="fk_watch_progress_viewer_id_viewers", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["episode_id"], ["episodes.id"], name="fk_watch_progress_episode_id_episodes", ondelete="CASCADE"),
        sa.UniqueConstraint("viewer_id", "episode_id", name="uq_watch_progress_viewer_episode"),
        sa.CheckConstraint("progress_seconds >= 0", name="ck_watch_progress_progress_nonneg"),
    )
    op.create_index(
        "ix_watch_progress_viewer_recent",
        "watch_progress",
        ["viewer_id", sa.text("last_watched_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("ix_watch_progress_viewer_recent", table_name="watch_progress")
    op.drop_table("watch_progress")
    op.drop_index("ix_episodes_series_id", table_name="episodes")
    op.drop_table("episodes")
    op.drop_table("video_assets")
    op.drop_index("ix_series_status", table_name="series")
    op.drop_table("series")
    op.drop_index("ix_subscriptions_viewer_latest", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_index("ix_viewers_status", table_name="viewers")
    op.drop_table("viewers")

    bind = op.get_bind()
    for e in reversed(_ENUMS):
        e.drop(bind, checkfirst=True)
