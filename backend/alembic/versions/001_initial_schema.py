"""Initial schema: users, videos, comments, tweets, notifications, watch_history.

users/videos/comments/tweets carry only the fields notifications and watch history read.
notifications: at most one related_*_id (check constraint); indexes cover "my recent",
"my unread" and "my recent of type X"; expires_at index for the cleanup job.
watch_history: one row per (user, video); indexes cover history list, completed filter and stats.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_NOTIFICATION_TYPES = (
    "video_upload_success",
    "comment_like",
    "tweet_like",
    "comment_reply",
    "content_deletion",
    "new_subscription",
    "video_comment",
    "system",
)
_RELATED_COLUMNS = ("related_video_id", "related_comment_id", "related_tweet_id", "related_channel_id")

_json = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("avatar", sa.String(500), nullable=False, server_default=""),
        sa.Column("watch_history_paused", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notification_preferences", _json, nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_full_name", "users", ["full_name"], unique=False)

    op.create_table(
        "videos",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("thumbnail", sa.String(500), nullable=True),
        sa.Column("duration", sa.Float(), nullable=False, server_default="0"),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_videos_owner_id", "videos", ["owner_id"], unique=False)

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("video_id", sa.Integer(), sa.ForeignKey("videos.id", ondelete="CASCADE"), nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comments_video_id", "comments", ["video_id"], unique=False)
    op.create_index("ix_comments_owner_id", "comments", ["owner_id"], unique=False)

    op.create_table(
        "tweets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tweets_owner_id", "tweets", ["owner_id"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("recipient_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.String(500), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("related_video_id", sa.Integer(), sa.ForeignKey("videos.id", ondelete="SET NULL"), nullable=True),
        sa.Column("related_comment_id", sa.Integer(), sa.ForeignKey("comments.id", ondelete="SET NULL"), nullable=True),
        sa.Column("related_tweet_id", sa.Integer(), sa.ForeignKey("tweets.id", ondelete="SET NULL"), nullable=True),
        sa.Column("related_channel_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action_url", sa.String(500), nullable=True),
        sa.Column("context", _json, nullable=False, server_default="{}"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            " + ".join(f"(CASE WHEN {c} IS NULL THEN 0 ELSE 1 END)" for c in _RELATED_COLUMNS) + " <= 1",
            name="ck_notifications_single_related_entity",
        ),
        sa.CheckConstraint(
            "type IN (" + ", ".join(f"'{t}'" for t in _NOTIFICATION_TYPES) + ")",
            name="ck_notifications_type",
        ),
    )
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"], unique=False)
    op.create_index("ix_notifications_type", "notifications", ["type"], unique=False)
    op.create_index(
        "ix_notifications_recipient_created",
        "notifications",
        ["recipient_id", "created_at"],
        unique=False,
        postgresql_ops={"created_at": "DESC"},
    )
    op.create_index(
        "ix_notifications_recipient_read_created",
        "notifications",
        ["recipient_id", "is_read", "created_at"],
        unique=False,
        postgresql_ops={"created_at": "DESC"},
    )
    op.create_index(
        "ix_notifications_recipient_type_created",
        "notifications",
        ["recipient_id", "type", "created_at"],
        unique=False,
        postgresql_ops={"created_at": "DESC"},
    )
    op.create_index("ix_notifications_expires_at", "notifications", ["expires_at"], unique=False)

    op.create_table(
        "watch_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("video_id", sa.Integer(), sa.ForeignKey("videos.id", ondelete="CASCADE"), nullable=False),
        sa.Column("watch_progress", sa.Float(), nullable=False, server_default="0"),
        sa.Column("watch_percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_watched_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("watch_sessions", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("device_user_agent", sa.String(512), nullable=False, server_default=""),
        sa.Column("device_platform", sa.String(64), nullable=False, server_default=""),
        sa.Column("device_browser", sa.String(64), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "video_id", name="uq_watch_history_user_video"),
        sa.CheckConstraint("watch_progress >= 0", name="ck_watch_history_progress_non_negative"),
        sa.CheckConstraint(
            "watch_percentage >= 0 AND watch_percentage <= 100", name="ck_watch_history_percentage_range"
        ),
        sa.CheckConstraint("watch_sessions >= 1", name="ck_watch_history_sessions_positive"),
    )
    op.create_index("ix_watch_history_user_id", "watch_history", ["user_id"], unique=False)
    op.create_index(
        "ix_watch_history_user_last_watched",
        "watch_history",
        ["user_id", "last_watched_at"],
        unique=False,
        postgresql_ops={"last_watched_at": "DESC"},
    )
    op.create_index("ix_watch_history_user_completed", "watch_history", ["user_id", "is_completed"], unique=False)
    op.create_index("ix_watch_history_user_created", "watch_history", ["user_id", "created_at"], unique=False)


def downgrade() -> None:
    op.drop_table("watch_history")
    op.drop_table("notifications")
    op.drop_table("tweets")
    op.drop_table("comments")
    op.drop_table("videos")
    op.drop_table("users")
