"""Notification: per-recipient event with read state and display metadata.

recipient_id: who receives; the only user allowed to read, mark or delete the row.
sender_id: who triggered it; NULL for system notifications.
type: closed set (NotificationType) for filtering and per-category preferences.
related_*_id: at most one is set (CHECK constraint; RelatedEntity in services keeps it structural).
context: JSON, display-only denormalized data (names, avatars, excerpts); never authoritative.
expires_at: rows past this time are removed by the cleanup job.
"""
import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.sql import func

from videotube.db.base import Base, JSONType


class NotificationType(str, enum.Enum):
    VIDEO_UPLOAD_SUCCESS = "video_upload_success"
    COMMENT_LIKE = "comment_like"
    TWEET_LIKE = "tweet_like"
    COMMENT_REPLY = "comment_reply"
    CONTENT_DELETION = "content_deletion"
    NEW_SUBSCRIPTION = "new_subscription"
    VIDEO_COMMENT = "video_comment"
    SYSTEM = "system"


NOTIFICATION_TYPES = tuple(t.value for t in NotificationType)

_RELATED_COLUMNS = ("related_video_id", "related_comment_id", "related_tweet_id", "related_channel_id")
_AT_MOST_ONE_RELATED = " + ".join(
    f"(CASE WHEN {c} IS NULL THEN 0 ELSE 1 END)" for c in _RELATED_COLUMNS
) + " <= 1"
_TYPE_IN_ENUM = "type IN (" + ", ".join(f"'{t}'" for t in NOTIFICATION_TYPES) + ")"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    type = Column(String(32), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(String(500), nullable=False)
    is_read = Column(Boolean, nullable=False, default=False, server_default="0")

    related_video_id = Column(Integer, ForeignKey("videos.id", ondelete="SET NULL"), nullable=True)
    related_comment_id = Column(Integer, ForeignKey("comments.id", ondelete="SET NULL"), nullable=True)
    related_tweet_id = Column(Integer, ForeignKey("tweets.id", ondelete="SET NULL"), nullable=True)
    related_channel_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    action_url = Column(String(500), nullable=True)
    context = Column(JSONType, nullable=False, default=dict)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(_AT_MOST_ONE_RELATED, name="ck_notifications_single_related_entity"),
        CheckConstraint(_TYPE_IN_ENUM, name="ck_notifications_type"),
        Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
        Index("ix_notifications_recipient_read_created", "recipient_id", "is_read", "created_at"),
        Index("ix_notifications_recipient_type_created", "recipient_id", "type", "created_at"),
        Index("ix_notifications_expires_at", "expires_at"),
    )

    def __repr__(self):
        return f"<Notification {self.id}: {self.type} -> {self.recipient_id}>"
