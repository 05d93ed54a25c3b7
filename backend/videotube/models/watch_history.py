"""Watch history: one row per (user, video), updated on every progress report.

watch_progress: seconds watched; merge-max, never decreases.
watch_percentage: min(100, 100 * progress / duration); kept as-is when duration is unknown.
is_completed/completed_at: set once when percentage first reaches the completion threshold.
device_*: last seen client strings; empty reports do not clear them.
"""
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from videotube.db.base import Base


class WatchHistory(Base):
    __tablename__ = "watch_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(Integer, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    watch_progress = Column(Float, nullable=False, default=0.0)
    watch_percentage = Column(Float, nullable=False, default=0.0)
    is_completed = Column(Boolean, nullable=False, default=False, server_default="0")
    completed_at = Column(DateTime(timezone=True), nullable=True)
    last_watched_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    watch_sessions = Column(Integer, nullable=False, default=1)
    device_user_agent = Column(String(512), nullable=False, default="")
    device_platform = Column(String(64), nullable=False, default="")
    device_browser = Column(String(64), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_watch_history_user_video"),
        CheckConstraint("watch_progress >= 0", name="ck_watch_history_progress_non_negative"),
        CheckConstraint("watch_percentage >= 0 AND watch_percentage <= 100", name="ck_watch_history_percentage_range"),
        CheckConstraint("watch_sessions >= 1", name="ck_watch_history_sessions_positive"),
        Index("ix_watch_history_user_last_watched", "user_id", "last_watched_at"),
        Index("ix_watch_history_user_completed", "user_id", "is_completed"),
        Index("ix_watch_history_user_created", "user_id", "created_at"),
    )
