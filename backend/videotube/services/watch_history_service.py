"""
Watch history: per (user, video) progress with merge-max semantics, completion tracking and stats.

recordProgress flow: NEW -> IN_PROGRESS -> COMPLETED. Completion is one-way; progress and
last_watched_at keep updating after it. Reports arrive out of order, so stored progress is the
max of everything reported.
"""
import logging
import math
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from sqlalchemy import case, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from videotube.core.constants import DEFAULT_PAGE_SIZE, WATCH_COMPLETION_THRESHOLD
from videotube.core.errors import NotFoundError, ValidationError
from videotube.models.user import User
from videotube.models.video import Video
from videotube.models.watch_history import WatchHistory
from videotube.services.pagination import Page, paginate

logger = logging.getLogger(__name__)

# deviceInfo keys accepted from clients -> column
DEVICE_FIELDS = {
    "user_agent": "device_user_agent",
    "platform": "device_platform",
    "browser": "device_browser",
}


@contextmanager
def _write(db: Session) -> Iterator[None]:
    try:
        yield
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def _validate_progress(watch_progress: Any) -> float:
    if isinstance(watch_progress, bool) or not isinstance(watch_progress, (int, float)):
        raise ValidationError("Valid watch progress is required")
    value = float(watch_progress)
    if math.isnan(value) or math.isinf(value) or value < 0:
        raise ValidationError("Valid watch progress is required")
    return value


def _merge_device_info(row: WatchHistory, device_info: dict[str, Any] | None) -> None:
    for key, column in DEVICE_FIELDS.items():
        value = (device_info or {}).get(key)
        if value:
            # clip to the column width; Postgres rejects overlong VARCHAR values
            setattr(row, column, str(value)[: WatchHistory.__table__.c[column].type.length])


def _recompute_completion(row: WatchHistory, duration: float | None, now: datetime) -> None:
    """Percentage from duration; unknown or non-positive duration leaves percentage and completion untouched."""
    if not duration or duration <= 0:
        return
    row.watch_percentage = min(100.0, row.watch_progress * 100 / duration)
    if row.watch_percentage >= WATCH_COMPLETION_THRESHOLD and not row.is_completed:
        row.is_completed = True
        row.completed_at = now


def _find(db: Session, user_id: int, video_id: int) -> WatchHistory | None:
    return (
        db.query(WatchHistory)
        .filter(WatchHistory.user_id == user_id, WatchHistory.video_id == video_id)
        .first()
    )


def _apply_report(
    row: WatchHistory,
    progress: float,
    duration: float | None,
    device_info: dict[str, Any] | None,
    now: datetime,
) -> None:
    merged = max(row.watch_progress or 0.0, progress)
    changed = merged != row.watch_progress
    row.watch_progress = merged
    row.watch_sessions = (row.watch_sessions or 0) + 1
    if changed:
        _recompute_completion(row, duration, now)
    row.last_watched_at = now
    _merge_device_info(row, device_info)


def record_progress(
    db: Session,
    user_id: int,
    video_id: int,
    watch_progress: float,
    device_info: dict[str, Any] | None = None,
) -> WatchHistory | None:
    """
    Upsert the (user, video) row from one client progress report and return it.
    Returns None without writing when the user has paused history tracking.
    A missing video (deleted mid-flight) only skips the percentage/completion update.
    """
    progress = _validate_progress(watch_progress)
    user = db.get(User, user_id)
    if user is not None and user.watch_history_paused:
        logger.debug("Watch history paused for user %s; report for video %s ignored", user_id, video_id)
        return None
    video = db.get(Video, video_id)
    duration = video.duration if video else None
    now = datetime.now(timezone.utc)

    row = _find(db, user_id, video_id)
    if row is None:
        row = WatchHistory(
            user_id=user_id,
            video_id=video_id,
            watch_progress=progress,
            watch_percentage=0.0,
            is_completed=False,
            watch_sessions=1,
            last_watched_at=now,
        )
        _recompute_completion(row, duration, now)
        _merge_device_info(row, device_info)
        try:
            with _write(db):
                db.add(row)
        except IntegrityError:
            # Concurrent first report for the same pair won the insert; fold this report into it.
            row = _find(db, user_id, video_id)
            if row is None:
                raise
            with _write(db):
                _apply_report(row, progress, duration, device_info, now)
    else:
        with _write(db):
            _apply_report(row, progress, duration, device_info, now)
    db.refresh(row)
    return row


def serialize_watch_entry(row: WatchHistory) -> dict[str, Any]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "video_id": row.video_id,
        "watch_progress": row.watch_progress,
        "watch_percentage": row.watch_percentage,
        "is_completed": bool(row.is_completed),
        "completed_at": _iso(row.completed_at),
        "last_watched_at": _iso(row.last_watched_at),
        "watch_sessions": row.watch_sessions,
        "device_info": {
            "user_agent": row.device_user_agent,
            "platform": row.device_platform,
            "browser": row.device_browser,
        },
        "created_at": _iso(row.created_at),
        "updated_at": _iso(row.updated_at),
    }


def get_watch_history(
    db: Session,
    user_id: int,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    search: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    channel_id: int | None = None,
    completed_only: bool = False,
) -> Page:
    """Most recently watched first, each entry joined with its video and channel. Filters combine with AND."""
    q = (
        db.query(WatchHistory, Video, User)
        .join(Video, Video.id == WatchHistory.video_id)
        .join(User, User.id == Video.owner_id)
        .filter(WatchHistory.user_id == user_id)
    )
    if date_from is not None:
        q = q.filter(WatchHistory.last_watched_at >= date_from)
    if date_to is not None:
        q = q.filter(WatchHistory.last_watched_at <= date_to)
    if completed_only:
        q = q.filter(WatchHistory.is_completed.is_(True))
    if channel_id is not None:
        q = q.filter(Video.owner_id == channel_id)
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        q = q.filter(
            or_(
                Video.title.ilike(pattern),
                Video.description.ilike(pattern),
                User.username.ilike(pattern),
            )
        )
    q = q.order_by(WatchHistory.last_watched_at.desc(), WatchHistory.id.desc())
    result = paginate(q, page, page_size)
    result["items"] = [
        {
            **serialize_watch_entry(entry),
            "video": {
                "id": video.id,
                "title": video.title,
                "description": video.description,
                "thumbnail": video.thumbnail,
                "duration": video.duration,
                "views": video.views,
                "created_at": _iso(video.created_at),
            },
            "channel": {
                "id": channel.id,
                "username": channel.username,
                "full_name": channel.full_name,
                "avatar": channel.avatar,
            },
        }
        for entry, video, channel in result["items"]
    ]
    return result


def format_watch_time(total_seconds: float) -> str:
    hours = int(total_seconds // 3600)
    minutes = int((total_seconds % 3600) // 60)
    return f"{hours}h {minutes}m"


def get_user_stats(db: Session, user_id: int) -> dict[str, Any]:
    """Aggregate over the user's history rows whose video still exists. Zeroed when there are none."""
    count, total_time, completed, avg_pct, sessions, oldest, latest = (
        db.query(
            func.count(WatchHistory.id),
            func.sum(WatchHistory.watch_progress),
            func.sum(case((WatchHistory.is_completed.is_(True), 1), else_=0)),
            func.avg(WatchHistory.watch_percentage),
            func.sum(WatchHistory.watch_sessions),
            func.min(WatchHistory.created_at),
            func.max(WatchHistory.last_watched_at),
        )
        .join(Video, Video.id == WatchHistory.video_id)
        .filter(WatchHistory.user_id == user_id)
        .one()
    )
    total_time = float(total_time or 0)
    return {
        "total_videos_watched": int(count or 0),
        "total_watch_time": total_time,
        "total_watch_time_formatted": format_watch_time(total_time),
        "completed_videos": int(completed or 0),
        "average_watch_percentage": float(avg_pct or 0),
        "total_watch_sessions": int(sessions or 0),
        "oldest_watch": _iso(oldest),
        "latest_watch": _iso(latest),
    }


def clear_watch_history(db: Session, user_id: int) -> int:
    with _write(db):
        deleted = db.query(WatchHistory).filter(WatchHistory.user_id == user_id).delete(synchronize_session=False)
    logger.info("Cleared %s watch history rows for user %s", deleted, user_id)
    return deleted


def remove_from_watch_history(db: Session, user_id: int, video_id: int) -> None:
    with _write(db):
        deleted = (
            db.query(WatchHistory)
            .filter(WatchHistory.user_id == user_id, WatchHistory.video_id == video_id)
            .delete(synchronize_session=False)
        )
    if not deleted:
        raise NotFoundError("Watch history entry not found")


def _set_paused(db: Session, user_id: int, paused: bool) -> dict[str, bool]:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    with _write(db):
        user.watch_history_paused = paused
    return {"paused": paused}


def pause_tracking(db: Session, user_id: int) -> dict[str, bool]:
    return _set_paused(db, user_id, True)


def resume_tracking(db: Session, user_id: int) -> dict[str, bool]:
    return _set_paused(db, user_id, False)


def get_tracking_status(db: Session, user_id: int) -> dict[str, bool]:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return {"paused": bool(user.watch_history_paused)}
