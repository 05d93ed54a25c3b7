"""
Admin: clear per-user activity (notifications, watch history) for local resets and test environments.
Users, videos, comments and tweets are left alone. Tables: see videotube.db.tables.USER_ACTIVITY_TABLE_NAMES.
"""
import logging

from sqlalchemy.orm import Session

from videotube.models.notification import Notification
from videotube.models.watch_history import WatchHistory

logger = logging.getLogger(__name__)


def clear_user_activity(db: Session, user_id: int | None = None) -> dict[str, int]:
    """
    Delete notifications and watch history rows, for one user (recipient / viewer) or everyone.
    Returns dict of table -> deleted count.
    """
    notifications = db.query(Notification)
    history = db.query(WatchHistory)
    if user_id is not None:
        notifications = notifications.filter(Notification.recipient_id == user_id)
        history = history.filter(WatchHistory.user_id == user_id)
    deleted: dict[str, int] = {}
    deleted["notifications"] = notifications.delete(synchronize_session=False)
    deleted["watch_history"] = history.delete(synchronize_session=False)
    db.commit()
    logger.info("clear_user_activity(user_id=%s): %s", user_id, deleted)
    return deleted
