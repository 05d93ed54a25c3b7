"""Runs every NOTIFICATION_CLEANUP_INTERVAL_SECONDS: delete notifications whose expires_at has passed."""
import logging

from videotube.db.session import SessionLocal
from videotube.services.notification_service import purge_expired_notifications

logger = logging.getLogger(__name__)


def run_notification_cleanup_job() -> int:
    db = SessionLocal()
    try:
        deleted = purge_expired_notifications(db)
        if deleted:
            logger.info("Notification cleanup: deleted %s expired notifications", deleted)
        return deleted
    except Exception as e:
        logger.warning("Notification cleanup failed: %s", e, exc_info=True)
        return 0
    finally:
        db.close()
