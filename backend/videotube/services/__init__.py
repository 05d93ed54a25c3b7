from videotube.services import notification_service, watch_history_service

__all__ = ["notification_service", "watch_history_service"]
