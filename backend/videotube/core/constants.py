"""
Centralized constants for notifications, watch history and the scheduler.

Change limits or job IDs here instead of scattering literals across services and routes.
"""
# Scheduler job IDs (must match ids used in main.py add_job)
NOTIFICATION_CLEANUP_JOB_ID = "notification_cleanup"

# Notification field caps (validated before insert)
NOTIFICATION_TITLE_MAX_LENGTH = 200
NOTIFICATION_MESSAGE_MAX_LENGTH = 500
# Quoted user content (comment body, tweet text) in notification context
NOTIFICATION_EXCERPT_LENGTH = 100

# Pagination: 1-based pages; hard cap keeps responses bounded
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Watch history: percentage at which a video counts as completed
WATCH_COMPLETION_THRESHOLD = 90.0

# Client poller intervals (seconds)
UNREAD_COUNT_POLL_SECONDS = 30
NOTIFICATIONS_POLL_SECONDS = 60
UNREAD_COUNT_POLL_JOB_ID = "poll_unread_count"
NOTIFICATIONS_POLL_JOB_ID = "poll_notifications"
