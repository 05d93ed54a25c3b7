from videotube.models.comment import Comment
from videotube.models.notification import Notification, NotificationType
from videotube.models.tweet import Tweet
from videotube.models.user import User
from videotube.models.video import Video
from videotube.models.watch_history import WatchHistory

__all__ = [
    "Comment",
    "Notification",
    "NotificationType",
    "Tweet",
    "User",
    "Video",
    "WatchHistory",
]
