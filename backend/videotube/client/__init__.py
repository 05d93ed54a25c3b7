from videotube.client.api import ClientError, VideoTubeClient
from videotube.client.poller import NotificationPoller, NotificationSession

__all__ = ["ClientError", "NotificationPoller", "NotificationSession", "VideoTubeClient"]
