"""
Notification polling for a signed-in client.

NotificationPoller keeps the unread badge and the first page of notifications fresh on a
BackgroundScheduler (unread count every 30s, list every 60s). NotificationSession ties a poller
to login/logout so polling never outlives the session that started it.
"""
import logging
import threading
from typing import Any

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
import httpx

from videotube.client.api import ClientError, VideoTubeClient
from videotube.core.constants import (
    DEFAULT_PAGE_SIZE,
    NOTIFICATIONS_POLL_JOB_ID,
    NOTIFICATIONS_POLL_SECONDS,
    UNREAD_COUNT_POLL_JOB_ID,
    UNREAD_COUNT_POLL_SECONDS,
)

logger = logging.getLogger(__name__)


class NotificationPoller:
    def __init__(
        self,
        client: VideoTubeClient,
        *,
        unread_interval_seconds: float = UNREAD_COUNT_POLL_SECONDS,
        list_interval_seconds: float = NOTIFICATIONS_POLL_SECONDS,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._client = client
        self._unread_interval = unread_interval_seconds
        self._list_interval = list_interval_seconds
        self._page_size = page_size
        self._lock = threading.Lock()
        self._scheduler: BackgroundScheduler | None = None
        self.unread_count = 0
        self.notifications: list[dict[str, Any]] = []
        self.current_page = 0
        self.has_next_page = False
        self.last_error: str | None = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    # --- Polls ---

    def poll_unread_count(self) -> None:
        try:
            count = self._client.unread_count()
        except ClientError as e:
            self._record_error("unread count", e)
            return
        with self._lock:
            self.unread_count = count
            self.last_error = None

    def poll_notifications(self) -> None:
        try:
            page = self._client.list_notifications(page=1, limit=self._page_size)
        except ClientError as e:
            self._record_error("notifications", e)
            return
        with self._lock:
            self.notifications = list(page.get("items") or [])
            self.current_page = page.get("page", 1)
            self.has_next_page = bool(page.get("has_next_page"))
            self.last_error = None

    def poll_once(self) -> None:
        self.poll_unread_count()
        self.poll_notifications()

    def _record_error(self, what: str, exc: ClientError) -> None:
        logger.warning("Notification poll (%s) failed: %s", what, exc)
        with self._lock:
            self.last_error = str(exc)

    # --- Lifecycle ---

    def start(self) -> None:
        """Poll once now, then on the intervals. No-op when already running."""
        if self._scheduler is not None:
            return
        self.poll_once()
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            self.poll_unread_count,
            "interval",
            seconds=self._unread_interval,
            id=UNREAD_COUNT_POLL_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.add_job(
            self.poll_notifications,
            "interval",
            seconds=self._list_interval,
            id=NOTIFICATIONS_POLL_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler

    def stop(self) -> None:
        """Remove both jobs and wait for any running poll; nothing polls after this returns."""
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return
        for job_id in (UNREAD_COUNT_POLL_JOB_ID, NOTIFICATIONS_POLL_JOB_ID):
            try:
                scheduler.remove_job(job_id)
            except JobLookupError:
                pass
        scheduler.shutdown(wait=True)

    def reset(self) -> None:
        with self._lock:
            self.unread_count = 0
            self.notifications = []
            self.current_page = 0
            self.has_next_page = False
            self.last_error = None

    # --- Actions (server first, then local state) ---

    def load_more(self) -> None:
        if not self.has_next_page:
            return
        page = self._client.list_notifications(page=self.current_page + 1, limit=self._page_size)
        with self._lock:
            self.notifications.extend(page.get("items") or [])
            self.current_page = page.get("page", self.current_page + 1)
            self.has_next_page = bool(page.get("has_next_page"))

    def mark_as_read(self, notification_ids: list[int]) -> int:
        marked = self._client.mark_read(notification_ids)
        wanted = set(notification_ids)
        with self._lock:
            for n in self.notifications:
                if n.get("id") in wanted:
                    n["is_read"] = True
            self.unread_count = max(0, self.unread_count - marked)
        return marked

    def mark_all_as_read(self) -> int:
        marked = self._client.mark_all_read()
        with self._lock:
            for n in self.notifications:
                n["is_read"] = True
            self.unread_count = 0
        return marked

    def delete(self, notification_id: int) -> None:
        self._client.delete_notification(notification_id)
        with self._lock:
            removed = [n for n in self.notifications if n.get("id") == notification_id]
            self.notifications = [n for n in self.notifications if n.get("id") != notification_id]
            if any(not n.get("is_read") for n in removed):
                self.unread_count = max(0, self.unread_count - 1)


class NotificationSession:
    """One poller per signed-in session: login starts it, logout stops it and clears state."""

    def __init__(
        self,
        base_url: str,
        *,
        transport: httpx.BaseTransport | None = None,
        **poller_kwargs: Any,
    ) -> None:
        self._base_url = base_url
        self._transport = transport
        self._poller_kwargs = poller_kwargs
        self._client: VideoTubeClient | None = None
        self.poller: NotificationPoller | None = None

    @property
    def is_active(self) -> bool:
        return self.poller is not None and self.poller.is_running

    def login(self, access_token: str) -> NotificationPoller:
        if self._client is not None:
            self.logout()
        self._client = VideoTubeClient(self._base_url, access_token, transport=self._transport)
        self.poller = NotificationPoller(self._client, **self._poller_kwargs)
        self.poller.start()
        return self.poller

    def logout(self) -> None:
        poller, client = self.poller, self._client
        self.poller, self._client = None, None
        if poller is not None:
            poller.stop()
            poller.reset()
        if client is not None:
            client.close()
