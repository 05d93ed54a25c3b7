"""VideoTube API client for the notification endpoints. Lowest level: sends the request, raises ClientError on failure."""
from typing import Any

import httpx

DEFAULT_TIMEOUT = 10.0


class ClientError(Exception):
    """Transport failure or non-2xx response. status_code is None when no response arrived."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class VideoTubeClient:
    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "VideoTubeClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            r = self._http.request(method, f"/api/v1{path}", **kwargs)
        except httpx.HTTPError as e:
            raise ClientError(f"VideoTube request failed: {e}") from e
        if not r.is_success:
            detail = r.text[:500] if r.text else ""
            try:
                payload = r.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict) and payload.get("detail"):
                detail = payload["detail"]
            raise ClientError(f"VideoTube API error {r.status_code}: {detail}", status_code=r.status_code)
        return r.json() if r.content else {}

    # --- Notifications ---

    def list_notifications(self, page: int = 1, limit: int = 20, unread_only: bool = False) -> dict[str, Any]:
        params = {"page": page, "limit": limit, "unread_only": str(unread_only).lower()}
        return self._request("GET", "/notifications", params=params)

    def unread_count(self) -> int:
        return int(self._request("GET", "/notifications/unread-count").get("count", 0))

    def mark_read(self, notification_ids: list[int]) -> int:
        body = self._request("PATCH", "/notifications/mark-read", json={"notification_ids": notification_ids})
        return int(body.get("modified_count", 0))

    def mark_single_read(self, notification_id: int) -> dict[str, Any]:
        return self._request("PATCH", f"/notifications/{notification_id}/mark-read")["notification"]

    def mark_all_read(self) -> int:
        return int(self._request("PATCH", "/notifications/mark-all-read").get("modified_count", 0))

    def delete_notifications(self, notification_ids: list[int]) -> int:
        body = self._request("DELETE", "/notifications/delete", json={"notification_ids": notification_ids})
        return int(body.get("deleted_count", 0))

    def delete_notification(self, notification_id: int) -> None:
        self._request("DELETE", f"/notifications/{notification_id}")

    def delete_all_notifications(self) -> int:
        return int(self._request("DELETE", "/notifications/delete-all").get("deleted_count", 0))

    def get_preferences(self) -> dict[str, bool]:
        return self._request("GET", "/notifications/preferences")

    def update_preferences(self, updates: dict[str, bool]) -> dict[str, bool]:
        return self._request("PATCH", "/notifications/preferences", json=updates)
