"""
Notifications API: list, unread badge, create, mark read, delete, preferences.

Caller identified by access token (see api.deps). Every operation is scoped to the caller as
recipient; ids belonging to other users are skipped in bulk calls and 404 on single-item calls.
"""
import logging
from datetime import datetime
from typing import Any, NoReturn

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from videotube.api.deps import get_current_user_id, require_ids
from videotube.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from videotube.core.errors import VideoTubeError, service_error_to_http
from videotube.db.session import get_db
from videotube.models.notification import NotificationType
from videotube.services import notification_service
from videotube.services.related_entity import related_entity_from_fields

router = APIRouter()
logger = logging.getLogger(__name__)


def _handle_error(exc: Exception, log_message: str) -> NoReturn:
    if not isinstance(exc, VideoTubeError):
        logger.exception(log_message)
    raise service_error_to_http(exc) from exc


class NotificationIdsRequest(BaseModel):
    notification_ids: list[int] = Field(default_factory=list, max_length=500)


class CreateNotificationRequest(BaseModel):
    recipient_id: int
    type: str = NotificationType.SYSTEM.value
    title: str
    message: str
    related_video_id: int | None = None
    related_comment_id: int | None = None
    related_tweet_id: int | None = None
    related_channel_id: int | None = None
    action_url: str | None = None
    context: dict[str, Any] = Field(default_factory=dict, description="Display-only data (names, avatars, excerpts)")
    expires_at: datetime | None = None


# --- List ---


@router.get("/notifications")
def list_notifications(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    unread_only: bool = Query(False),
) -> dict[str, Any]:
    """Newest first, with sender profile. Use unread_only=true for the unread tab."""
    try:
        return dict(notification_service.get_user_notifications(db, user_id, page, limit, unread_only))
    except Exception as e:
        _handle_error(e, "Failed to fetch notifications")


@router.get("/notifications/unread-count")
def unread_count(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, int]:
    """Badge value; 0 when the store is unavailable."""
    return {"count": notification_service.get_unread_count(db, user_id)}


# --- Create ---


@router.post("/notifications")
def create_notification(
    body: CreateNotificationRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, Any]:
    """Create one notification sent by the caller. Sending to yourself is a no-op unless type=system."""
    try:
        related = related_entity_from_fields(
            video_id=body.related_video_id,
            comment_id=body.related_comment_id,
            tweet_id=body.related_tweet_id,
            channel_id=body.related_channel_id,
        )
        row = notification_service.create_notification(
            db,
            body.recipient_id,
            body.type,
            body.title,
            body.message,
            sender_id=user_id,
            related=related,
            action_url=body.action_url,
            context=body.context,
            expires_at=body.expires_at,
        )
    except Exception as e:
        _handle_error(e, "Failed to create notification")
    return {
        "ok": True,
        "created": row is not None,
        "notification": notification_service.serialize_notification(row) if row is not None else None,
    }


# --- Mark read ---


@router.patch("/notifications/mark-read")
def mark_read(
    body: NotificationIdsRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, Any]:
    ids = require_ids(body.notification_ids)
    try:
        marked = notification_service.mark_notifications_as_read(db, ids, user_id)
    except Exception as e:
        _handle_error(e, "Failed to mark notifications as read")
    return {"ok": True, "modified_count": marked}


@router.patch("/notifications/mark-all-read")
def mark_all_read(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, Any]:
    try:
        marked = notification_service.mark_all_as_read(db, user_id)
    except Exception as e:
        _handle_error(e, "Failed to mark all notifications as read")
    return {"ok": True, "modified_count": marked}


# --- Delete ---


@router.delete("/notifications/delete")
def delete_many(
    body: NotificationIdsRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, Any]:
    ids = require_ids(body.notification_ids)
    try:
        deleted = notification_service.delete_notifications(db, ids, user_id)
    except Exception as e:
        _handle_error(e, "Failed to delete notifications")
    return {"ok": True, "deleted_count": deleted}


@router.delete("/notifications/delete-all")
def delete_all(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, Any]:
    try:
        deleted = notification_service.delete_all_notifications(db, user_id)
    except Exception as e:
        _handle_error(e, "Failed to delete all notifications")
    return {"ok": True, "deleted_count": deleted}


# --- Preferences ---


@router.get("/notifications/preferences")
def get_preferences(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, bool]:
    try:
        return notification_service.get_notification_preferences(db, user_id)
    except Exception as e:
        _handle_error(e, "Failed to fetch notification preferences")


@router.patch("/notifications/preferences")
def update_preferences(
    updates: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, bool]:
    """Partial update, e.g. {"comment_likes": false}."""
    try:
        return notification_service.update_notification_preferences(db, user_id, updates)
    except Exception as e:
        _handle_error(e, "Failed to update notification preferences")


# --- Single notification ---


@router.patch("/notifications/{notification_id}/mark-read")
def mark_one_read(
    notification_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, Any]:
    try:
        row = notification_service.mark_single_as_read(db, notification_id, user_id)
    except Exception as e:
        _handle_error(e, "Failed to mark notification as read")
    return {"ok": True, "notification": notification_service.serialize_notification(row)}


@router.delete("/notifications/{notification_id}")
def delete_one(
    notification_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, Any]:
    try:
        notification_service.delete_single_notification(db, notification_id, user_id)
    except Exception as e:
        _handle_error(e, "Failed to delete notification")
    return {"ok": True, "id": notification_id}
