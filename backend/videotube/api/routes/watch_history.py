"""
Watch history API: progress reports from the player, history list, stats, clear/remove, pause/resume.

Mounted under /api/v1 so URLs are /api/v1/watch-history/record/{video_id}, /api/v1/watch-history/stats, etc.
"""
import logging
from datetime import datetime
from typing import Any, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from videotube.api.deps import get_current_user_id
from videotube.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from videotube.core.errors import VideoTubeError, service_error_to_http
from videotube.db.session import get_db
from videotube.models.video import Video
from videotube.services import watch_history_service

router = APIRouter()
logger = logging.getLogger(__name__)


def _handle_error(exc: Exception, log_message: str) -> NoReturn:
    if not isinstance(exc, VideoTubeError):
        logger.exception(log_message)
    raise service_error_to_http(exc) from exc


class DeviceInfo(BaseModel):
    user_agent: str | None = None
    platform: str | None = None
    browser: str | None = None


class RecordProgressRequest(BaseModel):
    # Seconds into the video. Type checks live in the service so bad values are a 400, not a 422.
    watch_progress: Any = None
    device_info: DeviceInfo | None = None


@router.post("/watch-history/record/{video_id}")
def record_progress(
    video_id: int,
    body: RecordProgressRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, Any]:
    """Player heartbeat. Progress only moves forward; a paused history acknowledges without storing."""
    if db.get(Video, video_id) is None:
        raise HTTPException(status_code=404, detail="Video not found")
    device_info = body.device_info.model_dump(exclude_none=True) if body.device_info else None
    try:
        row = watch_history_service.record_progress(db, user_id, video_id, body.watch_progress, device_info)
    except Exception as e:
        _handle_error(e, "Failed to record watch progress")
    if row is None:
        return {"ok": True, "recorded": False, "message": "Watch history is paused"}
    return {"ok": True, "recorded": True, "entry": watch_history_service.serialize_watch_entry(row)}


@router.get("/watch-history")
def list_watch_history(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    search: str | None = Query(None, max_length=200),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    channel_id: int | None = Query(None),
    completed_only: bool = Query(False),
) -> dict[str, Any]:
    try:
        return dict(
            watch_history_service.get_watch_history(
                db,
                user_id,
                page=page,
                page_size=limit,
                search=search,
                date_from=date_from,
                date_to=date_to,
                channel_id=channel_id,
                completed_only=completed_only,
            )
        )
    except Exception as e:
        _handle_error(e, "Failed to fetch watch history")


@router.get("/watch-history/stats")
def watch_stats(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, Any]:
    try:
        return watch_history_service.get_user_stats(db, user_id)
    except Exception as e:
        _handle_error(e, "Failed to compute watch stats")


@router.delete("/watch-history/clear")
def clear_history(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, Any]:
    try:
        deleted = watch_history_service.clear_watch_history(db, user_id)
    except Exception as e:
        _handle_error(e, "Failed to clear watch history")
    return {"ok": True, "deleted_count": deleted}


@router.delete("/watch-history/remove/{video_id}")
def remove_entry(
    video_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, Any]:
    try:
        watch_history_service.remove_from_watch_history(db, user_id, video_id)
    except Exception as e:
        _handle_error(e, "Failed to remove watch history entry")
    return {"ok": True, "video_id": video_id}


@router.patch("/watch-history/pause")
def pause(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, bool]:
    try:
        return watch_history_service.pause_tracking(db, user_id)
    except Exception as e:
        _handle_error(e, "Failed to pause watch history")


@router.patch("/watch-history/resume")
def resume(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, bool]:
    try:
        return watch_history_service.resume_tracking(db, user_id)
    except Exception as e:
        _handle_error(e, "Failed to resume watch history")


@router.get("/watch-history/status")
def tracking_status(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> dict[str, bool]:
    try:
        return watch_history_service.get_tracking_status(db, user_id)
    except Exception as e:
        _handle_error(e, "Failed to fetch watch history status")
