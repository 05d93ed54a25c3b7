"""
Notifications: create from domain events, list with sender profile, unread badge, read/delete.

Best-effort subsystem: event builders drop events whose entities are gone (return None) and never
fail the caller's action on a store error. Direct mutations (create, mark read, delete) propagate
store errors. Only the recipient may read, mark or delete a notification; rows owned by someone
else are silently skipped in bulk operations.
"""
import enum
import functools
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterator, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from videotube.config import settings
from videotube.core.constants import (
    DEFAULT_PAGE_SIZE,
    NOTIFICATION_EXCERPT_LENGTH,
    NOTIFICATION_MESSAGE_MAX_LENGTH,
    NOTIFICATION_TITLE_MAX_LENGTH,
)
from videotube.core.errors import NotFoundError, ValidationError
from videotube.models.comment import Comment
from videotube.models.notification import Notification, NotificationType
from videotube.models.tweet import Tweet
from videotube.models.user import User
from videotube.models.video import Video
from videotube.services.pagination import Page, paginate
from videotube.services.related_entity import (
    RelatedChannel,
    RelatedComment,
    RelatedEntity,
    RelatedTweet,
    RelatedVideo,
    related_columns,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ContentType(str, enum.Enum):
    """Kinds of content a deletion notice can be about."""

    VIDEO = "video"
    COMMENT = "comment"
    TWEET = "tweet"
    PLAYLIST = "playlist"

    @property
    def label(self) -> str:
        return self.value.capitalize()


# Per-category switches. Stored per user as overrides only; missing keys use these defaults.
PREFERENCE_DEFAULTS: dict[str, bool] = {
    "video_upload": True,
    "comment_likes": True,
    "tweet_likes": True,
    "comment_replies": True,
    "new_subscriptions": True,
    "video_comments": True,
    "email_notifications": False,
    "push_notifications": True,
}

# Types without an entry (content_deletion, system) cannot be switched off.
TYPE_PREFERENCE_KEYS: dict[NotificationType, str] = {
    NotificationType.VIDEO_UPLOAD_SUCCESS: "video_upload",
    NotificationType.COMMENT_LIKE: "comment_likes",
    NotificationType.TWEET_LIKE: "tweet_likes",
    NotificationType.COMMENT_REPLY: "comment_replies",
    NotificationType.NEW_SUBSCRIPTION: "new_subscriptions",
    NotificationType.VIDEO_COMMENT: "video_comments",
}


@contextmanager
def _write(db: Session) -> Iterator[None]:
    """Statements inside the block plus the commit; any store error rolls the session back and propagates."""
    try:
        yield
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def _excerpt(text: str | None) -> str:
    return (text or "")[:NOTIFICATION_EXCERPT_LENGTH]


def _sender_projection(user: User | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "full_name": user.full_name,
        "avatar": user.avatar,
    }


def serialize_notification(row: Notification, sender: User | None = None) -> dict[str, Any]:
    return {
        "id": row.id,
        "recipient_id": row.recipient_id,
        "sender_id": row.sender_id,
        "sender": _sender_projection(sender),
        "type": row.type,
        "title": row.title,
        "message": row.message,
        "is_read": bool(row.is_read),
        "related_video_id": row.related_video_id,
        "related_comment_id": row.related_comment_id,
        "related_tweet_id": row.related_tweet_id,
        "related_channel_id": row.related_channel_id,
        "metadata": {
            "action_url": row.action_url,
            "context": row.context or {},
        },
        "expires_at": _iso(row.expires_at),
        "created_at": _iso(row.created_at),
        "updated_at": _iso(row.updated_at),
    }


# --- Create ---


def create_notification(
    db: Session,
    recipient_id: int,
    type: NotificationType | str,
    title: str,
    message: str,
    *,
    sender_id: int | None = None,
    related: RelatedEntity | None = None,
    action_url: str | None = None,
    context: dict[str, Any] | None = None,
    expires_at: datetime | None = None,
) -> Notification | None:
    """
    Validate and persist one notification. Returns None (nothing written) when the sender is the
    recipient, unless it is a system notification. Raises ValidationError before any write.
    """
    if recipient_id is None:
        raise ValidationError("recipient is required")
    try:
        ntype = NotificationType(type)
    except ValueError as e:
        raise ValidationError(f"Unknown notification type: {type}") from e
    title = (title or "").strip()
    message = (message or "").strip()
    if not title or len(title) > NOTIFICATION_TITLE_MAX_LENGTH:
        raise ValidationError(f"title must be 1-{NOTIFICATION_TITLE_MAX_LENGTH} characters")
    if not message or len(message) > NOTIFICATION_MESSAGE_MAX_LENGTH:
        raise ValidationError(f"message must be 1-{NOTIFICATION_MESSAGE_MAX_LENGTH} characters")
    if context is not None and not isinstance(context, dict):
        raise ValidationError("context must be an object")
    columns = related_columns(related)

    if sender_id is not None and sender_id == recipient_id and ntype is not NotificationType.SYSTEM:
        logger.debug("Skipping self-notification %s for user %s", ntype.value, recipient_id)
        return None

    if expires_at is None and settings.notification_default_ttl_days:
        expires_at = datetime.now(timezone.utc) + timedelta(days=settings.notification_default_ttl_days)

    row = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        type=ntype.value,
        title=title,
        message=message,
        is_read=False,
        action_url=action_url,
        context=dict(context or {}),
        expires_at=expires_at,
        **columns,
    )
    with _write(db):
        db.add(row)
    db.refresh(row)
    return row


# --- Event builders ---


def _best_effort(fn: Callable[..., T]) -> Callable[..., T | None]:
    """Store errors inside an event builder are logged and dropped; the triggering action already succeeded."""

    @functools.wraps(fn)
    def wrapper(db: Session, *args, **kwargs):
        try:
            return fn(db, *args, **kwargs)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("%s failed: %s", fn.__name__, e, exc_info=True)
            return None

    return wrapper


def _wants(recipient: User, ntype: NotificationType) -> bool:
    key = TYPE_PREFERENCE_KEYS.get(ntype)
    if key is None:
        return True
    prefs = recipient.notification_preferences or {}
    return bool(prefs.get(key, PREFERENCE_DEFAULTS[key]))


@_best_effort
def notify_video_upload(db: Session, video_id: int, user_id: int) -> Notification | None:
    video = db.get(Video, video_id)
    recipient = db.get(User, user_id)
    if not video or not recipient:
        return None
    if not _wants(recipient, NotificationType.VIDEO_UPLOAD_SUCCESS):
        return None
    return create_notification(
        db,
        recipient.id,
        NotificationType.VIDEO_UPLOAD_SUCCESS,
        "Video Upload Successful",
        f'Your video "{video.title}" has been uploaded successfully!',
        related=RelatedVideo(video.id),
        action_url=f"/video/{video.id}",
        context={"video_title": video.title, "video_thumbnail": video.thumbnail},
    )


@_best_effort
def notify_comment_like(db: Session, comment_id: int, liked_by_id: int) -> Notification | None:
    comment = db.get(Comment, comment_id)
    if not comment:
        return None
    owner = db.get(User, comment.owner_id)
    video = db.get(Video, comment.video_id)
    liker = db.get(User, liked_by_id)
    if not owner or not video or not liker:
        return None
    if not _wants(owner, NotificationType.COMMENT_LIKE):
        return None
    return create_notification(
        db,
        owner.id,
        NotificationType.COMMENT_LIKE,
        "Comment Liked",
        f'{liker.full_name} liked your comment on "{video.title}"',
        sender_id=liker.id,
        related=RelatedComment(comment.id),
        action_url=f"/video/{video.id}?comment={comment.id}",
        context={
            "liker_name": liker.full_name,
            "liker_avatar": liker.avatar,
            "video_title": video.title,
            "video_id": video.id,
            "comment_content": _excerpt(comment.content),
        },
    )


@_best_effort
def notify_tweet_like(db: Session, tweet_id: int, liked_by_id: int) -> Notification | None:
    tweet = db.get(Tweet, tweet_id)
    if not tweet:
        return None
    owner = db.get(User, tweet.owner_id)
    liker = db.get(User, liked_by_id)
    if not owner or not liker:
        return None
    if not _wants(owner, NotificationType.TWEET_LIKE):
        return None
    return create_notification(
        db,
        owner.id,
        NotificationType.TWEET_LIKE,
        "Tweet Liked",
        f"{liker.full_name} liked your tweet",
        sender_id=liker.id,
        related=RelatedTweet(tweet.id),
        action_url=f"/tweet/{tweet.id}",
        context={
            "liker_name": liker.full_name,
            "liker_avatar": liker.avatar,
            "tweet_content": _excerpt(tweet.content),
        },
    )


@_best_effort
def notify_comment_reply(
    db: Session, parent_comment_id: int, reply_id: int, replier_id: int
) -> Notification | None:
    parent = db.get(Comment, parent_comment_id)
    reply = db.get(Comment, reply_id)
    if not parent or not reply:
        return None
    owner = db.get(User, parent.owner_id)
    video = db.get(Video, parent.video_id)
    replier = db.get(User, replier_id)
    if not owner or not video or not replier:
        return None
    if not _wants(owner, NotificationType.COMMENT_REPLY):
        return None
    return create_notification(
        db,
        owner.id,
        NotificationType.COMMENT_REPLY,
        "New Reply",
        f'{replier.full_name} replied to your comment on "{video.title}"',
        sender_id=replier.id,
        related=RelatedComment(reply.id),
        action_url=f"/video/{video.id}?comment={parent.id}",
        context={
            "replier_name": replier.full_name,
            "replier_avatar": replier.avatar,
            "video_title": video.title,
            "video_id": video.id,
            "original_comment": _excerpt(parent.content),
            "reply_content": _excerpt(reply.content),
        },
    )


@_best_effort
def notify_new_subscription(db: Session, channel_id: int, subscriber_id: int) -> Notification | None:
    channel = db.get(User, channel_id)
    subscriber = db.get(User, subscriber_id)
    if not channel or not subscriber:
        return None
    if not _wants(channel, NotificationType.NEW_SUBSCRIPTION):
        return None
    return create_notification(
        db,
        channel.id,
        NotificationType.NEW_SUBSCRIPTION,
        "New Subscriber",
        f"{subscriber.full_name} subscribed to your channel",
        sender_id=subscriber.id,
        related=RelatedChannel(channel.id),
        action_url=f"/channel/{channel.username}",
        context={
            "subscriber_name": subscriber.full_name,
            "subscriber_avatar": subscriber.avatar,
            "subscriber_username": subscriber.username,
        },
    )


@_best_effort
def notify_content_deletion(
    db: Session, user_id: int, content_type: ContentType | str, content_title: str
) -> Notification | None:
    """Confirm a deletion to its owner. The content is gone, so no related entity is linked."""
    try:
        ctype = ContentType(content_type)
    except ValueError as e:
        raise ValidationError(f"Unknown content type: {content_type}") from e
    user = db.get(User, user_id)
    if not user:
        return None
    shown_title = _excerpt(content_title)
    return create_notification(
        db,
        user.id,
        NotificationType.CONTENT_DELETION,
        f"{ctype.label} Deleted",
        f'Your {ctype.value} "{shown_title}" has been deleted successfully',
        action_url="/dashboard",
        context={"content_type": ctype.value, "content_title": shown_title},
    )


@_best_effort
def notify_video_comment(db: Session, video_id: int, comment_id: int, commenter_id: int) -> Notification | None:
    video = db.get(Video, video_id)
    comment = db.get(Comment, comment_id)
    if not video or not comment:
        return None
    owner = db.get(User, video.owner_id)
    commenter = db.get(User, commenter_id)
    if not owner or not commenter:
        return None
    if not _wants(owner, NotificationType.VIDEO_COMMENT):
        return None
    return create_notification(
        db,
        owner.id,
        NotificationType.VIDEO_COMMENT,
        "New Comment",
        f'{commenter.full_name} commented on your video "{video.title}"',
        sender_id=commenter.id,
        related=RelatedComment(comment.id),
        action_url=f"/video/{video.id}?comment={comment.id}",
        context={
            "commenter_name": commenter.full_name,
            "commenter_avatar": commenter.avatar,
            "video_title": video.title,
            "video_id": video.id,
            "comment_content": _excerpt(comment.content),
        },
    )


# --- List / count ---


def get_user_notifications(
    db: Session,
    user_id: int,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    unread_only: bool = False,
) -> Page:
    """Newest first (created_at desc, then id desc), each with the sender's public profile or None."""
    sender = aliased(User)
    filters = [Notification.recipient_id == user_id]
    if unread_only:
        filters.append(Notification.is_read.is_(False))
    q = (
        db.query(Notification, sender)
        .outerjoin(sender, sender.id == Notification.sender_id)
        .filter(*filters)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    )
    count_q = db.query(Notification).filter(*filters)
    result = paginate(q, page, page_size, count_query=count_q)
    result["items"] = [serialize_notification(row, s) for row, s in result["items"]]
    return result


def get_unread_count(db: Session, user_id: int) -> int:
    """Badge value: never raises, 0 when the store is unavailable."""
    try:
        count = (
            db.query(func.count(Notification.id))
            .filter(Notification.recipient_id == user_id, Notification.is_read.is_(False))
            .scalar()
        )
        return int(count or 0)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Unread count for user %s failed: %s", user_id, e, exc_info=True)
        return 0


# --- Mark read ---


def mark_notifications_as_read(db: Session, notification_ids: list[int], user_id: int) -> int:
    """Mark the caller's unread notifications among `notification_ids`; others are skipped. Returns count marked."""
    if not notification_ids:
        return 0
    with _write(db):
        updated = (
            db.query(Notification)
            .filter(
                Notification.id.in_(notification_ids),
                Notification.recipient_id == user_id,
                Notification.is_read.is_(False),
            )
            .update({Notification.is_read: True}, synchronize_session=False)
        )
    return updated


def mark_all_as_read(db: Session, user_id: int) -> int:
    with _write(db):
        updated = (
            db.query(Notification)
            .filter(Notification.recipient_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
    return updated


def mark_single_as_read(db: Session, notification_id: int, user_id: int) -> Notification:
    row = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.recipient_id == user_id)
        .first()
    )
    if not row:
        raise NotFoundError("Notification not found")
    if not row.is_read:
        with _write(db):
            row.is_read = True
        db.refresh(row)
    return row


# --- Delete ---


def delete_notifications(db: Session, notification_ids: list[int], user_id: int) -> int:
    if not notification_ids:
        return 0
    with _write(db):
        deleted = (
            db.query(Notification)
            .filter(Notification.id.in_(notification_ids), Notification.recipient_id == user_id)
            .delete(synchronize_session=False)
        )
    return deleted


def delete_all_notifications(db: Session, user_id: int) -> int:
    with _write(db):
        deleted = (
            db.query(Notification)
            .filter(Notification.recipient_id == user_id)
            .delete(synchronize_session=False)
        )
    return deleted


def delete_single_notification(db: Session, notification_id: int, user_id: int) -> None:
    deleted = delete_notifications(db, [notification_id], user_id)
    if not deleted:
        raise NotFoundError("Notification not found")


def purge_expired_notifications(db: Session, now: datetime | None = None) -> int:
    """Delete notifications whose expires_at has passed. Run by the cleanup job."""
    now = now or datetime.now(timezone.utc)
    with _write(db):
        deleted = (
            db.query(Notification)
            .filter(Notification.expires_at.isnot(None), Notification.expires_at <= now)
            .delete(synchronize_session=False)
        )
    return deleted


# --- Preferences ---


def get_notification_preferences(db: Session, user_id: int) -> dict[str, bool]:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    stored = user.notification_preferences or {}
    return {key: bool(stored.get(key, default)) for key, default in PREFERENCE_DEFAULTS.items()}


def update_notification_preferences(db: Session, user_id: int, updates: dict[str, Any]) -> dict[str, bool]:
    """Merge `updates` into the stored overrides. Unknown keys or non-boolean values are rejected."""
    unknown = sorted(set(updates) - set(PREFERENCE_DEFAULTS))
    if unknown:
        raise ValidationError(f"Unknown preference keys: {', '.join(unknown)}")
    bad = sorted(k for k, v in updates.items() if not isinstance(v, bool))
    if bad:
        raise ValidationError(f"Preference values must be true or false: {', '.join(bad)}")
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    with _write(db):
        # new dict so the JSON column change is detected
        user.notification_preferences = {**(user.notification_preferences or {}), **updates}
    return get_notification_preferences(db, user_id)
