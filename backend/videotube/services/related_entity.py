"""
What a notification points at: one video, comment, tweet or channel, or nothing.

The union makes "at most one related entity" structural for service callers.
related_entity_from_fields converts the flat four-field form used by request
bodies and rejects more than one id.
"""
from dataclasses import dataclass
from typing import Union

from videotube.core.errors import ValidationError


@dataclass(frozen=True)
class RelatedVideo:
    id: int
    column = "related_video_id"


@dataclass(frozen=True)
class RelatedComment:
    id: int
    column = "related_comment_id"


@dataclass(frozen=True)
class RelatedTweet:
    id: int
    column = "related_tweet_id"


@dataclass(frozen=True)
class RelatedChannel:
    id: int
    column = "related_channel_id"


RelatedEntity = Union[RelatedVideo, RelatedComment, RelatedTweet, RelatedChannel]
RELATED_ENTITY_TYPES = (RelatedVideo, RelatedComment, RelatedTweet, RelatedChannel)


def related_entity_from_fields(
    video_id: int | None = None,
    comment_id: int | None = None,
    tweet_id: int | None = None,
    channel_id: int | None = None,
) -> RelatedEntity | None:
    supplied = [
        cls(value)
        for cls, value in (
            (RelatedVideo, video_id),
            (RelatedComment, comment_id),
            (RelatedTweet, tweet_id),
            (RelatedChannel, channel_id),
        )
        if value is not None
    ]
    if len(supplied) > 1:
        raise ValidationError("Only one related entity can be specified per notification")
    return supplied[0] if supplied else None


def related_columns(related: RelatedEntity | None) -> dict[str, int | None]:
    """Column values for a Notification row: the matching related_*_id set, the rest None."""
    values: dict[str, int | None] = {cls.column: None for cls in RELATED_ENTITY_TYPES}
    if related is None:
        return values
    if not isinstance(related, RELATED_ENTITY_TYPES):
        raise ValidationError(f"Unsupported related entity: {related!r}")
    values[related.column] = related.id
    return values
