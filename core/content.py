"""Content item types and raw-record normalisation.

Two kinds of item are played on the channel: streamed videos and timed
image slides ("articles"). Both carry an id that is unique within the pool
and a category used by the selection policy.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from config.constants import (
    DEFAULT_SLIDE_DURATION_SECONDS,
    DEFAULT_STREAM_NAME,
    DEFAULT_SLIDE_TITLE,
    DEFAULT_STREAM_CATEGORY,
    DEFAULT_SLIDE_CATEGORY,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamItem:
    id: str
    name: str
    url: str
    category: str
    thumbnail: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def is_stream(self) -> bool:
        return True

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True)
class SlideItem:
    id: str
    title: str
    category: str
    slide_url: Optional[str] = None
    audio_url: Optional[str] = None
    duration_seconds: int = DEFAULT_SLIDE_DURATION_SECONDS
    thumbnail: Optional[str] = None

    @property
    def is_stream(self) -> bool:
        return False

    @property
    def label(self) -> str:
        return self.title

    @property
    def duration_ms(self) -> int:
        return self.duration_seconds * 1000


ContentItem = Union[StreamItem, SlideItem]


def _first(record: Dict[str, Any], *keys: str) -> Any:
    """Return the first truthy value among the aliased keys."""
    for key in keys:
        value = record.get(key)
        if value:
            return value
    return None


def _clean_label(value: Any, default: str) -> str:
    return (str(value) if value else default).replace('|', ' ').strip() or default


def is_slide_record(record: Dict[str, Any]) -> bool:
    """Slides are recognised by a slide url or an article title field."""
    return any(k in record for k in ('url_slide', 'slide_url', 'slideUrl', 'titulo'))


def stream_from_record(record: Dict[str, Any]) -> Optional[StreamItem]:
    """Normalise a raw video record. Returns None if it has nothing to play."""
    url = _first(record, 'url', 'videoUrl')
    if not url or record.get('id') is None:
        logger.debug(f"Dropping video record without url/id: {record.get('id')}")
        return None
    return StreamItem(
        id=str(record['id']),
        name=_clean_label(_first(record, 'nombre', 'title', 'name'), DEFAULT_STREAM_NAME),
        url=str(url),
        category=_first(record, 'categoria', 'category') or DEFAULT_STREAM_CATEGORY,
        thumbnail=_first(record, 'imagen', 'image', 'thumbnail', 'imageUrl', 'image_url'),
        created_at=_first(record, 'createdAt', 'created_at', 'fecha')
        or datetime.now(timezone.utc).isoformat(),
    )


def slide_from_record(record: Dict[str, Any],
                      default_duration: int = DEFAULT_SLIDE_DURATION_SECONDS) -> Optional[SlideItem]:
    """Normalise a raw article record into a timed slide."""
    if record.get('id') is None:
        logger.debug("Dropping article record without id")
        return None
    duration = _first(record, 'animation_duration', 'animationDuration')
    try:
        duration = int(duration) if duration else default_duration
    except (TypeError, ValueError):
        duration = default_duration
    if duration <= 0:
        duration = default_duration
    return SlideItem(
        id=str(record['id']),
        title=_clean_label(_first(record, 'titulo', 'title'), DEFAULT_SLIDE_TITLE),
        category=_first(record, 'categoria', 'category') or DEFAULT_SLIDE_CATEGORY,
        slide_url=_first(record, 'url_slide', 'slide_url', 'slideUrl'),
        audio_url=_first(record, 'audio_url', 'url_audio', 'audioUrl'),
        duration_seconds=duration,
        thumbnail=_first(record, 'imagen', 'image', 'thumbnail', 'imageUrl', 'image_url'),
    )


def item_from_record(record: Dict[str, Any],
                     default_duration: int = DEFAULT_SLIDE_DURATION_SECONDS) -> Optional[ContentItem]:
    """Normalise a raw backend record of either kind."""
    if is_slide_record(record):
        return slide_from_record(record, default_duration)
    return stream_from_record(record)
