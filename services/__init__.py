"""Services module containing collaborators outside the playback core."""

from services.content_source import ContentSource

__all__ = [
    "ContentSource",
]
