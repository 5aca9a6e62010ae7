"""Handlers for externally triggered playback."""

from handlers.deep_link_handler import DeepLinkHandler, build_deep_link, parse_deep_link

__all__ = [
    "DeepLinkHandler",
    "build_deep_link",
    "parse_deep_link",
]
