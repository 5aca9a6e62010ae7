"""Content source for the channel pool.

Reads raw video and article records from a local JSON file or an
HTTP(S) endpoint and normalises them into content items. Any failure is
logged and yields an empty list: the engine runs (idle) on an empty pool.
"""
import json
import logging
import os
from typing import Any, Dict, List, Optional

import requests

from config.constants import DEFAULT_SLIDE_DURATION_SECONDS, SOURCE_HTTP_TIMEOUT
from core.content import ContentItem, item_from_record, slide_from_record, stream_from_record

logger = logging.getLogger(__name__)


class ContentSource:

    def __init__(self, location: str, default_slide_duration: int = DEFAULT_SLIDE_DURATION_SECONDS,
                 headers: Optional[Dict[str, str]] = None):
        """
        Initialize content source.

        Args:
            location: Path to a JSON file or an http(s) URL
            default_slide_duration: Slide duration used when a record has none
            headers: Extra HTTP headers (e.g. an API key)
        """
        self.location = location
        self.default_slide_duration = default_slide_duration
        self.headers = headers or {}

    @property
    def is_remote(self) -> bool:
        return self.location.startswith(('http://', 'https://'))

    def fetch_raw(self) -> Any:
        """Return the parsed JSON document.

        Raises:
            requests.RequestException: If the HTTP request fails
            OSError, ValueError: If the file can't be read or parsed
        """
        if self.is_remote:
            response = requests.get(self.location, headers=self.headers, timeout=SOURCE_HTTP_TIMEOUT)
            response.raise_for_status()
            return response.json()

        with open(self.location, 'r', encoding='utf-8') as f:
            return json.load(f)

    def load(self) -> List[ContentItem]:
        """Fetch and normalise all items. Never raises."""
        try:
            document = self.fetch_raw()
        except requests.RequestException as e:
            logger.error(f"Failed to fetch content from {self.location}: {e}")
            return []
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read content from {self.location}: {e}")
            return []

        items = self.normalize(document)
        streams = sum(1 for item in items if item.is_stream)
        logger.info(f"Loaded {len(items)} items from {self.location} "
                    f"({streams} streams, {len(items) - streams} slides)")
        return items

    def normalize(self, document: Any) -> List[ContentItem]:
        """Turn a list of records, or a {"videos": [...], "articles": [...]} document, into items."""
        items: List[ContentItem] = []
        if isinstance(document, dict):
            for record in self._records(document.get('videos')):
                item = stream_from_record(record)
                if item:
                    items.append(item)
            for record in self._records(document.get('articles')):
                item = slide_from_record(record, self.default_slide_duration)
                if item:
                    items.append(item)
        elif isinstance(document, list):
            for record in self._records(document):
                item = item_from_record(record, self.default_slide_duration)
                if item:
                    items.append(item)
        else:
            logger.error(f"Unexpected content document type: {type(document).__name__}")

        return items

    @staticmethod
    def _records(value: Any) -> List[Dict]:
        if not isinstance(value, list):
            return []
        return [r for r in value if isinstance(r, dict)]

    @staticmethod
    def exists(location: str) -> bool:
        """True if a local source file exists (remote sources are assumed reachable)."""
        if location.startswith(('http://', 'https://')):
            return True
        return os.path.isfile(location)
