import logging
import random
from typing import Dict, Iterable, List, Optional

from core.content import ContentItem

logger = logging.getLogger(__name__)


def _normalize_category(category: Optional[str]) -> str:
    return (category or '').strip().lower()


class ContentPool:
    """Selectable items for one load plus the random selection policy."""

    def __init__(self, items: Iterable[ContentItem] = (),
                 forbidden_category: str = '',
                 excluded_item_id: str = '',
                 rng: Optional[random.Random] = None):
        """
        Initialize content pool.

        Args:
            items: Items supplied by the content source for this load
            forbidden_category: Category never picked automatically
            excluded_item_id: Item id never picked automatically
            rng: Random source (seed it for deterministic selection)
        """
        self._items: tuple = tuple(items)
        self._by_id: Dict[str, ContentItem] = {item.id: item for item in self._items}
        self.forbidden_category = forbidden_category
        self.excluded_item_id = excluded_item_id
        self._rng = rng or random.Random()

        if len(self._by_id) != len(self._items):
            logger.warning(f"Content pool has duplicate ids ({len(self._items) - len(self._by_id)} duplicates)")

    def __len__(self) -> int:
        return len(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def items(self) -> tuple:
        return self._items

    def find(self, item_id: str) -> Optional[ContentItem]:
        """Look up an item by id, ignoring the selection exclusions."""
        return self._by_id.get(str(item_id))

    def candidates(self) -> List[ContentItem]:
        """Pool minus the forbidden category and the excluded id."""
        forbidden = _normalize_category(self.forbidden_category)
        return [
            item for item in self._items
            if not (forbidden and _normalize_category(item.category) == forbidden)
            and not (self.excluded_item_id and item.id == self.excluded_item_id)
        ]

    def select(self, exclude_category: Optional[str] = None) -> Optional[ContentItem]:
        """
        Pick a random item for automatic playback.

        Items sharing exclude_category are skipped so the same category is
        not played twice in a row, unless that leaves nothing, in which case
        the unfiltered candidates are used.

        Args:
            exclude_category: Category of the item that just played

        Returns:
            Selected item, or None if the pool has no candidates
        """
        candidates = self.candidates()
        if not candidates:
            logger.debug("No selectable content in pool")
            return None

        if exclude_category is not None:
            filtered = [item for item in candidates if item.category != exclude_category]
            if filtered:
                candidates = filtered
            else:
                logger.debug(f"Only '{exclude_category}' content left, ignoring category exclusion")

        return self._rng.choice(candidates)
