"""
src/examblock/registry.py

The per-document object store. Every entity and managed collection is
handed a Registry explicitly; there is no module level instance.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Type

logger = logging.getLogger(__name__)


class Registry:
    """Stores entities under the composite key (kind, id), in insertion order."""

    def __init__(self):
        self._items: Dict[Tuple[type, str], Any] = {}

    def add(self, item: Any, kind: Optional[type] = None) -> None:
        kind = kind or type(item)
        key = (kind, item.id)
        if key in self._items and self._items[key] is not item:
            logger.debug("Replacing %s '%s' in registry", kind.__name__, item.id)
        self._items[key] = item

    def find(self, key: str, kind: Type) -> Optional[Any]:
        """Returns the entity or None; a miss is never an error here."""
        return self._items.get((kind, key))

    def contains(self, key: str, kind: Type) -> bool:
        return (kind, key) in self._items

    def get_all(self, kind: Type) -> List[Any]:
        return [item for (k, _), item in self._items.items() if k is kind]

    def remove(self, item: Any, kind: Optional[type] = None) -> bool:
        kind = kind or type(item)
        return self._items.pop((kind, item.id), None) is not None

    def remove_all(self, kind: Type) -> None:
        for key in [key for key in self._items if key[0] is kind]:
            del self._items[key]

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self):
        return f"Registry({len(self._items)} items)"
