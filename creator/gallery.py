"""
Durable gallery of generated images.

The whole collection lives in one JSON file, most recent first:

    [{"id": ..., "imageUrl": ..., "prompt": ..., "createdAt": "<ISO-8601>",
      "sourceImageUrl": ... | null}, ...]

Every mutation re-reads the file, changes the list and rewrites the file in full,
so several stores on one path do not drop each other's items.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from config.settings import settings

from .model import GalleryItem

logger = logging.getLogger(__name__)

_items_adapter = TypeAdapter(List[GalleryItem])


class GalleryStore:
    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else settings.GALLERY_PATH
        self._items: List[GalleryItem] = []
        self._lock = threading.Lock()

    @property
    def items(self) -> List[GalleryItem]:
        return list(self._items)

    def get(self, item_id: str) -> Optional[GalleryItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def __len__(self) -> int:
        return len(self._items)

    def load(self) -> List[GalleryItem]:
        """
        Restore the collection from disk.
        A missing or unreadable file leaves the gallery empty; it is logged, never raised.
        """
        with self._lock:
            self._items = self._read()
        logger.info("[GalleryStore] Loaded %d items from %s", len(self._items), self.path)
        return self.items

    def insert(self, image_url: str, prompt: str, source_image_url: Optional[str] = None) -> GalleryItem:
        item = GalleryItem(image_url=image_url, prompt=prompt, source_image_url=source_image_url)
        with self._lock:
            self._items = [item] + self._read()
            self._persist()
        return item

    def remove(self, item_id: str) -> bool:
        with self._lock:
            current = self._read()
            self._items = [item for item in current if item.id != item_id]
            removed = len(self._items) != len(current)
            self._persist()
        return removed

    def clear(self) -> None:
        with self._lock:
            self._items = []
            self._persist()

    def _read(self) -> List[GalleryItem]:
        # other writers may have changed the file since our last read
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return _items_adapter.validate_python(raw)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("[GalleryStore] Ignoring corrupt gallery at %s: %s", self.path, e)
            return []

    def _persist(self) -> None:
        data = _items_adapter.dump_python(self._items, mode="json", by_alias=True)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)
