from __future__ import annotations

import hashlib
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from detect_kit.visualize import EncodedImage

log = logging.getLogger(__name__)

KEY_LENGTH = 32


@dataclass(frozen=True)
class StoredResult:
    key: str
    path: Path
    media_type: str

    @property
    def filename(self) -> str:
        return self.path.name


def content_key(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()[:KEY_LENGTH]


class ResultStore:
    """
    Rendered images keyed by the hash of their encoded bytes.

    Each request gets its own key, so concurrent requests never overwrite one
    another's output. Only the newest `max_items` results are retained.
    """

    def __init__(self, root: Path, max_items: int = 8):
        if max_items < 1:
            raise ValueError("max_items must be >= 1")
        self.root = Path(root)
        self.max_items = int(max_items)
        self._lock = threading.Lock()
        self._items: "OrderedDict[str, StoredResult]" = OrderedDict()

    def save(self, encoded: EncodedImage) -> StoredResult:
        key = content_key(encoded.content)
        path = self.root / f"{key}{encoded.extension}"
        result = StoredResult(key=key, path=path, media_type=encoded.media_type)

        with self._lock:
            self.root.mkdir(parents=True, exist_ok=True)
            path.write_bytes(encoded.content)
            self._items.pop(key, None)
            self._items[key] = result
            # Files are removed under the lock so a concurrent save of the
            # same bytes cannot be deleted after it has been indexed.
            while len(self._items) > self.max_items:
                _, old = self._items.popitem(last=False)
                if old.path != path:
                    old.path.unlink(missing_ok=True)
                log.debug("Evicted stored result %s", old.key)
        return result

    def get(self, key: str) -> StoredResult:
        with self._lock:
            return self._items[key]

    def latest(self) -> Optional[StoredResult]:
        with self._lock:
            if not self._items:
                return None
            return next(reversed(self._items.values()))

    def read(self, result: StoredResult) -> bytes:
        return result.path.read_bytes()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
