from __future__ import annotations
import bisect
import json
import logging
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from app.schemas import StoredReading
from settings import get_settings

logger = logging.getLogger(__name__)


class ReadingStore:
    """Ingested readings kept in ``created_at`` order, optionally persisted as JSON.

    The order index holds ``(created_at, id)`` pairs so the newest readings
    can be sliced off without sorting. The JSON file is a list in the same
    order.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self.persistence_path = persistence_path
        self._items: Dict[str, StoredReading] = {}
        self._order: List[Tuple[datetime, str]] = []
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def __len__(self) -> int:
        return len(self._order)

    def put(self, item: StoredReading) -> None:
        with self._lock:
            self._insert(item.model_copy(deep=True))
            self._persist()

    def scan(self) -> List[StoredReading]:
        """Deep copies of all readings, oldest first."""
        with self._lock:
            return [self._items[key].model_copy(deep=True) for _, key in self._order]

    def recent(self, limit: int) -> List[StoredReading]:
        """Newest readings first, at most ``limit`` of them."""
        if limit <= 0:
            return []
        with self._lock:
            newest = self._order[-limit:]
            return [self._items[key].model_copy(deep=True) for _, key in reversed(newest)]

    def _insert(self, item: StoredReading) -> None:
        previous = self._items.get(item.id)
        if previous is not None:
            self._order.remove((previous.created_at, previous.id))
        self._items[item.id] = item
        bisect.insort(self._order, (item.created_at, item.id))

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = [self._items[key].model_dump(mode="json") for _, key in self._order]
        self.persistence_path.write_text(json.dumps(payload, indent=2))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning(
                "Reading store file is unreadable; starting empty",
                extra={"source": self.name},
            )
            return

        if not isinstance(data, list):
            logger.warning(
                "Reading store file is not a list; starting empty",
                extra={"source": self.name},
            )
            return

        for payload in data:
            try:
                self._insert(StoredReading.model_validate(payload))
            except ValidationError as exc:
                logger.warning(
                    "Skipping invalid stored reading",
                    extra={"source": self.name, "error": exc.error_count()},
                )
        logger.debug(
            "Loaded stored readings",
            extra={"source": self.name, "record_count": len(self._order)},
        )


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> ReadingStore:
    settings = get_settings()
    store_name = settings.store_name if name is None else name
    store_path = settings.store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return ReadingStore(name=store_name, persistence_path=persistence)
