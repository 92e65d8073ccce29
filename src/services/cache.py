"""
In-memory кэш ответов AliExpress API с TTL.

Кэш живёт только в памяти процесса: истёкшие записи считаются отсутствующими
при чтении (ленивое удаление), размер ограничен max_entries.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """
    Ключ-значение с временем жизни записей.

    Args:
        ttl: TTL по умолчанию в секундах
        max_entries: Максимум записей; при переполнении сначала удаляются
            истёкшие записи, затем самые старые
        clock: Источник монотонного времени (подменяется в тестах)
    """

    def __init__(self, ttl: float = 1800, max_entries: int = 5000, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._data: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: str) -> Optional[Any]:
        """Значение по ключу или None, если записи нет или она истекла."""
        entry = self._data.get(key)
        if entry is None:
            self.misses += 1
            logger.debug("Cache miss for key: %s", key)
            return None
        if entry.expires_at <= self._clock():
            self._data.pop(key, None)
            self.misses += 1
            logger.debug("Cache expired for key: %s", key)
            return None
        self.hits += 1
        logger.debug("Cache hit for key: %s", key)
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Записывает значение (перезаписывая прежнее)."""
        self._data.pop(key, None)
        self._data[key] = CacheEntry(value=value, expires_at=self._clock() + (self.ttl if ttl is None else ttl))
        if len(self._data) > self.max_entries:
            self._evict()

    def purge_expired(self) -> int:
        """Удаляет все истёкшие записи, возвращает их количество."""
        now = self._clock()
        expired = [key for key, entry in self._data.items() if entry.expires_at <= now]
        for key in expired:
            del self._data[key]
        return len(expired)

    def _evict(self) -> None:
        removed = self.purge_expired()
        # dict хранит порядок вставки: первые ключи — самые старые
        while len(self._data) > self.max_entries:
            oldest = next(iter(self._data))
            del self._data[oldest]
            removed += 1
        logger.debug("Cache eviction: removed %s entries", removed)

    def stats(self) -> Dict[str, float]:
        total = self.hits + self.misses
        return {
            "entries": len(self._data),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total * 100, 2) if total else 0.0,
        }
