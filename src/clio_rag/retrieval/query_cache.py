"""Process-wide, time-bounded LRU memo of retrieval results."""

from __future__ import annotations

import hashlib
import json
import re
import time
import unicodedata
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from clio_rag.models.domain import RetrievedPassage, SearchFilters
from clio_rag.observability.logger import get_logger

logger = get_logger("query_cache")


@dataclass
class CacheEntry:
    key: str
    value: tuple[RetrievedPassage, ...]
    inserted_at: float
    last_accessed_at: float


class QueryCache:
    """LRU cache with a TTL refreshed on read.

    Only successful retrievals belong here: callers put after the
    retrieval returns, so a failing retrieval never poisons the cache.
    """

    def __init__(
        self,
        max_entries: int = 200,
        ttl_seconds: float = 1800.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not self._expired(entry, self._clock())

    @staticmethod
    def normalize_query(query: str) -> str:
        text = unicodedata.normalize("NFKC", query)
        return re.sub(r"\s+", " ", text).strip()

    @classmethod
    def compute_key(cls, query: str, filters: SearchFilters) -> str:
        """Fingerprint every input that changes what a retrieval returns."""
        fingerprint = {
            "q": cls.normalize_query(query),
            "k": filters.top_k,
            "collections": sorted(set(filters.collection_keys)),
            "documents": sorted(set(filters.document_ids)),
            "source": filters.source_type,
            "threshold": filters.similarity_threshold,
            "entities": filters.use_entity_boost,
        }
        payload = json.dumps(fingerprint, sort_keys=True, ensure_ascii=False)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def get(self, key: str) -> tuple[RetrievedPassage, ...] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if self._expired(entry, now):
            del self._entries[key]
            logger.debug("cache_expired", key=key[:12])
            return None
        entry.last_accessed_at = now
        self._entries.move_to_end(key)
        return entry.value

    def put(self, key: str, passages: list[RetrievedPassage] | tuple[RetrievedPassage, ...]) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(
            key=key, value=tuple(passages), inserted_at=now, last_accessed_at=now
        )
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("cache_evicted", key=evicted[:12])

    def clear(self) -> None:
        self._entries.clear()
        logger.info("cache_cleared")

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        # Reads refresh the age, so the TTL counts from the last access.
        return now - entry.last_accessed_at > self._ttl
