"""Protocols for the hybrid search and entity extraction collaborators."""

from __future__ import annotations

from typing import Protocol

from clio_rag.models.domain import SearchFilters, SearchHit


class HybridSearcher(Protocol):
    async def search(
        self,
        query_embedding: list[float],
        limit: int,
        query_text: str,
        filters: SearchFilters,
        entities: list[str] | None = None,
    ) -> list[SearchHit]: ...


class EntityExtractor(Protocol):
    async def extract_query_entities(self, text: str) -> list[str]: ...
