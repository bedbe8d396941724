"""Protocol for context compressors."""

from __future__ import annotations

from typing import Protocol

from clio_rag.models.domain import CompressionResult, RetrievedPassage


class ContextCompressor(Protocol):
    def compress(
        self, passages: list[RetrievedPassage], query: str, char_budget: int
    ) -> CompressionResult: ...
