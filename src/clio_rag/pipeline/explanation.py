"""Accumulates per-stage metrics into a single immutable ExplanationTrace."""

from __future__ import annotations

from clio_rag.config.constants import EXPLANATION_MAX_DOCUMENTS
from clio_rag.models.domain import DocumentRef, RetrievedPassage, SamplingParams
from clio_rag.models.schemas import (
    CompressionExplanation,
    DocumentSummary,
    ExplanationTrace,
    GenerationExplanation,
    GraphExplanation,
    SearchExplanation,
    TimingExplanation,
)


def _size(passages: list[RetrievedPassage]) -> int:
    return sum(len(p.content) for p in passages)


def summarize_documents(passages: list[RetrievedPassage]) -> list[DocumentSummary]:
    """Group passages by document, keeping the best similarity per document."""
    grouped: dict[str, dict] = {}
    for p in passages:
        entry = grouped.get(p.document_id)
        if entry is None:
            grouped[p.document_id] = {
                "title": p.title,
                "similarity": p.similarity,
                "source_type": p.document.source_type if p.document else "secondary",
                "chunk_count": 1,
            }
        else:
            entry["chunk_count"] += 1
            entry["similarity"] = max(entry["similarity"], p.similarity)
    return [DocumentSummary(**v) for v in list(grouped.values())[:EXPLANATION_MAX_DOCUMENTS]]


class ExplanationRecorder:
    """Built incrementally while a request runs; `build()` freezes the result."""

    def __init__(self, query: str, source_type: str) -> None:
        self._query = query
        self._source_type = source_type
        self._search_ms = 0.0
        self._cache_hit = False
        self._compression: CompressionExplanation | None = None
        self._compression_ms: float | None = None
        self._graph: GraphExplanation | None = None
        self._generation: GenerationExplanation | None = None
        self._generation_ms = 0.0

    def record_search(self, duration_ms: float, cache_hit: bool) -> None:
        self._search_ms = duration_ms
        self._cache_hit = cache_hit

    def record_graph(self, related_documents: list[DocumentRef]) -> None:
        self._graph = GraphExplanation(
            enabled=True,
            related_docs_found=len(related_documents),
            titles=[d.title or "Unknown" for d in related_documents],
        )

    def record_compression(
        self,
        before: list[RetrievedPassage],
        after: list[RetrievedPassage],
        strategy: str | None,
        duration_ms: float,
    ) -> None:
        before_size = _size(before)
        after_size = _size(after)
        self._compression = CompressionExplanation(
            enabled=True,
            before_chunks=len(before),
            after_chunks=len(after),
            before_size=before_size,
            after_size=after_size,
            reduction_percent=(
                (before_size - after_size) / before_size * 100 if before_size else 0.0
            ),
            strategy=strategy,
        )
        self._compression_ms = duration_ms

    def record_compression_skipped(self, passages: list[RetrievedPassage]) -> None:
        size = _size(passages)
        self._compression = CompressionExplanation(
            enabled=False,
            before_chunks=len(passages),
            after_chunks=len(passages),
            before_size=size,
            after_size=size,
            reduction_percent=0.0,
        )

    def record_generation(
        self,
        backend_name: str,
        model_name: str,
        sampling: SamplingParams,
        prompt_size: int,
        duration_ms: float,
    ) -> None:
        self._generation = GenerationExplanation(
            backend_name=backend_name,
            model_name=model_name,
            context_window_tokens=sampling.context_window_tokens,
            temperature=sampling.temperature,
            prompt_size_chars=prompt_size,
        )
        self._generation_ms = duration_ms

    def build(self, passages: list[RetrievedPassage], total_ms: float) -> ExplanationTrace:
        if self._generation is None:
            raise RuntimeError("record_generation() must run before build()")
        return ExplanationTrace(
            search=SearchExplanation(
                query=self._query,
                total_results=len(passages),
                duration_ms=round(self._search_ms, 2),
                cache_hit=self._cache_hit,
                source_type=self._source_type,
                documents=summarize_documents(passages),
            ),
            compression=self._compression,
            graph=self._graph,
            generation=self._generation,
            timing=TimingExplanation(
                search_ms=round(self._search_ms, 2),
                compression_ms=(
                    round(self._compression_ms, 2) if self._compression_ms is not None else None
                ),
                generation_ms=round(self._generation_ms, 2),
                total_ms=round(total_ms, 2),
            ),
        )
