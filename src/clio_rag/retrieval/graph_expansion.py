"""Expands a result set with related documents from the citation graph.

Citation relations can cycle, so the walk tracks a visited set seeded with
the original documents and stops at a fixed depth.
"""

from __future__ import annotations

import math
from collections.abc import Awaitable, Callable

import numpy as np

from clio_rag.config.constants import MIN_MEASURED_SIMILARITY, UNCERTAIN_GRAPH_SIMILARITY
from clio_rag.exceptions import GraphExpansionFailure
from clio_rag.models.domain import DocumentRef, GraphExpansion, RetrievedPassage
from clio_rag.observability.logger import get_logger
from clio_rag.protocols.graph import DocumentGraph

logger = get_logger("graph_expansion")

Embedder = Callable[[str], Awaitable[list[float]]]


def cosine_similarity(a: list[float], b: list[float]) -> float:
    va = np.asarray(a, dtype=np.float32)
    vb = np.asarray(b, dtype=np.float32)
    if va.shape != vb.shape:
        return 0.0
    magnitude = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if magnitude == 0.0:
        return 0.0
    return float(np.dot(va, vb) / magnitude)


class GraphExpander:
    def __init__(
        self,
        graph: DocumentGraph,
        embed: Embedder | None = None,
        similarity_threshold: float = 0.7,
        max_depth: int = 1,
        max_related: int = 12,
    ) -> None:
        self._graph = graph
        self._embed = embed
        self._similarity_threshold = similarity_threshold
        self._max_depth = max_depth
        self._max_related = max_related

    async def expand(
        self, query: str, passages: list[RetrievedPassage], limit: int = 3
    ) -> GraphExpansion:
        """Raises GraphExpansionFailure when the graph collaborator fails."""
        original_ids = list(
            dict.fromkeys(p.document_id for p in passages if not p.is_graph_expansion)
        )
        if not original_ids:
            return GraphExpansion()

        related_ids = await self._collect_related(original_ids, limit)
        documents = await self._load_documents(related_ids)
        expansion_passages = await self._summaries_to_passages(query, documents)
        logger.info(
            "graph_expanded",
            originals=len(original_ids),
            related=len(documents),
            passages=len(expansion_passages),
        )
        return GraphExpansion(related_documents=documents, passages=expansion_passages)

    async def _collect_related(self, original_ids: list[str], limit: int) -> list[str]:
        per_direction = math.ceil(limit / 2)
        visited = set(original_ids)
        related: list[str] = []
        frontier = list(original_ids)

        try:
            for _ in range(self._max_depth):
                next_frontier: list[str] = []
                for doc_id in frontier:
                    cited = (await self._graph.get_documents_cited_by(doc_id))[:per_direction]
                    citing = (await self._graph.get_documents_citing(doc_id))[:per_direction]
                    similar = await self._graph.get_similar_documents(
                        doc_id, self._similarity_threshold, limit
                    )
                    candidates = [*cited, *citing, *(s.document_id for s in similar[:limit])]
                    for candidate in candidates:
                        if candidate in visited:
                            continue
                        visited.add(candidate)
                        related.append(candidate)
                        next_frontier.append(candidate)
                        if len(related) >= self._max_related:
                            return related
                frontier = next_frontier
                if not frontier:
                    break
        except Exception as e:
            raise GraphExpansionFailure(f"Graph lookup failed: {e}") from e
        return related

    async def _load_documents(self, document_ids: list[str]) -> list[DocumentRef]:
        documents = []
        try:
            for doc_id in document_ids:
                doc = await self._graph.get_document(doc_id)
                if doc is not None:
                    documents.append(doc)
        except Exception as e:
            raise GraphExpansionFailure(f"Document lookup failed: {e}") from e
        return documents

    async def _summaries_to_passages(
        self, query: str, documents: list[DocumentRef]
    ) -> list[RetrievedPassage]:
        with_summary = [d for d in documents if d.summary and d.summary.strip()]
        if not with_summary:
            return []

        query_vector = await self._try_embed(query)
        passages = []
        for doc in with_summary:
            similarity = UNCERTAIN_GRAPH_SIMILARITY
            if query_vector is not None:
                summary_vector = await self._try_embed(doc.summary)
                if summary_vector is not None:
                    similarity = max(
                        cosine_similarity(query_vector, summary_vector),
                        MIN_MEASURED_SIMILARITY,
                    )
            passages.append(
                RetrievedPassage(
                    passage_id=f"summary:{doc.document_id}",
                    document_id=doc.document_id,
                    content=doc.summary,
                    page_number=1,
                    similarity=similarity,
                    is_graph_expansion=True,
                    document=doc,
                )
            )
        return passages

    async def _try_embed(self, text: str) -> list[float] | None:
        if self._embed is None:
            return None
        try:
            return await self._embed(text)
        except Exception as e:
            logger.warning(
                "graph_similarity_unmeasured",
                error_type=type(e).__name__,
                error=str(e).splitlines()[0] if str(e) else "",
            )
            return None
