"""Retrieval over the external hybrid index: embed, search, threshold, expand."""

from __future__ import annotations

from clio_rag.config.constants import FUSION_THRESHOLD, OVERFETCH_FACTOR
from clio_rag.exceptions import GraphExpansionFailure, RetrievalError
from clio_rag.generation.backend_selector import BackendSelector
from clio_rag.models.domain import (
    GraphExpansion,
    RetrievedPassage,
    SearchFilters,
    SearchHit,
)
from clio_rag.observability.logger import get_logger
from clio_rag.protocols.search import EntityExtractor, HybridSearcher
from clio_rag.retrieval.fusion import apply_threshold, resolve_threshold
from clio_rag.retrieval.graph_expansion import GraphExpander
from clio_rag.retrieval.query_expansion import QueryExpander

logger = get_logger("retrieval")


class RetrievalCoordinator:
    def __init__(
        self,
        searcher: HybridSearcher,
        selector: BackendSelector,
        query_expander: QueryExpander | None = None,
        graph_expander: GraphExpander | None = None,
        entity_extractor: EntityExtractor | None = None,
        default_threshold: float = FUSION_THRESHOLD,
    ) -> None:
        self._searcher = searcher
        self._selector = selector
        self._expander = query_expander or QueryExpander()
        self._graph_expander = graph_expander
        self._entity_extractor = entity_extractor
        self._default_threshold = default_threshold

    async def retrieve(
        self,
        query: str,
        filters: SearchFilters,
        expand_graph: bool = False,
        graph_limit: int = 3,
    ) -> list[RetrievedPassage]:
        passages = await self.search(query, filters)
        if expand_graph and passages:
            expansion = await self.expand_with_graph(query, passages, graph_limit)
            if expansion is not None:
                passages = passages + expansion.passages
        return passages

    async def search(self, query: str, filters: SearchFilters) -> list[RetrievedPassage]:
        """Steps that may be cached: everything but graph expansion.

        Raises EmbeddingUnavailable when the remote backend is down and
        RetrievalError when the search collaborator fails.
        """
        normalized = self._expander.normalize(query)
        expanded = self._expander.expand(query)

        embedding = await self._selector.generate_embedding(normalized)

        entities = None
        if filters.use_entity_boost:
            entities = await self._extract_entities(normalized)

        try:
            hits = await self._searcher.search(
                embedding,
                limit=filters.top_k * OVERFETCH_FACTOR,
                query_text=expanded,
                filters=filters,
                entities=entities,
            )
        except Exception as e:
            raise RetrievalError(f"Hybrid search failed: {e}") from e

        threshold = resolve_threshold(filters.similarity_threshold, self._default_threshold)
        kept, fallback_used = apply_threshold(hits, threshold, filters.top_k)

        logger.info(
            "retrieval_completed",
            raw_results=len(hits),
            kept=len(kept),
            threshold=threshold,
            fallback_used=fallback_used,
            expanded=expanded != normalized,
            entities=len(entities) if entities else 0,
        )
        return [self._to_passage(h) for h in kept]

    async def expand_with_graph(
        self, query: str, passages: list[RetrievedPassage], limit: int = 3
    ) -> GraphExpansion | None:
        """Returns None when the graph failed; callers carry on without it."""
        if self._graph_expander is None:
            logger.debug("graph_expansion_unconfigured")
            return GraphExpansion()
        try:
            return await self._graph_expander.expand(query, passages, limit)
        except GraphExpansionFailure as e:
            logger.warning("graph_expansion_failed", error=str(e))
            return None

    async def _extract_entities(self, query: str) -> list[str] | None:
        if self._entity_extractor is None:
            return None
        try:
            entities = await self._entity_extractor.extract_query_entities(query)
        except Exception as e:
            logger.warning("entity_extraction_failed", error=str(e))
            return None
        return entities or None

    @staticmethod
    def _to_passage(hit: SearchHit) -> RetrievedPassage:
        return RetrievedPassage(
            passage_id=hit.chunk_id,
            document_id=hit.document_id,
            content=hit.content,
            page_number=hit.page_number,
            similarity=hit.score,
            document=hit.document,
        )
