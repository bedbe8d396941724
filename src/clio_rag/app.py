"""Wires settings and collaborators into a ready-to-use ChatOrchestrator."""

from __future__ import annotations

from pathlib import Path

from clio_rag.compression.context_compressor import ContextCompressor
from clio_rag.config.settings import Settings
from clio_rag.generation.backend_selector import BackendSelector
from clio_rag.generation.embedded_backend import EmbeddedBackend
from clio_rag.generation.ollama_backend import OllamaBackend
from clio_rag.observability.logger import get_logger, setup_logging
from clio_rag.pipeline.chat_orchestrator import ChatOrchestrator
from clio_rag.protocols.compressor import ContextCompressor as Compressor
from clio_rag.protocols.graph import DocumentGraph
from clio_rag.protocols.history import HistoryLogger, ProjectContextProvider
from clio_rag.protocols.llm import LocalModelRuntime
from clio_rag.protocols.search import EntityExtractor, HybridSearcher
from clio_rag.retrieval.coordinator import RetrievalCoordinator
from clio_rag.retrieval.graph_expansion import GraphExpander
from clio_rag.retrieval.query_cache import QueryCache
from clio_rag.retrieval.query_expansion import QueryExpander
from clio_rag.storage.sqlite_history_store import SQLiteHistoryStore

logger = get_logger("app")


async def create_orchestrator(
    searcher: HybridSearcher,
    settings: Settings | None = None,
    graph: DocumentGraph | None = None,
    local_runtime: LocalModelRuntime | None = None,
    history: HistoryLogger | None = None,
    project_context: ProjectContextProvider | None = None,
    entity_extractor: EntityExtractor | None = None,
    compressor: Compressor | None = None,
) -> ChatOrchestrator:
    """Build the orchestrator. Without an injected history logger, chat
    history goes to the SQLite database at `settings.sqlite_history_db_path`.
    """
    settings = settings or Settings()
    setup_logging(settings.log_level, settings.json_logs)

    # Backends
    remote = OllamaBackend(
        base_url=settings.ollama_url,
        chat_model=settings.ollama_chat_model,
        embedding_model=settings.ollama_embedding_model,
        probe_timeout_s=settings.ollama_probe_timeout_s,
        connect_timeout_s=settings.ollama_connect_timeout_s,
    )
    local = EmbeddedBackend(runtime=local_runtime)
    selector = BackendSelector(remote=remote, local=local, preference=settings.provider)

    # Retrieval
    graph_expander = None
    if graph is not None:
        graph_expander = GraphExpander(
            graph,
            embed=selector.generate_embedding,
            similarity_threshold=settings.graph_similarity_threshold,
            max_depth=settings.graph_max_depth,
            max_related=settings.graph_max_related,
        )
    retriever = RetrievalCoordinator(
        searcher,
        selector,
        query_expander=QueryExpander(min_words=settings.expansion_min_words),
        graph_expander=graph_expander,
        entity_extractor=entity_extractor,
        default_threshold=settings.similarity_threshold,
    )
    cache = QueryCache(
        max_entries=settings.cache_max_entries,
        ttl_seconds=settings.cache_ttl_seconds,
    )

    # History
    if history is None:
        Path(settings.sqlite_history_db_path).parent.mkdir(parents=True, exist_ok=True)
        store = SQLiteHistoryStore(settings.sqlite_history_db_path)
        await store.initialize()
        history = store

    orchestrator = ChatOrchestrator(
        selector,
        retriever,
        cache,
        settings,
        compressor=compressor or ContextCompressor(),
        history=history,
        project_context=project_context,
    )
    logger.info(
        "startup_complete",
        provider=settings.provider,
        remote_model=settings.ollama_chat_model,
        local_runtime=local_runtime is not None,
        graph=graph is not None,
    )
    return orchestrator
