"""Top-level chat entry point: retrieval, compression, prompt, streamed answer."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import asdict
from typing import Any

import structlog

from clio_rag.compression.context_compressor import ContextCompressor
from clio_rag.config.constants import FREE_MODE_ID, RAG_OPERATION_TYPE
from clio_rag.config.settings import Settings
from clio_rag.exceptions import CompressionFailure, NoBackendAvailable
from clio_rag.generation.backend_selector import BackendSelector
from clio_rag.generation.modes import resolve_sampling
from clio_rag.generation.prompt_builder import build_system_prompt, estimate_prompt_size
from clio_rag.models.domain import (
    AIOperationEntry,
    BackendKind,
    ChatMessageEntry,
    CompressionResult,
    GenerationRequest,
    PipelineStage,
    ProviderStatus,
    RetrievedPassage,
    SearchFilters,
)
from clio_rag.models.schemas import ChatOptions, ChatResponse, SourceReference
from clio_rag.observability.logger import get_logger
from clio_rag.observability.metrics import (
    log_compression_metrics,
    log_generation_metrics,
    log_retrieval_metrics,
)
from clio_rag.observability.tracing import TraceContext
from clio_rag.pipeline.explanation import ExplanationRecorder
from clio_rag.pipeline.streaming import FragmentStream
from clio_rag.protocols.compressor import ContextCompressor as Compressor
from clio_rag.protocols.history import HistoryLogger, ProjectContextProvider
from clio_rag.protocols.llm import GenerationBackend
from clio_rag.retrieval.coordinator import RetrievalCoordinator
from clio_rag.retrieval.query_cache import QueryCache

logger = get_logger("chat_orchestrator")

FragmentSink = Callable[[str], Any]
StatusSink = Callable[[PipelineStage], Any]


async def _notify(sink: Callable[[Any], Any] | None, value: Any) -> None:
    """Sinks may be plain callables or coroutine functions."""
    if sink is None:
        return
    result = sink(value)
    if inspect.isawaitable(result):
        await result


class ChatOrchestrator:
    def __init__(
        self,
        selector: BackendSelector,
        retriever: RetrievalCoordinator,
        cache: QueryCache,
        settings: Settings,
        compressor: Compressor | None = None,
        history: HistoryLogger | None = None,
        project_context: ProjectContextProvider | None = None,
    ) -> None:
        self._selector = selector
        self._retriever = retriever
        self._cache = cache
        self._settings = settings
        self._compressor = compressor or ContextCompressor()
        self._history = history
        self._project_context = project_context
        self._current: FragmentStream | None = None

    @property
    def is_generating(self) -> bool:
        return self._current is not None and self._current.active

    def cancel(self) -> None:
        """Stop the current stream. Does nothing when no stream is running."""
        if self._current is None:
            return
        self._current.cancel()

    def clear_cache(self) -> None:
        self._cache.clear()

    async def get_provider_status(self) -> ProviderStatus:
        return await self._selector.get_status()

    async def aclose(self) -> None:
        self.cancel()
        await self._selector.aclose()

    async def answer(
        self,
        query: str,
        options: ChatOptions | None = None,
        on_fragment: FragmentSink | None = None,
        on_status: StatusSink | None = None,
    ) -> ChatResponse:
        """Answer one question, streaming fragments to `on_fragment`.

        Raises NoBackendAvailable, EmbeddingUnavailable, RetrievalError,
        GenerationTimeout or GenerationCancelled. Graph, compression and
        history problems are logged and never abort the call.
        """
        options = options or ChatOptions()
        trace = TraceContext()
        with structlog.contextvars.bound_contextvars(request_id=trace.trace_id):
            try:
                return await self._answer(query, options, trace, on_fragment, on_status)
            except Exception as e:
                logger.warning(
                    "chat_failed",
                    error_type=type(e).__name__,
                    error=str(e).splitlines()[0] if str(e) else "",
                    elapsed_ms=round(trace.elapsed_ms, 2),
                )
                await _notify(on_status, PipelineStage.FAILED)
                raise

    async def _answer(
        self,
        query: str,
        options: ChatOptions,
        trace: TraceContext,
        on_fragment: FragmentSink | None,
        on_status: StatusSink | None,
    ) -> ChatResponse:
        logger.info("chat_started", context=options.context, mode=options.mode_id)

        # STEP 1: Backend
        if options.provider:
            self._selector.set_preference(options.provider)
        backend = await self._selector.select_backend()
        if backend is None:
            raise NoBackendAvailable()

        # STEP 2: Retrieval
        recorder = ExplanationRecorder(query, options.source_type)
        passages: list[RetrievedPassage] = []
        if options.context:
            passages = await self._retrieve(query, options, recorder, trace, on_status)

        # STEP 3: Compression
        if passages:
            await _notify(on_status, PipelineStage.COMPRESSING)
            if options.enable_context_compression:
                passages = self._compress(query, passages, recorder, trace)
            else:
                recorder.record_compression_skipped(passages)

        # STEP 4-5: Prompt
        await _notify(on_status, PipelineStage.PROMPT_BUILDING)
        system_prompt = build_system_prompt(
            options.system_prompt_language,
            use_custom=options.use_custom_system_prompt,
            custom_text=options.custom_system_prompt,
            free_mode=options.no_system_prompt or options.mode_id == FREE_MODE_ID,
        )
        sampling = resolve_sampling(options.mode_id, options.sampling)
        request = GenerationRequest(
            query=query,
            passages=tuple(passages),
            system_prompt=system_prompt,
            sampling=sampling,
            timeout_ms=options.timeout_ms or self._settings.generation_timeout_ms,
            project_context=await self._get_project_context(),
            model_override=options.model,
        )
        prompt_size = estimate_prompt_size(request)
        model_name = (
            request.model_override
            if backend.kind is BackendKind.REMOTE and request.model_override
            else backend.model_name
        )

        # STEP 6: Generation
        await _notify(on_status, PipelineStage.GENERATING)
        with trace.span("generation", backend=backend.kind.value) as gen_span:
            response_text = await self._stream(request, backend, on_fragment)
        recorder.record_generation(
            backend.display_name, model_name, sampling, prompt_size, gen_span.duration_ms
        )
        log_generation_metrics(
            trace.trace_id,
            backend.kind.value,
            model_name,
            prompt_size,
            len(response_text),
            gen_span.duration_ms,
        )

        # STEP 7: History
        sources = [self._to_source(p) for p in passages]
        await self._log_history(
            query, response_text, options, passages, sources, request, model_name, backend.kind, trace
        )

        # STEP 8: Explanation
        explanation = None
        if options.context and passages:
            explanation = recorder.build(passages, trace.elapsed_ms)

        await _notify(on_status, PipelineStage.COMPLETED)
        logger.info(
            "chat_completed",
            rag_used=bool(passages),
            sources=len(passages),
            total_ms=round(trace.elapsed_ms, 2),
            spans=trace.summary(),
        )
        return ChatResponse(
            response=response_text,
            rag_used=bool(passages),
            sources_count=len(passages),
            sources=sources,
            explanation=explanation,
        )

    async def _retrieve(
        self,
        query: str,
        options: ChatOptions,
        recorder: ExplanationRecorder,
        trace: TraceContext,
        on_status: StatusSink | None,
    ) -> list[RetrievedPassage]:
        filters = SearchFilters(
            top_k=options.top_k,
            collection_keys=tuple(options.collection_keys),
            document_ids=tuple(options.document_ids),
            source_type=options.source_type,
            similarity_threshold=options.similarity_threshold,
            use_entity_boost=options.use_entity_boost,
        )

        await _notify(on_status, PipelineStage.CACHE_CHECK)
        key = self._cache.compute_key(query, filters)
        with trace.span("search") as search_span:
            cached = self._cache.get(key)
            if cached is None:
                await _notify(on_status, PipelineStage.RETRIEVING)
                found = await self._retriever.search(query, filters)
                self._cache.put(key, found)
                passages = list(found)
            else:
                passages = list(cached)
        recorder.record_search(search_span.duration_ms, cache_hit=cached is not None)

        resolved = [p for p in passages if not p.is_orphan]
        if len(resolved) < len(passages):
            logger.info("orphan_passages_dropped", dropped=len(passages) - len(resolved))

        if options.include_summaries and resolved:
            resolved = self._substitute_summaries(resolved)

        if options.use_graph_context and resolved:
            with trace.span("graph_expansion"):
                expansion = await self._retriever.expand_with_graph(
                    query, resolved, options.additional_graph_docs
                )
            if expansion is not None:
                recorder.record_graph(expansion.related_documents)
                resolved = resolved + expansion.passages

        log_retrieval_metrics(
            trace.trace_id,
            cached is not None,
            [p.similarity for p in resolved],
            len(resolved),
            len({p.document_id for p in resolved}),
            search_span.duration_ms,
        )
        return resolved

    @staticmethod
    def _substitute_summaries(passages: list[RetrievedPassage]) -> list[RetrievedPassage]:
        """One summary passage per document; documents without one keep their chunks."""
        by_document: dict[str, list[RetrievedPassage]] = {}
        for p in passages:
            by_document.setdefault(p.document_id, []).append(p)

        result: list[RetrievedPassage] = []
        substituted = 0
        for document_id, chunks in by_document.items():
            doc = chunks[0].document
            if doc is None or not (doc.summary and doc.summary.strip()):
                result.extend(chunks)
                continue
            substituted += 1
            result.append(
                RetrievedPassage(
                    passage_id=f"summary:{document_id}",
                    document_id=document_id,
                    content=doc.summary,
                    page_number=None,
                    similarity=max(c.similarity for c in chunks),
                    document=doc,
                )
            )
        logger.info("summaries_substituted", documents=len(by_document), summaries=substituted)
        return result

    def _compress(
        self,
        query: str,
        passages: list[RetrievedPassage],
        recorder: ExplanationRecorder,
        trace: TraceContext,
    ) -> list[RetrievedPassage]:
        try:
            with trace.span("compression") as span:
                result = self._run_compressor(query, passages)
        except CompressionFailure as e:
            logger.warning("compression_failed", error=str(e))
            recorder.record_compression_skipped(passages)
            return passages

        recorder.record_compression(
            passages, result.passages, result.stats.strategy, span.duration_ms
        )
        log_compression_metrics(
            trace.trace_id,
            result.stats.strategy,
            result.stats.original_size,
            result.stats.compressed_size,
            result.stats.reduction_percent,
        )
        return result.passages

    def _run_compressor(self, query: str, passages: list[RetrievedPassage]) -> CompressionResult:
        try:
            return self._compressor.compress(
                passages, query, self._settings.compression_char_budget
            )
        except Exception as e:
            raise CompressionFailure(f"Context compression failed: {e}") from e

    async def _stream(
        self,
        request: GenerationRequest,
        backend: GenerationBackend,
        on_fragment: FragmentSink | None,
    ) -> str:
        if self._current is not None and self._current.active:
            logger.info("stream_superseded", stream_id=self._current.stream_id)
            self._current.cancel()

        stream = FragmentStream(
            self._selector.stream_generate(request, backend), request.timeout_ms
        )
        self._current = stream
        parts: list[str] = []
        try:
            async for fragment in stream:
                parts.append(fragment)
                await _notify(on_fragment, fragment)
        finally:
            await stream.aclose()
            if self._current is stream:
                self._current = None
        return "".join(parts)

    async def _get_project_context(self) -> str | None:
        if self._project_context is None:
            return None
        try:
            return await self._project_context.get_project_context()
        except Exception as e:
            logger.warning("project_context_unavailable", error=str(e))
            return None

    async def _log_history(
        self,
        query: str,
        response_text: str,
        options: ChatOptions,
        passages: list[RetrievedPassage],
        sources: list[SourceReference],
        request: GenerationRequest,
        model_name: str,
        backend_kind: BackendKind,
        trace: TraceContext,
    ) -> None:
        if self._history is None:
            return

        query_params = {
            "context": options.context,
            "top_k": options.top_k,
            "source_type": options.source_type,
            "mode_id": options.mode_id,
            "use_graph_context": options.use_graph_context,
            "backend": backend_kind.value,
            "model": model_name,
        }
        source_dicts = [s.model_dump() for s in sources]
        try:
            await self._history.log_chat_message(
                ChatMessageEntry(role="user", content=query, query_params=query_params)
            )
            await self._history.log_chat_message(
                ChatMessageEntry(
                    role="assistant",
                    content=response_text,
                    query_params=query_params,
                    sources=source_dicts or None,
                )
            )
            if passages:
                await self._history.log_ai_operation(
                    AIOperationEntry(
                        operation_type=RAG_OPERATION_TYPE,
                        duration_ms=round(trace.elapsed_ms, 2),
                        input_text=query,
                        model_name=model_name,
                        output_text=response_text,
                        input_metadata={
                            "passages": len(passages),
                            "source_type": options.source_type,
                            "document_ids": list(options.document_ids),
                            "collection_keys": list(options.collection_keys),
                        },
                        model_parameters={"backend": backend_kind.value, **asdict(request.sampling)},
                        output_metadata={
                            "response_length": len(response_text),
                            "sources": source_dicts,
                        },
                    )
                )
        except Exception as e:
            logger.warning("history_log_failed", error_type=type(e).__name__, error=str(e))

    @staticmethod
    def _to_source(passage: RetrievedPassage) -> SourceReference:
        doc = passage.document
        return SourceReference(
            document_id=passage.document_id,
            document_title=passage.title,
            author=doc.author if doc else "",
            year=doc.year if doc else None,
            page_number=passage.page_number,
            similarity=passage.similarity,
            is_related_doc=passage.is_graph_expansion,
        )
