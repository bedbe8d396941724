"""Local generation backend wrapping an in-process model runtime."""

from __future__ import annotations

from collections.abc import AsyncIterator

from clio_rag.exceptions import GenerationError
from clio_rag.generation.prompt_builder import build_messages
from clio_rag.models.domain import BackendKind, GenerationRequest
from clio_rag.observability.logger import get_logger
from clio_rag.protocols.llm import LocalModelRuntime

logger = get_logger("embedded")

DEFAULT_EMBEDDED_MODEL = "qwen2.5-0.5b-instruct"


class EmbeddedBackend:
    """The runtime may be absent or unloaded; the backend then reports unavailable."""

    def __init__(self, runtime: LocalModelRuntime | None = None) -> None:
        self._runtime = runtime

    @property
    def kind(self) -> BackendKind:
        return BackendKind.LOCAL

    @property
    def model_id(self) -> str | None:
        if self._runtime is None or not self._runtime.is_loaded:
            return None
        return self._runtime.model_id

    @property
    def model_name(self) -> str:
        return self.model_id or DEFAULT_EMBEDDED_MODEL

    @property
    def display_name(self) -> str:
        return f"{self.model_name} (embedded)"

    def attach(self, runtime: LocalModelRuntime | None) -> None:
        self._runtime = runtime

    async def is_available(self) -> bool:
        return self._runtime is not None and self._runtime.is_loaded

    async def stream_generate(self, request: GenerationRequest) -> AsyncIterator[str]:
        if self._runtime is None or not self._runtime.is_loaded:
            raise GenerationError("The embedded model is not loaded.")
        # The runtime picks its own weights; model overrides only apply remotely.
        if request.model_override:
            logger.debug("embedded_ignores_model_override", model=request.model_override)
        sampling = request.sampling
        async for fragment in self._runtime.stream_chat(
            build_messages(request),
            temperature=sampling.temperature,
            top_p=sampling.top_p,
            top_k=sampling.top_k,
            repeat_penalty=sampling.repeat_penalty,
            n_ctx=sampling.context_window_tokens,
        ):
            yield fragment

    async def aclose(self) -> None:
        # The runtime is owned by whoever loaded it.
        return None
