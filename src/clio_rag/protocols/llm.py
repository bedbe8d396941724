"""Protocols for generation backends and the embedded model runtime."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from clio_rag.models.domain import BackendKind, GenerationRequest


class GenerationBackend(Protocol):
    @property
    def kind(self) -> BackendKind: ...

    @property
    def display_name(self) -> str: ...

    @property
    def model_name(self) -> str: ...

    async def is_available(self) -> bool: ...

    def stream_generate(self, request: GenerationRequest) -> AsyncIterator[str]: ...

    async def aclose(self) -> None: ...


class EmbeddingBackend(GenerationBackend, Protocol):
    async def generate_embedding(self, text: str) -> list[float]: ...


class LocalModelRuntime(Protocol):
    """An in-process model runtime (e.g. a loaded GGUF model)."""

    @property
    def is_loaded(self) -> bool: ...

    @property
    def model_id(self) -> str | None: ...

    def stream_chat(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        top_p: float,
        top_k: int,
        repeat_penalty: float,
        n_ctx: int,
    ) -> AsyncIterator[str]: ...
