"""Chooses between the remote service and the embedded model.

Selection depends on the configured preference and on live availability.
The chosen backend is cached until the preference changes or a new
selection runs; availability itself is never cached.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from clio_rag.exceptions import EmbeddingUnavailable, NoBackendAvailable
from clio_rag.models.domain import (
    BackendPreference,
    GenerationRequest,
    ProviderStatus,
)
from clio_rag.observability.logger import get_logger
from clio_rag.protocols.llm import EmbeddingBackend, GenerationBackend

logger = get_logger("backend_selector")


class BackendSelector:
    def __init__(
        self,
        remote: EmbeddingBackend,
        local: GenerationBackend,
        preference: BackendPreference | str = BackendPreference.AUTO,
    ) -> None:
        self._remote = remote
        self._local = local
        self._preference = BackendPreference(preference)
        self._active: GenerationBackend | None = None

    @property
    def preference(self) -> BackendPreference:
        return self._preference

    @property
    def active_backend(self) -> GenerationBackend | None:
        return self._active

    @property
    def active_backend_name(self) -> str:
        return self._active.display_name if self._active else "No LLM available"

    @property
    def active_model_name(self) -> str:
        return self._active.model_name if self._active else "none"

    def set_preference(self, preference: BackendPreference | str) -> None:
        self._preference = BackendPreference(preference)
        self._active = None
        logger.info("backend_preference_set", preference=self._preference.value)

    async def select_backend(
        self, preference: BackendPreference | str | None = None
    ) -> GenerationBackend | None:
        pref = BackendPreference(preference) if preference else self._preference

        backend: GenerationBackend | None = None
        if pref is BackendPreference.REMOTE:
            if await self._remote.is_available():
                backend = self._remote
        elif pref is BackendPreference.LOCAL:
            if await self._local.is_available():
                backend = self._local
        elif await self._remote.is_available():
            backend = self._remote
        elif await self._local.is_available():
            backend = self._local

        self._active = backend
        logger.info(
            "backend_selected",
            preference=pref.value,
            backend=backend.kind.value if backend else None,
        )
        return backend

    async def stream_generate(
        self, request: GenerationRequest, backend: GenerationBackend | None = None
    ) -> AsyncIterator[str]:
        """Streams from `backend` when given, else from the active selection."""
        backend = backend or self._active or await self.select_backend()
        if backend is None:
            raise NoBackendAvailable()
        async for fragment in backend.stream_generate(request):
            yield fragment

    async def is_embedding_available(self) -> bool:
        return await self._remote.is_available()

    async def generate_embedding(self, text: str) -> list[float]:
        if not await self._remote.is_available():
            raise EmbeddingUnavailable()
        return await self._remote.generate_embedding(text)

    async def get_status(self) -> ProviderStatus:
        remote_available = await self._remote.is_available()
        local_available = await self._local.is_available()
        return ProviderStatus(
            active_backend=self._active.kind if self._active else None,
            remote_available=remote_available,
            local_available=local_available,
            local_model_id=self._local.model_name if local_available else None,
            remote_model_name=self._remote.model_name,
        )

    async def aclose(self) -> None:
        await self._remote.aclose()
        await self._local.aclose()
