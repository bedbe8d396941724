"""Tests for the embedded-model backend."""

from __future__ import annotations

import pytest
from fakes import FakeRuntime

from clio_rag.exceptions import GenerationError
from clio_rag.generation.embedded_backend import EmbeddedBackend
from clio_rag.models.domain import GenerationRequest, SamplingParams


def _request() -> GenerationRequest:
    return GenerationRequest(
        query="Qui a signé ?",
        passages=(),
        system_prompt="",
        sampling=SamplingParams(top_k=30, context_window_tokens=2048),
        timeout_ms=1000,
        model_override="llama3",
    )


async def test_unavailable_without_loaded_runtime():
    assert await EmbeddedBackend().is_available() is False
    assert await EmbeddedBackend(FakeRuntime(loaded=False)).is_available() is False
    assert EmbeddedBackend().display_name == "qwen2.5-0.5b-instruct (embedded)"


async def test_streams_with_runtime_parameters():
    runtime = FakeRuntime()
    backend = EmbeddedBackend(runtime)
    assert await backend.is_available() is True
    assert backend.model_name == "mistral-7b-instruct"

    fragments = [f async for f in backend.stream_generate(_request())]
    assert fragments == ["Bonjour", " !"]
    call = runtime.calls[0]
    assert call["messages"] == [{"role": "user", "content": "Qui a signé ?"}]
    assert call["top_k"] == 30
    assert call["n_ctx"] == 2048


async def test_attach_runtime_later():
    backend = EmbeddedBackend()
    backend.attach(FakeRuntime())
    assert await backend.is_available() is True


async def test_generation_requires_loaded_model():
    with pytest.raises(GenerationError, match="not loaded"):
        async for _ in EmbeddedBackend().stream_generate(_request()):
            pass
