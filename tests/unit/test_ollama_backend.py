"""Tests for the Ollama backend against a mocked HTTP transport."""

from __future__ import annotations

import json

import httpx
import pytest

from clio_rag.exceptions import EmbeddingUnavailable, GenerationError, GenerationTimeout
from clio_rag.generation.ollama_backend import OllamaBackend
from clio_rag.models.domain import BackendKind, GenerationRequest, SamplingParams


def _backend(handler) -> OllamaBackend:
    client = httpx.AsyncClient(
        base_url="http://ollama.test", transport=httpx.MockTransport(handler)
    )
    return OllamaBackend(base_url="http://ollama.test", client=client)


def _request(**kwargs) -> GenerationRequest:
    defaults = dict(
        query="Who signed?",
        passages=(),
        system_prompt="Be precise.",
        sampling=SamplingParams(temperature=0.3, context_window_tokens=8192),
        timeout_ms=5000,
    )
    defaults.update(kwargs)
    return GenerationRequest(**defaults)


def _ndjson(*objects) -> bytes:
    return "\n".join(json.dumps(o) for o in objects).encode()


async def test_available_when_tags_respond():
    backend = _backend(lambda request: httpx.Response(200, json={"models": []}))
    assert backend.kind is BackendKind.REMOTE
    assert await backend.is_available() is True


async def test_unavailable_on_connection_error():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    assert await _backend(handler).is_available() is False


async def test_unavailable_on_error_status():
    assert await _backend(lambda request: httpx.Response(500)).is_available() is False


async def test_generate_embedding():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={"embeddings": [[0.5, 0.25]]})

    assert await _backend(handler).generate_embedding("treaty") == [0.5, 0.25]
    assert seen == {"model": "nomic-embed-text", "input": "treaty"}


async def test_embedding_http_error_is_unavailable():
    backend = _backend(lambda request: httpx.Response(404, json={"error": "model not found"}))
    with pytest.raises(EmbeddingUnavailable, match="ollama pull nomic-embed-text"):
        await backend.generate_embedding("treaty")


async def test_empty_embedding_is_unavailable():
    backend = _backend(lambda request: httpx.Response(200, json={"embeddings": []}))
    with pytest.raises(EmbeddingUnavailable):
        await backend.generate_embedding("treaty")


async def test_malformed_embedding_body_is_unavailable():
    backend = _backend(lambda request: httpx.Response(200, content=b"<html>proxy error</html>"))
    with pytest.raises(EmbeddingUnavailable):
        await backend.generate_embedding("treaty")


async def test_stream_generate_parses_ndjson():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        body = _ndjson(
            {"message": {"content": "Clemenceau"}, "done": False},
            {"message": {"content": ""}, "done": False},
            {"message": {"content": " signed."}, "done": True},
        )
        return httpx.Response(200, content=body)

    fragments = [f async for f in _backend(handler).stream_generate(_request(model_override="llama3"))]
    assert fragments == ["Clemenceau", " signed."]
    assert seen["model"] == "llama3"
    assert seen["stream"] is True
    assert seen["messages"][0] == {"role": "system", "content": "Be precise."}
    assert seen["options"]["num_ctx"] == 8192
    assert seen["options"]["temperature"] == 0.3


async def test_stream_error_line_raises():
    body = _ndjson({"error": "model requires more system memory"})
    backend = _backend(lambda request: httpx.Response(200, content=body))
    with pytest.raises(GenerationError, match="system memory"):
        async for _ in backend.stream_generate(_request()):
            pass


async def test_stream_http_error_status_raises():
    backend = _backend(lambda request: httpx.Response(500, text="internal error"))
    with pytest.raises(GenerationError, match="HTTP 500"):
        async for _ in backend.stream_generate(_request()):
            pass


async def test_stream_timeout_is_generation_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out")

    with pytest.raises(GenerationTimeout):
        async for _ in _backend(handler).stream_generate(_request()):
            pass


async def test_aclose_closes_client():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    await OllamaBackend(client=client).aclose()
    assert client.is_closed
