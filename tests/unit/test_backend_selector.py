"""Tests for backend selection, failover and status reporting."""

from __future__ import annotations

import pytest
from fakes import FakeLocalBackend, FakeRemoteBackend

from clio_rag.exceptions import EmbeddingUnavailable, NoBackendAvailable
from clio_rag.generation.backend_selector import BackendSelector
from clio_rag.models.domain import BackendKind, BackendPreference, GenerationRequest, SamplingParams


def _request() -> GenerationRequest:
    return GenerationRequest(
        query="q", passages=(), system_prompt="", sampling=SamplingParams(), timeout_ms=1000
    )


@pytest.mark.parametrize(
    ("remote_up", "local_up", "expected"),
    [
        (True, True, BackendKind.REMOTE),
        (False, True, BackendKind.LOCAL),
        (True, False, BackendKind.REMOTE),
        (False, False, None),
    ],
)
async def test_auto_priority(remote_up, local_up, expected):
    selector = BackendSelector(FakeRemoteBackend(available=remote_up), FakeLocalBackend(loaded=local_up))
    backend = await selector.select_backend()
    assert (backend.kind if backend else None) == expected


async def test_explicit_preference_does_not_fail_over():
    selector = BackendSelector(
        FakeRemoteBackend(available=False), FakeLocalBackend(), preference="remote"
    )
    assert await selector.select_backend() is None

    selector = BackendSelector(FakeRemoteBackend(), FakeLocalBackend(loaded=False), preference="local")
    assert await selector.select_backend() is None


async def test_selection_is_cached_until_preference_changes():
    selector = BackendSelector(FakeRemoteBackend(), FakeLocalBackend())
    await selector.select_backend()
    assert selector.active_backend_name == "Ollama (gemma2:2b)"

    selector.set_preference(BackendPreference.LOCAL)
    assert selector.active_backend is None
    assert selector.active_backend_name == "No LLM available"
    await selector.select_backend()
    assert selector.active_model_name == "qwen2.5-0.5b-instruct"


async def test_stream_generate_forwards_to_active_backend():
    local = FakeLocalBackend(fragments=("a", "b"))
    selector = BackendSelector(FakeRemoteBackend(available=False), local)
    fragments = [f async for f in selector.stream_generate(_request())]
    assert fragments == ["a", "b"]
    assert len(local.requests) == 1


async def test_stream_generate_prefers_explicit_backend():
    remote, local = FakeRemoteBackend(), FakeLocalBackend()
    selector = BackendSelector(remote, local)
    await selector.select_backend()
    fragments = [f async for f in selector.stream_generate(_request(), local)]
    assert fragments == ["Local answer."]
    assert remote.requests == []


async def test_stream_generate_without_backend_raises():
    selector = BackendSelector(FakeRemoteBackend(available=False), FakeLocalBackend(loaded=False))
    with pytest.raises(NoBackendAvailable, match="Ollama"):
        async for _ in selector.stream_generate(_request()):
            pass


async def test_embedding_requires_remote():
    remote = FakeRemoteBackend(available=False)
    selector = BackendSelector(remote, FakeLocalBackend())
    assert await selector.is_embedding_available() is False
    with pytest.raises(EmbeddingUnavailable, match="embeddings"):
        await selector.generate_embedding("treaty")

    remote.available = True
    assert await selector.generate_embedding("treaty") == [0.1, 0.2, 0.3]


async def test_status_is_probed_live():
    remote = FakeRemoteBackend(available=False)
    selector = BackendSelector(remote, FakeLocalBackend())
    await selector.select_backend()

    status = await selector.get_status()
    assert status.active_backend is BackendKind.LOCAL
    assert status.remote_available is False
    assert status.local_available is True
    assert status.local_model_id == "qwen2.5-0.5b-instruct"
    assert status.remote_model_name == "gemma2:2b"

    remote.available = True
    assert (await selector.get_status()).remote_available is True


async def test_aclose_closes_both_backends():
    remote, local = FakeRemoteBackend(), FakeLocalBackend()
    await BackendSelector(remote, local).aclose()
    assert remote.closed and local.closed
