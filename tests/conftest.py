"""Shared test fixtures."""

from __future__ import annotations

import pytest
from fakes import FakeHistory, FakeLocalBackend, FakeRemoteBackend, FakeSearcher, make_hit

from clio_rag.config.settings import Settings
from clio_rag.generation.backend_selector import BackendSelector
from clio_rag.pipeline.chat_orchestrator import ChatOrchestrator
from clio_rag.retrieval.coordinator import RetrievalCoordinator
from clio_rag.retrieval.query_cache import QueryCache
from clio_rag.retrieval.query_expansion import QueryExpander


@pytest.fixture
def settings(tmp_path):
    """Test settings with temp paths, ignoring any local .env file."""
    return Settings(_env_file=None, sqlite_history_db_path=str(tmp_path / "history.db"))


@pytest.fixture
def remote():
    return FakeRemoteBackend()


@pytest.fixture
def local():
    return FakeLocalBackend()


@pytest.fixture
def selector(remote, local):
    return BackendSelector(remote=remote, local=local)


@pytest.fixture
def searcher():
    """Five passages from five documents, all above the fusion threshold."""
    return FakeSearcher([make_hit(i, 0.03 - i * 0.002) for i in range(5)])


@pytest.fixture
def history():
    return FakeHistory()


@pytest.fixture
def expander():
    return QueryExpander(detector=lambda text: "en")


@pytest.fixture
def retriever(searcher, selector, expander):
    return RetrievalCoordinator(searcher, selector, query_expander=expander)


@pytest.fixture
def orchestrator(selector, retriever, settings, history):
    return ChatOrchestrator(selector, retriever, QueryCache(), settings, history=history)
