"""Integration tests for the SQLite history store."""

import tempfile
from pathlib import Path

import pytest

from clio_rag.exceptions import HistoryLogFailure
from clio_rag.models.domain import AIOperationEntry, ChatMessageEntry
from clio_rag.storage.sqlite_history_store import SQLiteHistoryStore


@pytest.fixture
async def history_store():
    tmp = tempfile.mkdtemp()
    store = SQLiteHistoryStore(str(Path(tmp) / "history.db"), session_id="s1")
    await store.initialize()
    return store


@pytest.mark.asyncio
async def test_log_and_read_messages(history_store):
    await history_store.log_chat_message(
        ChatMessageEntry(role="user", content="Who signed?", query_params={"top_k": 10})
    )
    await history_store.log_chat_message(
        ChatMessageEntry(
            role="assistant",
            content="Clemenceau.",
            sources=[{"document_id": "d1", "similarity": 0.02}],
        )
    )

    messages = await history_store.get_recent_messages()
    assert [m.role for m in messages] == ["user", "assistant"]
    assert messages[0].query_params == {"top_k": 10}
    assert messages[0].sources is None
    assert messages[1].sources == [{"document_id": "d1", "similarity": 0.02}]
    assert messages[1].created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_recent_messages_limit_keeps_latest(history_store):
    for i in range(5):
        await history_store.log_chat_message(ChatMessageEntry(role="user", content=f"q{i}"))
    messages = await history_store.get_recent_messages(limit=2)
    assert [m.content for m in messages] == ["q3", "q4"]


@pytest.mark.asyncio
async def test_log_and_read_operations(history_store):
    await history_store.log_ai_operation(
        AIOperationEntry(
            operation_type="rag_query",
            duration_ms=812.5,
            input_text="Who signed?",
            model_name="gemma2:2b",
            output_text="Clemenceau.",
            model_parameters={"temperature": 0.1},
        )
    )
    await history_store.log_ai_operation(
        AIOperationEntry(
            operation_type="summary",
            duration_ms=100.0,
            input_text="doc",
            model_name="gemma2:2b",
            output_text="short",
            success=False,
        )
    )

    rag_ops = await history_store.get_recent_operations(operation_type="rag_query")
    assert len(rag_ops) == 1
    assert rag_ops[0].model_parameters == {"temperature": 0.1}
    assert rag_ops[0].success is True

    all_ops = await history_store.get_recent_operations()
    assert [op.operation_type for op in all_ops] == ["summary", "rag_query"]
    assert all_ops[0].success is False


@pytest.mark.asyncio
async def test_sessions_are_isolated(history_store):
    other = SQLiteHistoryStore(history_store._db_path, session_id="s2")
    await other.log_chat_message(ChatMessageEntry(role="user", content="elsewhere"))
    assert await history_store.get_recent_messages() == []


@pytest.mark.asyncio
async def test_initialize_is_idempotent(history_store):
    await history_store.initialize()
    await history_store.log_chat_message(ChatMessageEntry(role="user", content="q"))
    assert len(await history_store.get_recent_messages()) == 1


@pytest.mark.asyncio
async def test_write_failure_raises_history_log_failure():
    tmp = tempfile.mkdtemp()
    store = SQLiteHistoryStore(str(Path(tmp) / "never_initialized.db"))
    with pytest.raises(HistoryLogFailure, match="chat message"):
        await store.log_chat_message(ChatMessageEntry(role="user", content="q"))
