"""Idempotent history schema creation."""

from __future__ import annotations

import aiosqlite

CHAT_MESSAGES_TABLE = """
CREATE TABLE IF NOT EXISTS chat_messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
    content TEXT NOT NULL,
    query_params TEXT NOT NULL DEFAULT '{}',
    sources TEXT,
    created_at TEXT NOT NULL
)
"""

CHAT_MESSAGES_SESSION_INDEX = """
CREATE INDEX IF NOT EXISTS idx_chat_messages_session ON chat_messages(session_id, created_at)
"""

AI_OPERATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS ai_operations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    operation_type TEXT NOT NULL,
    duration_ms REAL NOT NULL,
    input_text TEXT NOT NULL,
    input_metadata TEXT NOT NULL DEFAULT '{}',
    model_name TEXT NOT NULL,
    model_parameters TEXT NOT NULL DEFAULT '{}',
    output_text TEXT NOT NULL,
    output_metadata TEXT NOT NULL DEFAULT '{}',
    success INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
)
"""

AI_OPERATIONS_TYPE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_ai_operations_type ON ai_operations(operation_type, created_at)
"""


async def initialize_history_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(CHAT_MESSAGES_TABLE)
        await db.execute(CHAT_MESSAGES_SESSION_INDEX)
        await db.execute(AI_OPERATIONS_TABLE)
        await db.execute(AI_OPERATIONS_TYPE_INDEX)
        await db.commit()
