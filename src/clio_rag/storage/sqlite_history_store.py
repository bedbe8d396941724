"""SQLite-backed chat history and AI operation log."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from uuid import uuid4

import aiosqlite

from clio_rag.exceptions import HistoryLogFailure
from clio_rag.models.domain import AIOperationEntry, ChatMessageEntry
from clio_rag.storage.migrations import initialize_history_db


class SQLiteHistoryStore:
    """Write failures surface as HistoryLogFailure; reads propagate aiosqlite errors."""

    def __init__(self, db_path: str, session_id: str | None = None) -> None:
        self._db_path = db_path
        self.session_id = session_id or uuid4().hex

    async def initialize(self) -> None:
        await initialize_history_db(self._db_path)

    async def log_chat_message(self, entry: ChatMessageEntry) -> None:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                await db.execute(
                    "INSERT INTO chat_messages "
                    "(session_id, role, content, query_params, sources, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        self.session_id,
                        entry.role,
                        entry.content,
                        json.dumps(entry.query_params),
                        json.dumps(entry.sources) if entry.sources is not None else None,
                        entry.created_at.isoformat(),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise HistoryLogFailure(f"Could not log chat message: {e}") from e

    async def log_ai_operation(self, entry: AIOperationEntry) -> None:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                await db.execute(
                    "INSERT INTO ai_operations "
                    "(session_id, operation_type, duration_ms, input_text, input_metadata, "
                    "model_name, model_parameters, output_text, output_metadata, success, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        self.session_id,
                        entry.operation_type,
                        entry.duration_ms,
                        entry.input_text,
                        json.dumps(entry.input_metadata),
                        entry.model_name,
                        json.dumps(entry.model_parameters),
                        entry.output_text,
                        json.dumps(entry.output_metadata),
                        int(entry.success),
                        entry.created_at.isoformat(),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise HistoryLogFailure(f"Could not log AI operation: {e}") from e

    async def get_recent_messages(self, limit: int = 50) -> list[ChatMessageEntry]:
        """Most recent messages of this session, oldest first."""
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM chat_messages WHERE session_id = ? ORDER BY id DESC LIMIT ?",
                (self.session_id, limit),
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_message(row) for row in reversed(rows)]

    async def get_recent_operations(
        self, operation_type: str | None = None, limit: int = 50
    ) -> list[AIOperationEntry]:
        query = "SELECT * FROM ai_operations WHERE session_id = ?"
        params: list = [self.session_id]
        if operation_type is not None:
            query += " AND operation_type = ?"
            params.append(operation_type)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_operation(row) for row in rows]

    @staticmethod
    def _parse_timestamp(value: str) -> datetime:
        ts = datetime.fromisoformat(value)
        return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)

    @classmethod
    def _row_to_message(cls, row: aiosqlite.Row) -> ChatMessageEntry:
        return ChatMessageEntry(
            role=row["role"],
            content=row["content"],
            query_params=json.loads(row["query_params"]),
            sources=json.loads(row["sources"]) if row["sources"] is not None else None,
            created_at=cls._parse_timestamp(row["created_at"]),
        )

    @classmethod
    def _row_to_operation(cls, row: aiosqlite.Row) -> AIOperationEntry:
        return AIOperationEntry(
            operation_type=row["operation_type"],
            duration_ms=row["duration_ms"],
            input_text=row["input_text"],
            model_name=row["model_name"],
            output_text=row["output_text"],
            input_metadata=json.loads(row["input_metadata"]),
            model_parameters=json.loads(row["model_parameters"]),
            output_metadata=json.loads(row["output_metadata"]),
            success=bool(row["success"]),
            created_at=cls._parse_timestamp(row["created_at"]),
        )
