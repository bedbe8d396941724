"""Protocols for history logging and project-level context."""

from __future__ import annotations

from typing import Protocol

from clio_rag.models.domain import AIOperationEntry, ChatMessageEntry


class HistoryLogger(Protocol):
    async def log_chat_message(self, entry: ChatMessageEntry) -> None: ...

    async def log_ai_operation(self, entry: AIOperationEntry) -> None: ...


class ProjectContextProvider(Protocol):
    async def get_project_context(self) -> str | None: ...
