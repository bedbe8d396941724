"""Protocol for the citation / similarity graph collaborator."""

from __future__ import annotations

from typing import Protocol

from clio_rag.models.domain import DocumentRef, SimilarDocument


class DocumentGraph(Protocol):
    async def get_documents_cited_by(self, document_id: str) -> list[str]: ...

    async def get_documents_citing(self, document_id: str) -> list[str]: ...

    async def get_similar_documents(
        self, document_id: str, threshold: float, limit: int
    ) -> list[SimilarDocument]: ...

    async def get_document(self, document_id: str) -> DocumentRef | None: ...
