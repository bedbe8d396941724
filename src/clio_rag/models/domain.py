"""Core domain objects used throughout the system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

SourceType = Literal["primary", "secondary"]
SourceSelection = Literal["primary", "secondary", "both"]


class BackendKind(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


class BackendPreference(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"
    AUTO = "auto"


class PipelineStage(str, Enum):
    IDLE = "idle"
    CACHE_CHECK = "cache_check"
    RETRIEVING = "retrieving"
    COMPRESSING = "compressing"
    PROMPT_BUILDING = "prompt_building"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class DocumentRef:
    document_id: str
    title: str = "Unknown"
    author: str = ""
    year: int | None = None
    source_type: SourceType = "secondary"
    summary: str | None = None


@dataclass(frozen=True)
class RetrievedPassage:
    passage_id: str
    document_id: str
    content: str
    page_number: int | None
    similarity: float
    is_graph_expansion: bool = False
    document: DocumentRef | None = None

    @property
    def is_orphan(self) -> bool:
        return self.document is None

    @property
    def title(self) -> str:
        return self.document.title if self.document else "Unknown"


@dataclass(frozen=True)
class SearchHit:
    """One fused-ranking result as returned by the hybrid search collaborator."""

    chunk_id: str
    document_id: str
    content: str
    score: float
    page_number: int | None = None
    document: DocumentRef | None = None


@dataclass(frozen=True)
class SearchFilters:
    top_k: int = 10
    collection_keys: tuple[str, ...] = ()
    document_ids: tuple[str, ...] = ()
    source_type: SourceSelection = "both"
    similarity_threshold: float | None = None
    use_entity_boost: bool = False


@dataclass(frozen=True)
class SimilarDocument:
    document_id: str
    similarity: float


@dataclass
class GraphExpansion:
    related_documents: list[DocumentRef] = field(default_factory=list)
    passages: list[RetrievedPassage] = field(default_factory=list)


@dataclass(frozen=True)
class SamplingParams:
    temperature: float = 0.1
    top_p: float = 0.85
    top_k: int = 40
    repeat_penalty: float = 1.1
    context_window_tokens: int = 4096


@dataclass(frozen=True)
class GenerationRequest:
    query: str
    passages: tuple[RetrievedPassage, ...]
    system_prompt: str
    sampling: SamplingParams
    timeout_ms: int
    project_context: str | None = None
    model_override: str | None = None


@dataclass
class CompressionStats:
    original_chunks: int
    compressed_chunks: int
    original_size: int
    compressed_size: int
    reduction_percent: float
    strategy: str


@dataclass
class CompressionResult:
    passages: list[RetrievedPassage]
    stats: CompressionStats


@dataclass
class ProviderStatus:
    active_backend: BackendKind | None
    remote_available: bool
    local_available: bool
    local_model_id: str | None
    remote_model_name: str


@dataclass
class ChatMessageEntry:
    role: Literal["user", "assistant"]
    content: str
    query_params: dict = field(default_factory=dict)
    sources: list[dict] | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class AIOperationEntry:
    operation_type: str
    duration_ms: float
    input_text: str
    model_name: str
    output_text: str
    input_metadata: dict = field(default_factory=dict)
    model_parameters: dict = field(default_factory=dict)
    output_metadata: dict = field(default_factory=dict)
    success: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
