"""Pydantic models for caller-facing options, explanations and responses."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SamplingOverrides(BaseModel):
    """Per-query sampling overrides. Unset fields fall back to the mode preset."""

    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, gt=0.0, le=1.0)
    top_k: int | None = Field(default=None, ge=1)
    repeat_penalty: float | None = Field(default=None, gt=0.0)
    context_window_tokens: int | None = Field(default=None, ge=512)


class ChatOptions(BaseModel):
    # Retrieval
    context: bool = False
    top_k: int = Field(default=10, ge=1, le=200)
    source_type: Literal["primary", "secondary", "both"] = "both"
    document_ids: list[str] = Field(default_factory=list)
    collection_keys: list[str] = Field(default_factory=list)
    similarity_threshold: float | None = Field(default=None, ge=0.0)
    use_entity_boost: bool = False
    use_graph_context: bool = False
    additional_graph_docs: int = Field(default=3, ge=1, le=20)
    include_summaries: bool = False
    enable_context_compression: bool = True

    # Backend
    provider: Literal["remote", "local", "auto"] | None = None
    model: str | None = None
    timeout_ms: int | None = Field(default=None, ge=1)
    sampling: SamplingOverrides = Field(default_factory=SamplingOverrides)

    # System prompt
    system_prompt_language: Literal["fr", "en"] = "fr"
    use_custom_system_prompt: bool = False
    custom_system_prompt: str | None = None
    no_system_prompt: bool = False
    mode_id: str = "default-assistant"


class DocumentSummary(BaseModel):
    title: str
    similarity: float
    source_type: Literal["primary", "secondary"]
    chunk_count: int


class SearchExplanation(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    total_results: int
    duration_ms: float
    cache_hit: bool
    source_type: Literal["primary", "secondary", "both"]
    documents: list[DocumentSummary]


class CompressionExplanation(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool
    before_chunks: int
    after_chunks: int
    before_size: int
    after_size: int
    reduction_percent: float
    strategy: str | None = None


class GraphExplanation(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool
    related_docs_found: int
    titles: list[str]


class GenerationExplanation(BaseModel):
    model_config = ConfigDict(frozen=True)

    backend_name: str
    model_name: str
    context_window_tokens: int
    temperature: float
    prompt_size_chars: int


class TimingExplanation(BaseModel):
    model_config = ConfigDict(frozen=True)

    search_ms: float
    compression_ms: float | None = None
    generation_ms: float
    total_ms: float


class ExplanationTrace(BaseModel):
    model_config = ConfigDict(frozen=True)

    search: SearchExplanation
    compression: CompressionExplanation | None = None
    graph: GraphExplanation | None = None
    generation: GenerationExplanation
    timing: TimingExplanation


class SourceReference(BaseModel):
    document_id: str
    document_title: str
    author: str = ""
    year: int | None = None
    page_number: int | None = None
    similarity: float
    is_related_doc: bool = False


class ChatResponse(BaseModel):
    response: str
    rag_used: bool
    sources_count: int
    sources: list[SourceReference] = Field(default_factory=list)
    explanation: ExplanationTrace | None = None
