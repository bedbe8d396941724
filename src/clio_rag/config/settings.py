"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Backend selection
    provider: Literal["remote", "local", "auto"] = "auto"

    # Remote backend / Ollama
    ollama_url: str = "http://127.0.0.1:11434"
    ollama_chat_model: str = "gemma2:2b"
    ollama_embedding_model: str = "nomic-embed-text"
    ollama_probe_timeout_s: float = 2.0
    ollama_connect_timeout_s: float = 10.0

    # Generation
    generation_timeout_ms: int = 600_000

    # Retrieval
    similarity_threshold: float = 0.005
    expansion_min_words: int = 4

    # Query cache
    cache_max_entries: int = 200
    cache_ttl_seconds: float = 1800.0

    # Graph expansion
    graph_similarity_threshold: float = 0.7
    graph_max_depth: int = 1
    graph_max_related: int = 12

    # Compression
    compression_char_budget: int = 20_000

    # Storage paths
    sqlite_history_db_path: str = "data/history.db"

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    model_config = {"env_file": ".env", "env_prefix": "CLIO_"}
