"""Custom exception hierarchy for the chat orchestration layer.

Fatal errors carry remediation text in their message because the direct
caller displays it as-is. Non-fatal errors are raised at their origin and
caught by the orchestrator, which degrades the pipeline instead of aborting.
"""


class ClioRAGError(Exception):
    """Base exception for all orchestration errors."""


class ConfigurationError(ClioRAGError):
    """Error in system configuration (bad language, bad mode, ...)."""


class NoBackendAvailable(ClioRAGError):
    """Neither the remote service nor a local model can serve generation."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or (
                "No language model is available.\n\n"
                "Options:\n"
                "1. Install and start Ollama (https://ollama.ai)\n"
                "2. Download and load the embedded model in Settings -> LLM"
            )
        )


class EmbeddingUnavailable(ClioRAGError):
    """Embeddings require the remote backend, which is not reachable."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or (
                "Ollama is required to generate embeddings.\n"
                "The embedded model only supports text generation.\n\n"
                "Install and start Ollama: https://ollama.ai"
            )
        )


class RetrievalError(ClioRAGError):
    """The hybrid search collaborator failed."""


class GenerationError(ClioRAGError):
    """Error during answer generation."""


class GenerationTimeout(GenerationError):
    """Generation exceeded the request timeout. Safe to retry."""

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Generation did not finish within {timeout_ms / 1000:.0f}s. "
            "Retry, raise the timeout, or reduce the context window."
        )


class GenerationCancelled(GenerationError):
    """The stream was cancelled or superseded by a newer request."""


class GraphExpansionFailure(ClioRAGError):
    """Non-fatal: the citation graph could not be expanded."""


class CompressionFailure(ClioRAGError):
    """Non-fatal: context compression failed, passages stay uncompressed."""


class HistoryLogFailure(ClioRAGError):
    """Non-fatal: the exchange could not be written to history."""
