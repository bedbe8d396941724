"""Remote generation backend talking to an Ollama server over httpx."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

import httpx

from clio_rag.exceptions import EmbeddingUnavailable, GenerationError, GenerationTimeout
from clio_rag.generation.prompt_builder import build_messages
from clio_rag.models.domain import BackendKind, GenerationRequest
from clio_rag.observability.logger import get_logger

logger = get_logger("ollama")


class OllamaBackend:
    def __init__(
        self,
        base_url: str = "http://127.0.0.1:11434",
        chat_model: str = "gemma2:2b",
        embedding_model: str = "nomic-embed-text",
        probe_timeout_s: float = 2.0,
        connect_timeout_s: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._chat_model = chat_model
        self._embedding_model = embedding_model
        self._probe_timeout_s = probe_timeout_s
        self._connect_timeout_s = connect_timeout_s
        self._client = client or httpx.AsyncClient(base_url=self._base_url)

    @property
    def kind(self) -> BackendKind:
        return BackendKind.REMOTE

    @property
    def model_name(self) -> str:
        return self._chat_model

    @property
    def display_name(self) -> str:
        return f"Ollama ({self._chat_model})"

    async def is_available(self) -> bool:
        try:
            response = await self._client.get("/api/tags", timeout=self._probe_timeout_s)
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.debug("ollama_probe_failed", error=str(e))
            return False

    async def generate_embedding(self, text: str) -> list[float]:
        try:
            response = await self._client.post(
                "/api/embed",
                json={"model": self._embedding_model, "input": text},
                timeout=httpx.Timeout(60.0, connect=self._connect_timeout_s),
            )
            response.raise_for_status()
            embeddings = response.json().get("embeddings") or []
        except (httpx.HTTPError, ValueError) as e:
            raise EmbeddingUnavailable(
                f"Ollama could not embed the query with {self._embedding_model!r}: {e}\n"
                f"Check that the model is pulled: ollama pull {self._embedding_model}"
            ) from e
        if not embeddings:
            raise EmbeddingUnavailable(
                f"Ollama returned no embeddings for model {self._embedding_model!r}."
            )
        return embeddings[0]

    async def stream_generate(self, request: GenerationRequest) -> AsyncIterator[str]:
        sampling = request.sampling
        payload = {
            "model": request.model_override or self._chat_model,
            "messages": build_messages(request),
            "stream": True,
            "options": {
                "temperature": sampling.temperature,
                "top_p": sampling.top_p,
                "top_k": sampling.top_k,
                "repeat_penalty": sampling.repeat_penalty,
                "num_ctx": sampling.context_window_tokens,
            },
        }
        timeout = httpx.Timeout(request.timeout_ms / 1000, connect=self._connect_timeout_s)
        logger.info(
            "ollama_generate",
            model=payload["model"],
            sources=len(request.passages),
            num_ctx=sampling.context_window_tokens,
        )
        try:
            async with self._client.stream(
                "POST", "/api/chat", json=payload, timeout=timeout
            ) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise GenerationError(
                        f"Ollama returned HTTP {response.status_code}: {body[:300]}"
                    )
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    data = json.loads(line)
                    if "error" in data:
                        raise GenerationError(f"Ollama generation failed: {data['error']}")
                    content = data.get("message", {}).get("content", "")
                    if content:
                        yield content
                    if data.get("done"):
                        break
        except httpx.TimeoutException as e:
            raise GenerationTimeout(request.timeout_ms) from e
        except httpx.HTTPError as e:
            raise GenerationError(f"Ollama generation failed: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()
