"""Cancellable, deadline-bounded wrapper around a backend's fragment stream."""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from uuid import uuid4

from clio_rag.exceptions import GenerationCancelled, GenerationTimeout
from clio_rag.observability.logger import get_logger

logger = get_logger("streaming")


class FragmentStream:
    """Async iterator over text fragments with an explicit cancel signal.

    The deadline covers the whole stream, not each fragment. Once cancelled,
    no further fragment is handed out, even one that already arrived.
    """

    def __init__(self, source: AsyncIterator[str], timeout_ms: int) -> None:
        self.stream_id = uuid4().hex[:12]
        self._source = source
        self._timeout_ms = timeout_ms
        self._deadline: float | None = None
        self._cancel_event = asyncio.Event()
        self._finished = False
        self._closed = False

    @property
    def active(self) -> bool:
        return not (self._finished or self._closed or self._cancel_event.is_set())

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        if self._cancel_event.is_set():
            return
        self._cancel_event.set()
        logger.info("stream_cancel_requested", stream_id=self.stream_id)

    def __aiter__(self) -> FragmentStream:
        return self

    async def __anext__(self) -> str:
        if self._cancel_event.is_set():
            await self.aclose()
            raise GenerationCancelled("Generation was cancelled.")
        if self._finished or self._closed:
            raise StopAsyncIteration

        if self._deadline is None:
            self._deadline = time.monotonic() + self._timeout_ms / 1000
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            await self.aclose()
            raise GenerationTimeout(self._timeout_ms)

        next_task = asyncio.create_task(self._pull())
        cancel_task = asyncio.create_task(self._cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {next_task, cancel_task},
                timeout=remaining,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancel_task.cancel()

        if next_task in done:
            try:
                fragment = next_task.result()
            except BaseException:
                # End of stream or a backend error; either way nothing follows.
                self._finished = True
                raise
            if self._cancel_event.is_set():
                await self.aclose()
                raise GenerationCancelled("Generation was cancelled.")
            return fragment

        next_task.cancel()
        await asyncio.gather(next_task, return_exceptions=True)
        await self.aclose()
        if self._cancel_event.is_set():
            raise GenerationCancelled("Generation was cancelled.")
        logger.warning("stream_timed_out", stream_id=self.stream_id, timeout_ms=self._timeout_ms)
        raise GenerationTimeout(self._timeout_ms)

    async def _pull(self) -> str:
        return await self._source.__anext__()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()
