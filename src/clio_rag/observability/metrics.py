"""Metric recording helpers for traces."""

from __future__ import annotations

from clio_rag.observability.logger import get_logger

logger = get_logger("metrics")


def log_retrieval_metrics(
    trace_id: str,
    cache_hit: bool,
    top_scores: list[float],
    num_passages: int,
    unique_docs: int,
    duration_ms: float,
) -> None:
    logger.info(
        "retrieval_metrics",
        trace_id=trace_id,
        cache_hit=cache_hit,
        top_scores=[round(s, 4) for s in top_scores[:5]],
        num_passages=num_passages,
        unique_docs=unique_docs,
        duration_ms=round(duration_ms, 2),
    )


def log_compression_metrics(
    trace_id: str,
    strategy: str | None,
    before_size: int,
    after_size: int,
    reduction_percent: float,
) -> None:
    logger.info(
        "compression_metrics",
        trace_id=trace_id,
        strategy=strategy,
        before_size=before_size,
        after_size=after_size,
        reduction_percent=round(reduction_percent, 1),
    )


def log_generation_metrics(
    trace_id: str,
    backend: str,
    model: str,
    prompt_size: int,
    response_size: int,
    duration_ms: float,
) -> None:
    logger.info(
        "generation_metrics",
        trace_id=trace_id,
        backend=backend,
        model=model,
        prompt_size=prompt_size,
        response_size=response_size,
        duration_ms=round(duration_ms, 2),
    )
