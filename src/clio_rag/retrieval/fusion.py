"""Relevance thresholding over fused rankings, with a never-empty fallback."""

from __future__ import annotations

from clio_rag.config.constants import COSINE_STYLE_THRESHOLD_CUTOFF, FUSION_THRESHOLD
from clio_rag.models.domain import SearchHit
from clio_rag.observability.logger import get_logger

logger = get_logger("fusion")


def resolve_threshold(threshold: float | None, default: float = FUSION_THRESHOLD) -> float:
    """Map a caller threshold onto the fusion-score scale.

    Fused scores are rank-based (~1/(60 + rank)), so a value calibrated for
    cosine similarity would filter out everything.
    """
    if threshold is None:
        threshold = default
    if threshold > COSINE_STYLE_THRESHOLD_CUTOFF:
        logger.debug(
            "threshold_reinterpreted", requested=threshold, effective=FUSION_THRESHOLD
        )
        return FUSION_THRESHOLD
    return threshold


def apply_threshold(
    hits: list[SearchHit], threshold: float, top_k: int
) -> tuple[list[SearchHit], bool]:
    """Return (kept hits, fallback_used).

    If the threshold removes every hit but the search found candidates,
    the threshold is dropped and the best raw hits are kept instead.
    """
    ranked = sorted(hits, key=lambda h: h.score, reverse=True)
    kept = [h for h in ranked if h.score >= threshold]
    if not kept and ranked:
        logger.warning(
            "threshold_fallback",
            threshold=threshold,
            raw_results=len(ranked),
            kept=min(top_k, len(ranked)),
        )
        return ranked[: min(top_k, len(ranked))], True
    return kept[:top_k], False
