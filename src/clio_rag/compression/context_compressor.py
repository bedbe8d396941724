"""Default context compressor: near-duplicate removal, then ranked truncation."""

from __future__ import annotations

import re
from dataclasses import replace

from datasketch import MinHash, MinHashLSH

from clio_rag.config.constants import (
    MIN_TRUNCATED_FRAGMENT,
    MINHASH_NUM_PERM,
    NEAR_DUP_SIMILARITY_THRESHOLD,
)
from clio_rag.models.domain import CompressionResult, CompressionStats, RetrievedPassage
from clio_rag.observability.logger import get_logger

logger = get_logger("context_compressor")

_SENTENCE_END = re.compile(r"[.!?…](?=\s)")


def _total_size(passages: list[RetrievedPassage]) -> int:
    return sum(len(p.content) for p in passages)


class ContextCompressor:
    def __init__(
        self,
        near_dup_threshold: float = NEAR_DUP_SIMILARITY_THRESHOLD,
        min_fragment_chars: int = MIN_TRUNCATED_FRAGMENT,
    ) -> None:
        self._near_dup_threshold = near_dup_threshold
        self._min_fragment = min_fragment_chars

    def compress(
        self, passages: list[RetrievedPassage], query: str, char_budget: int
    ) -> CompressionResult:
        if char_budget <= 0:
            raise ValueError("char_budget must be positive")

        original_size = _total_size(passages)
        if original_size <= char_budget:
            return self._result(passages, passages, "none")

        kept = self._drop_near_duplicates(passages)
        strategy = "deduplicate"
        if _total_size(kept) > char_budget:
            kept = self._fit_budget(kept, query, char_budget)
            strategy = "deduplicate_truncate"
        return self._result(passages, kept, strategy)

    def _drop_near_duplicates(self, passages: list[RetrievedPassage]) -> list[RetrievedPassage]:
        """Keep the most relevant passage of each near-duplicate group."""
        if len(passages) < 2:
            return list(passages)

        lsh = MinHashLSH(threshold=self._near_dup_threshold, num_perm=MINHASH_NUM_PERM)
        dropped: set[int] = set()
        order = sorted(range(len(passages)), key=lambda i: passages[i].similarity, reverse=True)
        for i in order:
            mh = MinHash(num_perm=MINHASH_NUM_PERM)
            for word in set(re.findall(r"\w+", passages[i].content.lower())):
                mh.update(word.encode("utf-8"))
            if lsh.query(mh):
                dropped.add(i)
                continue
            lsh.insert(str(i), mh)

        if dropped:
            logger.info("near_duplicates_dropped", dropped=len(dropped))
        return [p for i, p in enumerate(passages) if i not in dropped]

    def _fit_budget(
        self, passages: list[RetrievedPassage], query: str, char_budget: int
    ) -> list[RetrievedPassage]:
        terms = {t for t in re.findall(r"\w+", query.lower()) if len(t) > 3}

        def rank(p: RetrievedPassage) -> tuple[float, int]:
            content = p.content.lower()
            return p.similarity, sum(1 for t in terms if t in content)

        kept: list[RetrievedPassage] = []
        used = 0
        for p in sorted(passages, key=rank, reverse=True):
            remaining = char_budget - used
            if len(p.content) <= remaining:
                kept.append(p)
                used += len(p.content)
            elif remaining >= self._min_fragment or not kept:
                kept.append(replace(p, content=self._truncate(p.content, remaining)))
                break
        return kept

    @staticmethod
    def _truncate(text: str, limit: int) -> str:
        cut = text[:limit]
        ends = [m.end() for m in _SENTENCE_END.finditer(cut)]
        if ends and ends[-1] >= limit // 2:
            return cut[: ends[-1]]
        space = cut.rfind(" ")
        if space >= limit // 2:
            return cut[:space]
        return cut

    @staticmethod
    def _result(
        before: list[RetrievedPassage], after: list[RetrievedPassage], strategy: str
    ) -> CompressionResult:
        original_size = _total_size(before)
        compressed_size = _total_size(after)
        reduction = (
            (original_size - compressed_size) / original_size * 100 if original_size else 0.0
        )
        return CompressionResult(
            passages=list(after),
            stats=CompressionStats(
                original_chunks=len(before),
                compressed_chunks=len(after),
                original_size=original_size,
                compressed_size=compressed_size,
                reduction_percent=reduction,
                strategy=strategy,
            ),
        )
