"""Query normalization and conservative bilingual term expansion.

The corpus mixes French and English sources, so a long question gets the
translations of its key research terms appended for the lexical side of the
hybrid search. Short queries are left alone: they are usually names or exact
keywords where extra terms only add noise.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Callable

from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException

from clio_rag.observability.logger import get_logger

logger = get_logger("query_expansion")

DetectorFactory.seed = 0

_FR_TO_EN = {
    "guerre": "war",
    "paix": "peace",
    "traité": "treaty",
    "accord": "agreement",
    "révolution": "revolution",
    "empire": "empire",
    "colonie": "colony",
    "colonisation": "colonization",
    "décolonisation": "decolonization",
    "état": "state",
    "gouvernement": "government",
    "nation": "nation",
    "frontière": "border",
    "alliance": "alliance",
    "conférence": "conference",
    "parti": "party",
    "ouvrier": "worker",
    "ouvriers": "workers",
    "grève": "strike",
    "syndicat": "union",
    "élection": "election",
    "résistance": "resistance",
    "occupation": "occupation",
    "armistice": "armistice",
    "archives": "archives",
    "mémoire": "memory",
    "historiographie": "historiography",
    "société": "society",
    "économie": "economy",
    "crise": "crisis",
    "réforme": "reform",
    "église": "church",
    "migration": "migration",
    "réfugiés": "refugees",
}
_EN_TO_FR = {en: fr for fr, en in _FR_TO_EN.items()}

GLOSSARIES: dict[str, dict[str, str]] = {"fr": _FR_TO_EN, "en": _EN_TO_FR}

_WORD_RE = re.compile(r"[\w'-]+", re.UNICODE)


class QueryExpander:
    def __init__(
        self,
        min_words: int = 4,
        detector: Callable[[str], str] = detect,
    ) -> None:
        self._min_words = min_words
        self._detect = detector

    @staticmethod
    def normalize(query: str) -> str:
        text = unicodedata.normalize("NFKC", query)
        return re.sub(r"\s+", " ", text).strip()

    def expand(self, query: str) -> str:
        normalized = self.normalize(query)
        words = [w.lower() for w in _WORD_RE.findall(normalized)]
        if len(words) < self._min_words:
            return normalized

        try:
            language = self._detect(normalized)
        except LangDetectException:
            logger.debug("language_detection_failed", query_len=len(normalized))
            return normalized

        glossary = GLOSSARIES.get(language)
        if not glossary:
            return normalized

        present = set(words)
        additions: list[str] = []
        for word in words:
            translation = glossary.get(word)
            if translation and translation not in present and translation not in additions:
                additions.append(translation)

        if not additions:
            return normalized

        logger.info("query_expanded", language=language, added_terms=len(additions))
        return f"{normalized} {' '.join(additions)}"
