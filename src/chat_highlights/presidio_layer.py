"""Layer 2 — optional Presidio NER pass over already-masked message text.

Catches names, organizations and locations the fixed patterns cannot.
Off by default because it depends on a spaCy model and is not part of the
deterministic residual rescan.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .patterns import MASK

if TYPE_CHECKING:
    from presidio_analyzer import AnalyzerEngine

# Built on first use; loading spaCy is slow
_engine: AnalyzerEngine | None = None
_engine_lang: str = ""

DEFAULT_ENTITIES = [
    "PERSON",
    "ORGANIZATION",
    "LOCATION",
]


@dataclass(frozen=True, slots=True)
class NerMatch:
    entity_type: str
    start: int
    end: int
    score: float

    @property
    def rule_id(self) -> str:
        return f"ner.{self.entity_type.lower()}"


def _get_engine(language: str = "en") -> AnalyzerEngine:
    """Lazy-init the Presidio analyzer engine."""
    global _engine, _engine_lang
    if _engine is None or _engine_lang != language:
        from presidio_analyzer import AnalyzerEngine
        from presidio_analyzer.nlp_engine import NlpEngineProvider

        provider = NlpEngineProvider(nlp_configuration={
            "nlp_engine_name": "spacy",
            "models": [{"lang_code": language, "model_name": f"{language}_core_web_sm"}],
        })
        _engine = AnalyzerEngine(nlp_engine=provider.create_engine(), supported_languages=[language])
        _engine_lang = language
    return _engine


def scan_presidio(
    text: str,
    *,
    language: str = "en",
    entities: list[str] | None = None,
    score_threshold: float = 0.35,
) -> list[NerMatch]:
    """Non-overlapping NER matches in text, sorted by position.

    Spans that only cover the mask token are skipped.
    """
    results = _get_engine(language).analyze(
        text=text,
        language=language,
        entities=entities or DEFAULT_ENTITIES,
        score_threshold=score_threshold,
    )
    ranked = sorted(results, key=lambda r: (-r.score, -(r.end - r.start), r.start))
    taken: list[NerMatch] = []
    for r in ranked:
        if text[r.start:r.end].strip() in ("", MASK):
            continue
        if any(r.start < t.end and r.end > t.start for t in taken):
            continue
        taken.append(NerMatch(entity_type=r.entity_type, start=r.start, end=r.end, score=r.score))
    return sorted(taken, key=lambda m: m.start)


def mask_entities(text: str, matches: list[NerMatch]) -> str:
    """Replace matches right-to-left so earlier offsets stay valid."""
    result = text
    for m in sorted(matches, key=lambda m: m.start, reverse=True):
        result = result[:m.start] + MASK + result[m.end:]
    return result
