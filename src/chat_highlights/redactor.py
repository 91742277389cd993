"""Redactor — masks sensitive data in message text and rescans the result.

Usage:
    from chat_highlights import Redactor

    result = Redactor().redact_transcript(messages, meta)
    result.transcript.redaction.by_rule   # {"contact.email": 2, ...}
    result.residuals                      # leaks still present after masking

Layer 1 is the fixed regex list in ``patterns``; layer 2 (Presidio NER) is
opt-in through RedactorConfig.  Messages are never mutated: sanitized copies
replace them in the returned transcript.
"""

from __future__ import annotations
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Iterable

from .patterns import Residual, redact_text, scan_residuals
from .types import Message, RedactionStats, SanitizedTranscript, TranscriptMeta

LOGGER = logging.getLogger(__name__)


@dataclass
class RedactorConfig:
    """Configuration for the Redactor."""
    use_presidio: bool = False        # enable Layer 2 (NER)
    language: str = "en"
    score_threshold: float = 0.35     # minimum confidence for Presidio
    presidio_entities: list[str] | None = None  # None = defaults


@dataclass(frozen=True, slots=True)
class RedactionResult:
    transcript: SanitizedTranscript
    residuals: list[Residual] = field(default_factory=list)


class Redactor:
    """Layered redactor.

    Layer 1: fixed regex patterns (tokens, keys, paths, IPs, emails, phones)
    Layer 2: Presidio NER (names, orgs, locations), when enabled
    """

    def __init__(self, config: RedactorConfig | None = None) -> None:
        self.config = config or RedactorConfig()

    def redact(self, text: str) -> tuple[str, dict[str, int]]:
        """Sanitize one string.  Returns (sanitized, hits by rule_id)."""
        sanitized, hits = redact_text(text)

        if self.config.use_presidio and sanitized:
            from .presidio_layer import mask_entities, scan_presidio
            matches = scan_presidio(
                sanitized,
                language=self.config.language,
                entities=self.config.presidio_entities,
                score_threshold=self.config.score_threshold,
            )
            if matches:
                sanitized = mask_entities(sanitized, matches)
                for m in matches:
                    hits[m.rule_id] = hits.get(m.rule_id, 0) + 1

        return sanitized, hits

    def redact_transcript(
        self,
        messages: Iterable[Message],
        meta: TranscriptMeta,
    ) -> RedactionResult:
        """Redact every message, tally hits, then rescan for residual leaks."""
        by_rule: dict[str, int] = {}
        total = 0
        sanitized: list[Message] = []
        for msg in messages:
            text, hits = self.redact(msg.text)
            for rule_id, count in hits.items():
                by_rule[rule_id] = by_rule.get(rule_id, 0) + count
                total += count
            sanitized.append(dataclasses.replace(msg, text=text))

        residuals: list[Residual] = []
        for msg in sanitized:
            residuals.extend(scan_residuals(msg.text))

        LOGGER.info("Redacted %d hit(s) across %d message(s); %d residual(s)",
                    total, len(sanitized), len(residuals))
        transcript = SanitizedTranscript(
            meta=meta,
            redaction=RedactionStats(total_hits=total, by_rule=by_rule),
            messages=tuple(sanitized),
        )
        return RedactionResult(transcript=transcript, residuals=residuals)
