"""Layer 1 — fixed regex patterns for secrets and contact data.

Order is fixed: it decides which rule a hit is attributed to, and it is the
order of the residual rescan.  Each pattern is compiled once and used through
``subn``/``finditer`` only, so no match cursor is shared between messages.
"""

from __future__ import annotations
import re
from dataclasses import dataclass

MASK = "***"


@dataclass(frozen=True, slots=True)
class RedactPattern:
    rule_id: str
    pattern: re.Pattern


@dataclass(frozen=True, slots=True)
class Residual:
    """A sensitive-pattern match found in already-sanitized text."""
    rule_id: str
    snippet: str


REDACT_PATTERNS: tuple[RedactPattern, ...] = (
    RedactPattern("auth.bearer", re.compile(
        r"Authorization\s*:\s*Bearer\s+\S+", re.IGNORECASE)),
    RedactPattern("auth.api_key", re.compile(
        r"X-API-Key\s*:\s*\S+", re.IGNORECASE)),
    # key/token followed by a long opaque value
    RedactPattern("token.generic", re.compile(
        r"(?:token|key)\s*[=:]\s*[\"']?[\w-]{20,}[\"']?", re.IGNORECASE | re.ASCII)),
    RedactPattern("path.unix", re.compile(
        r"/Users/[^\s\"')\]]+")),
    RedactPattern("path.home", re.compile(
        r"~/[^\s\"')\]]+")),
    RedactPattern("network.ip", re.compile(
        r"\b(?:\d{1,3}\.){3}\d{1,3}\b", re.ASCII)),
    RedactPattern("contact.email", re.compile(
        r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b", re.ASCII)),
    RedactPattern("contact.phone", re.compile(
        r"\b(?:\+\d{1,3}[-.\s]?)?\(?\d{2,4}\)?[-.\s]?\d{2,4}[-.\s]?\d{2,4}\b", re.ASCII)),
)

SNIPPET_CHARS = 80


def redact_text(text: str) -> tuple[str, dict[str, int]]:
    """Mask every pattern hit.  Returns (sanitized, hits by rule_id)."""
    sanitized = text
    hits: dict[str, int] = {}
    for p in REDACT_PATTERNS:
        sanitized, count = p.pattern.subn(MASK, sanitized)
        if count:
            hits[p.rule_id] = hits.get(p.rule_id, 0) + count
    return sanitized, hits


def scan_residuals(text: str) -> list[Residual]:
    """Run the same patterns without replacing; every match is a leak candidate."""
    out: list[Residual] = []
    for p in REDACT_PATTERNS:
        for m in p.pattern.finditer(text):
            out.append(Residual(rule_id=p.rule_id, snippet=m.group()[:SNIPPET_CHARS]))
    return out
