"""Explainable segment scoring.

SCORING_RULES order is the output order of ``reasons``.  The score is the
plain sum of the points; ranking is score descending, then segment id.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Callable

from .types import (
    PRIMARY_ROLES, Message, Reason, SanitizedTranscript, ScoredSegment, Segment, SegmentsTopK, Sender,
)

_CONCLUSION = re.compile(
    r"\b(so|therefore|thus|in conclusion|summary|done|fixed|resolved)\b", re.IGNORECASE
)


@dataclass(frozen=True, slots=True)
class ScoringRule:
    rule_id: str
    compute: Callable[[Segment, list[Message]], tuple[int, str]]


def _conflict_error(seg: Segment, _messages: list[Message]) -> tuple[int, str]:
    hits = seg.error_hits()
    if not hits:
        return 0, "No error triggers"
    return min(50, len(hits) * 15), f"Error triggers: {', '.join(h.trigger_id for h in hits)}"


def _roles_tri(_seg: Segment, messages: list[Message]) -> tuple[int, str]:
    n = len({m.sender for m in messages if m.sender in PRIMARY_ROLES})
    points = 35 if n >= 3 else 20 if n == 2 else n * 10
    return points, f"Tri-roles: {n}"


def _roles_diversity(_seg: Segment, messages: list[Message]) -> tuple[int, str]:
    n = len({m.sender for m in messages})
    return (15 if n >= 2 else 0), f"Distinct roles: {n}"


def _compress_short(_seg: Segment, messages: list[Message]) -> tuple[int, str]:
    avg = sum(len(m.text) for m in messages) / len(messages) if messages else 0.0
    points = 15 if avg <= 80 else 8 if avg <= 150 else 0
    return points, f"Avg msg length: {round(avg)}"


def _conclusion_phrase(_seg: Segment, messages: list[Message]) -> tuple[int, str]:
    hit = _CONCLUSION.search(" ".join(m.text for m in messages)) is not None
    return (10 if hit else 0), ("Conclusion phrase hit" if hit else "No conclusion phrase")


SCORING_RULES: tuple[ScoringRule, ...] = (
    ScoringRule("conflict.error", _conflict_error),
    ScoringRule("roles.tri", _roles_tri),
    ScoringRule("roles.diversity.min2", _roles_diversity),
    ScoringRule("compress.short", _compress_short),
    ScoringRule("conclusion.phrase", _conclusion_phrase),
)


def count_roles(messages: list[Message]) -> dict[str, int]:
    roles = {s.value: 0 for s in Sender}
    for m in messages:
        roles[m.sender.value] += 1
    return roles


def score_segment(seg: Segment, transcript: SanitizedTranscript) -> ScoredSegment:
    messages = list(transcript.messages[seg.start_index:seg.end_index + 1])
    reasons = []
    for rule in SCORING_RULES:
        points, detail = rule.compute(seg, messages)
        reasons.append(Reason(rule_id=rule.rule_id, points=points, detail=detail))
    return ScoredSegment(
        segment=seg,
        score=sum(r.points for r in reasons),
        reasons=tuple(reasons),
        roles=count_roles(messages),
    )


def rank(scored: list[ScoredSegment]) -> list[ScoredSegment]:
    return sorted(scored, key=lambda s: (-s.score, s.segment_id))


def score_segments(
    segments: list[Segment],
    transcript: SanitizedTranscript,
    k: int,
    *,
    fallback: bool = False,
) -> SegmentsTopK:
    """Score every segment and keep the k best."""
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    ranked = rank([score_segment(seg, transcript) for seg in segments])
    meta = transcript.meta
    return SegmentsTopK(
        meta={
            "ep": meta.ep,
            "k": k,
            "tz": meta.tz,
            "input_kind": meta.input_kind,
            "export_root": meta.export_root,
            "messages_html": meta.messages_html,
            "segmentation": "fallback" if fallback else "error",
        },
        segments=tuple(ranked[:k]),
    )
