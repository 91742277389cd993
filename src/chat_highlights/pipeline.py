"""Pipeline entry points.

    resolve -> extract -> redact -> segment -> score -> lint

``run`` is a pure function of (input, episode id, k, tz, profile): it
returns the three documents in memory and never decides where they go.
``write_artifacts`` writes them into a directory the caller already created.
Fatal problems (missing input, no HTML, bad profile, k < 1) raise before
anything is produced; data quality problems end up in the lint report.
"""

from __future__ import annotations
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path

from .extractor import extract_messages
from .lint import run_lint
from .profile import load_profile
from .redactor import Redactor, RedactorConfig
from .resolver import resolve_input
from .scoring import score_segments
from .segmenter import segment
from .serialize import dump_lint, dump_segments, dump_transcript
from .triggers import match_triggers
from .types import LintReport, SanitizedTranscript, SegmentsTopK, Sender, TranscriptMeta

LOGGER = logging.getLogger(__name__)

ARTIFACT_FILES = {
    "transcript": "sanitized.transcript.json",
    "segments": "segments.topk.json",
    "lint": "lint_report.json",
}

DIAGNOSE_SAMPLE = 20


@dataclass(frozen=True, slots=True)
class PipelineResult:
    transcript: SanitizedTranscript
    topk: SegmentsTopK
    lint_report: LintReport
    exit_code: int         # 0 clean, 2 lint hard failure


def run(
    input: str | Path,
    episode_id: str,
    top_k: int,
    tz: str,
    profile: str | Path | None = None,
    *,
    redactor_config: RedactorConfig | None = None,
) -> PipelineResult:
    """Run the whole transform for one episode."""
    if top_k < 1:
        raise ValueError(f"top_k must be >= 1, got {top_k}")

    resolved = resolve_input(input)
    extraction_profile = load_profile(profile)
    LOGGER.info("Episode %s: %s input %s (profile %s)", episode_id, resolved.kind,
                resolved.messages_html, extraction_profile.name)

    html = resolved.messages_html.read_text(encoding="utf-8", errors="replace")
    extraction = extract_messages(html, extraction_profile, tz)
    LOGGER.info("Extracted %d message(s) from %d container(s)",
                len(extraction.messages), extraction.stats.container_matches)

    meta = TranscriptMeta(
        ep=episode_id,
        tz=tz,
        input_kind=resolved.kind,
        export_root=str(resolved.export_root),
        messages_html=str(resolved.messages_html),
        source=resolved.source(),
    )
    redaction = Redactor(redactor_config).redact_transcript(extraction.messages, meta)
    transcript = redaction.transcript

    segmentation = segment(transcript.messages)
    topk = score_segments(segmentation.segments, transcript, top_k, fallback=segmentation.fallback)
    report = run_lint(transcript, topk, redaction.residuals)
    if not report.ok:
        LOGGER.warning("Lint failed for %s: %s", episode_id,
                       ", ".join(e.code for e in report.errors))

    return PipelineResult(
        transcript=transcript,
        topk=topk,
        lint_report=report,
        exit_code=report.exit_code,
    )


def write_artifacts(result: PipelineResult, out_dir: str | Path) -> dict[str, Path]:
    """Write the three JSON documents into out_dir (which must exist)."""
    out = Path(out_dir)
    if not out.is_dir():
        raise NotADirectoryError(f"Output directory does not exist: {out}")
    docs = {
        "transcript": dump_transcript(result.transcript),
        "segments": dump_segments(result.topk),
        "lint": dump_lint(result.lint_report),
    }
    written: dict[str, Path] = {}
    for key, text in docs.items():
        path = out / ARTIFACT_FILES[key]
        path.write_text(text, encoding="utf-8")
        written[key] = path
    LOGGER.debug("Wrote %s", ", ".join(str(p) for p in written.values()))
    return written


@dataclass(frozen=True, slots=True)
class Diagnosis:
    """Pre-flight view of an input: what the profile finds and how it would segment."""
    input_path: str
    messages_html: str
    profile_name: str
    profile_version: int
    total_messages: int
    container_matches: int
    dropped_without_ts: int
    sample_size: int
    ts_missing_count: int
    sender_unknown_count: int
    empty_text_count: int
    trigger_stats: dict[str, int]
    rule_hits: dict[str, dict[int, int]]
    fallback: bool

    @property
    def conclusion(self) -> str:
        return "fallback" if self.fallback else "error"


def diagnose(input: str | Path, profile: str | Path | None = None, tz: str = "UTC") -> Diagnosis:
    """Inspect input + profile without redacting, scoring or writing anything."""
    resolved = resolve_input(input)
    extraction_profile = load_profile(profile)
    html = resolved.messages_html.read_text(encoding="utf-8", errors="replace")
    extraction = extract_messages(html, extraction_profile, tz)
    messages = extraction.messages

    sample = messages[:DIAGNOSE_SAMPLE]
    trigger_stats: Counter[str] = Counter({"error": 0, "permission": 0, "action": 0})
    for m in messages:
        for t in match_triggers(m.text):
            trigger_stats[t.category] += 1

    return Diagnosis(
        input_path=str(resolved.input_path),
        messages_html=str(resolved.messages_html),
        profile_name=extraction_profile.name,
        profile_version=extraction_profile.version,
        total_messages=len(messages),
        container_matches=extraction.stats.container_matches,
        dropped_without_ts=extraction.stats.dropped_without_ts,
        sample_size=len(sample),
        ts_missing_count=sum(1 for m in sample if not m.ts_raw.strip()),
        sender_unknown_count=sum(1 for m in sample if m.sender is Sender.UNKNOWN),
        empty_text_count=sum(1 for m in sample if not m.text.strip()),
        trigger_stats=dict(trigger_stats),
        rule_hits=extraction.stats.rule_hits,
        fallback=trigger_stats["error"] == 0,
    )
