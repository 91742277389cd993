"""Quality gates over the ranked output.

Errors (exit code 2): NO_SEGMENTS, SENSITIVE_REMAIN, TOP1_LEN_OUT_OF_RANGE,
TOP1_NO_ERROR_TRIGGER (waived in fallback segmentation).
Warnings: TOP1_LOW_ROLE_DIVERSITY, TS_PARSE_MISSING, TS_PARSE_FAILED.
Infos: SEGMENTATION_FALLBACK.

run_lint only classifies; it never raises.
"""

from __future__ import annotations
from typing import Iterable

from .patterns import Residual
from .segmenter import MAX_SEGMENT_LEN, MIN_SEGMENT_LEN
from .triggers import has_error_trigger
from .types import LintEntry, LintReport, SanitizedTranscript, SegmentsTopK

MAX_EXAMPLES = 10
EXAMPLE_CHARS = 80

EXIT_OK = 0
EXIT_LINT_FAILED = 2


def _examples(values: Iterable[str]) -> tuple[str, ...]:
    out = []
    for v in values:
        if len(out) == MAX_EXAMPLES:
            break
        out.append(v[:EXAMPLE_CHARS])
    return tuple(out)


def run_lint(
    transcript: SanitizedTranscript,
    topk: SegmentsTopK,
    residuals: list[Residual],
) -> LintReport:
    errors: list[LintEntry] = []
    warnings: list[LintEntry] = []
    infos: list[LintEntry] = []

    if not topk.segments:
        errors.append(LintEntry(
            code="NO_SEGMENTS",
            message="Segmentation produced no segments",
        ))

    if residuals:
        errors.append(LintEntry(
            code="SENSITIVE_REMAIN",
            message=f"Sensitive pattern residual detected ({len(residuals)} example(s))",
            examples=_examples(f"{r.rule_id}: {r.snippet}" for r in residuals),
        ))

    if topk.segments:
        top1 = topk.segments[0]
        length = len(top1.message_ids)
        if length < MIN_SEGMENT_LEN or length > MAX_SEGMENT_LEN:
            errors.append(LintEntry(
                code="TOP1_LEN_OUT_OF_RANGE",
                message=f"Top1 segment has {length} messages "
                        f"(required {MIN_SEGMENT_LEN}-{MAX_SEGMENT_LEN})",
            ))

        if not topk.fallback:
            by_id = {m.id: m for m in transcript.messages}
            if not any(mid in by_id and has_error_trigger(by_id[mid].text) for mid in top1.message_ids):
                errors.append(LintEntry(
                    code="TOP1_NO_ERROR_TRIGGER",
                    message="Top1 segment does not hit any error trigger",
                ))

        distinct = sum(1 for count in top1.roles.values() if count > 0)
        if distinct < 2:
            warnings.append(LintEntry(
                code="TOP1_LOW_ROLE_DIVERSITY",
                message=f"Top1 has only {distinct} distinct role(s)",
            ))

    missing = [m for m in transcript.messages if not m.ts_raw.strip()]
    if missing:
        warnings.append(LintEntry(
            code="TS_PARSE_MISSING",
            message=f"{len(missing)} message(s) have missing ts_raw",
            examples=_examples(m.id for m in missing),
        ))

    failed = [m for m in transcript.messages if m.ts_raw.strip() and not m.ts]
    if failed:
        warnings.append(LintEntry(
            code="TS_PARSE_FAILED",
            message=f"{len(failed)} message(s) have ts_raw but parse failed",
            examples=_examples(m.ts_raw for m in failed),
        ))

    if topk.fallback:
        infos.append(LintEntry(
            code="SEGMENTATION_FALLBACK",
            message="No error trigger found; segments are fixed-size slices of the transcript",
        ))

    ok = not errors
    return LintReport(
        ok=ok,
        exit_code=EXIT_OK if ok else EXIT_LINT_FAILED,
        errors=tuple(errors),
        warnings=tuple(warnings),
        infos=tuple(infos),
    )
