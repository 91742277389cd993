"""Stable JSON serialization with explicit key order.

Output depends only on the data, never on dict insertion order, so two runs
over the same input are byte-identical.  Each key-order map is keyed by path
name: "" for the root, the parent key for nested objects, and the element
name (see ELEMENT_PATHS) for objects inside arrays.  Objects with no declared
order (e.g. ``by_rule``) are written with sorted keys.
"""

from __future__ import annotations
import json
from typing import Any

from .types import LintReport, SanitizedTranscript, SegmentsTopK, Sender

KeyOrder = dict[str, list[str]]

ELEMENT_PATHS: dict[str, str] = {
    "messages": "message",
    "attachments": "attachment",
    "segments": "segment",
    "trigger_hits": "trigger_hit",
    "reasons": "reason",
    "errors": "entry",
    "warnings": "entry",
    "infos": "entry",
}

KEY_ORDER_TRANSCRIPT: KeyOrder = {
    "": ["meta", "redaction", "messages"],
    "meta": ["ep", "tz", "version", "input_kind", "export_root", "messages_html", "source"],
    "source": ["input_path", "html_file", "assets"],
    "assets": ["photos", "images", "css", "js"],
    "redaction": ["total_hits", "by_rule"],
    "message": ["id", "ts", "ts_raw", "sender", "text", "reply_to", "attachments"],
    "attachment": ["kind", "path"],
}

KEY_ORDER_SEGMENTS: KeyOrder = {
    "": ["meta", "segments"],
    "meta": ["ep", "k", "tz", "input_kind", "export_root", "messages_html", "segmentation"],
    "segment": [
        "segment_id", "start_ts", "end_ts", "message_ids", "trigger_hits",
        "score", "reasons", "roles",
    ],
    "trigger_hit": ["trigger_id", "category", "message_index"],
    "reason": ["rule_id", "points", "detail"],
    "roles": [s.value for s in Sender],
}

KEY_ORDER_LINT: KeyOrder = {
    "": ["ok", "exit_code", "summary", "errors", "warnings", "infos"],
    "summary": ["errors", "warnings", "infos"],
    "entry": ["code", "message", "examples"],
}


def _keys(obj: dict, path: str, key_order: KeyOrder) -> list[str]:
    declared = key_order.get(path)
    if declared is None:
        return sorted(obj)
    # declared keys first, then anything undeclared (sorted) so nothing is lost
    extra = sorted(k for k in obj if k not in declared)
    return [k for k in declared if k in obj] + extra


def _encode(value: Any, key_order: KeyOrder, path: str) -> str:
    if isinstance(value, dict):
        parts = [
            json.dumps(k, ensure_ascii=False) + ":" + _encode(value[k], key_order, k)
            for k in _keys(value, path, key_order)
        ]
        return "{" + ",".join(parts) + "}"
    if isinstance(value, (list, tuple)):
        element = ELEMENT_PATHS.get(path, path)
        return "[" + ",".join(_encode(v, key_order, element) for v in value) + "]"
    return json.dumps(value, ensure_ascii=False)


def stable_dumps(value: Any, key_order: KeyOrder) -> str:
    """Serialize value with the given key order (see module docstring)."""
    return _encode(value, key_order, "")


def dump_transcript(transcript: SanitizedTranscript) -> str:
    return stable_dumps(transcript.to_dict(), KEY_ORDER_TRANSCRIPT)


def dump_segments(topk: SegmentsTopK) -> str:
    return stable_dumps(topk.to_dict(), KEY_ORDER_SEGMENTS)


def dump_lint(report: LintReport) -> str:
    return stable_dumps(report.to_dict(), KEY_ORDER_LINT)
