"""Core types."""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum


class Sender(str, Enum):
    """Closed set of conversation roles.  Anything unrecognized is UNKNOWN."""
    AO000 = "ao000"
    AO001 = "ao001"
    AO002 = "ao002"
    LEO = "leo"
    SYSTEM = "system"
    UNKNOWN = "unknown"


PRIMARY_ROLES: tuple[Sender, ...] = (Sender.AO000, Sender.AO001, Sender.AO002)


@dataclass(frozen=True, slots=True)
class Attachment:
    kind: str              # "photo" | "video" | "file" | "sticker" | "voice" | "unknown"
    path: str              # export-relative, forward slashes

    def to_dict(self) -> dict:
        return {"kind": self.kind, "path": self.path}


@dataclass(frozen=True, slots=True)
class Message:
    """A single chat message."""
    id: str
    ts: str                # ISO instant (UTC, "Z") or "" when unparseable
    ts_raw: str            # timestamp text as extracted
    sender: Sender
    text: str
    reply_to: str | None = None
    attachments: tuple[Attachment, ...] = ()

    def to_dict(self) -> dict:
        out: dict = {"id": self.id, "ts": self.ts}
        if self.ts_raw:
            out["ts_raw"] = self.ts_raw
        out.update({
            "sender": self.sender.value,
            "text": self.text,
            "reply_to": self.reply_to,
            "attachments": [a.to_dict() for a in self.attachments],
        })
        return out


@dataclass(frozen=True, slots=True)
class TranscriptMeta:
    ep: str
    tz: str
    input_kind: str        # "file" | "dir"
    export_root: str
    messages_html: str
    version: str = "proto-0.1"
    source: dict | None = None  # {"input_path", "html_file", "assets"}

    def to_dict(self) -> dict:
        out = {
            "ep": self.ep,
            "tz": self.tz,
            "version": self.version,
            "input_kind": self.input_kind,
            "export_root": self.export_root,
            "messages_html": self.messages_html,
        }
        if self.source is not None:
            out["source"] = self.source
        return out


@dataclass(frozen=True, slots=True)
class RedactionStats:
    total_hits: int = 0
    by_rule: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"total_hits": self.total_hits, "by_rule": dict(self.by_rule)}


@dataclass(frozen=True, slots=True)
class SanitizedTranscript:
    """Redacted transcript.  Messages are in document order."""
    meta: TranscriptMeta
    redaction: RedactionStats
    messages: tuple[Message, ...]

    def to_dict(self) -> dict:
        return {
            "meta": self.meta.to_dict(),
            "redaction": self.redaction.to_dict(),
            "messages": [m.to_dict() for m in self.messages],
        }


@dataclass(frozen=True, slots=True)
class TriggerHit:
    trigger_id: str
    category: str          # "error" | "permission" | "action"
    message_index: int

    def to_dict(self) -> dict:
        return {
            "trigger_id": self.trigger_id,
            "category": self.category,
            "message_index": self.message_index,
        }


@dataclass(frozen=True, slots=True)
class Segment:
    """A contiguous run of messages, start_index <= end_index (inclusive)."""
    segment_id: str
    start_index: int
    end_index: int
    message_ids: tuple[str, ...]
    trigger_hits: tuple[TriggerHit, ...]
    start_ts: str
    end_ts: str

    @property
    def length(self) -> int:
        return self.end_index - self.start_index + 1

    def error_hits(self) -> list[TriggerHit]:
        return [h for h in self.trigger_hits if h.category == "error"]


@dataclass(frozen=True, slots=True)
class Reason:
    rule_id: str
    points: int
    detail: str

    def to_dict(self) -> dict:
        return {"rule_id": self.rule_id, "points": self.points, "detail": self.detail}


@dataclass(frozen=True, slots=True)
class ScoredSegment:
    segment: Segment
    score: int
    reasons: tuple[Reason, ...]
    roles: dict[str, int]  # every Sender value, in enum order

    @property
    def segment_id(self) -> str:
        return self.segment.segment_id

    @property
    def message_ids(self) -> tuple[str, ...]:
        return self.segment.message_ids

    def to_dict(self) -> dict:
        seg = self.segment
        return {
            "segment_id": seg.segment_id,
            "start_ts": seg.start_ts,
            "end_ts": seg.end_ts,
            "message_ids": list(seg.message_ids),
            "trigger_hits": [h.to_dict() for h in seg.trigger_hits],
            "score": self.score,
            "reasons": [r.to_dict() for r in self.reasons],
            "roles": dict(self.roles),
        }


@dataclass(frozen=True, slots=True)
class SegmentsTopK:
    meta: dict             # ep, k, tz, input_kind, export_root, messages_html, segmentation
    segments: tuple[ScoredSegment, ...]

    @property
    def fallback(self) -> bool:
        return self.meta.get("segmentation") == "fallback"

    def to_dict(self) -> dict:
        return {
            "meta": dict(self.meta),
            "segments": [s.to_dict() for s in self.segments],
        }


@dataclass(frozen=True, slots=True)
class LintEntry:
    code: str
    message: str
    examples: tuple[str, ...] | None = None

    def to_dict(self) -> dict:
        out: dict = {"code": self.code, "message": self.message}
        if self.examples is not None:
            out["examples"] = list(self.examples)
        return out


@dataclass(frozen=True, slots=True)
class LintReport:
    """Outcome of the quality gates.  exit_code is 0 (clean) or 2 (hard failure)."""
    ok: bool
    exit_code: int
    errors: tuple[LintEntry, ...] = ()
    warnings: tuple[LintEntry, ...] = ()
    infos: tuple[LintEntry, ...] = ()

    @property
    def summary(self) -> dict[str, int]:
        return {
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "infos": len(self.infos),
        }

    def codes(self) -> list[str]:
        return [e.code for e in (*self.errors, *self.warnings, *self.infos)]

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "exit_code": self.exit_code,
            "summary": self.summary,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [e.to_dict() for e in self.warnings],
            "infos": [e.to_dict() for e in self.infos],
        }
