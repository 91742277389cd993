"""Tests for segment scoring and ranking."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from chat_highlights import Sender
from chat_highlights.scoring import SCORING_RULES, count_roles, score_segment, score_segments
from chat_highlights.segmenter import segment
from chat_highlights.types import (
    Message, RedactionStats, SanitizedTranscript, Segment, TranscriptMeta, TriggerHit,
)

META = TranscriptMeta(ep="ep_0002", tz="UTC", input_kind="dir",
                      export_root="/exports/ep", messages_html="/exports/ep/messages.html")


def _transcript(specs):
    """specs: list of (sender, text)."""
    messages = tuple(
        Message(id=f"m{i + 1:06d}", ts="", ts_raw="raw", sender=sender, text=text)
        for i, (sender, text) in enumerate(specs)
    )
    return SanitizedTranscript(meta=META, redaction=RedactionStats(), messages=messages)


def _segment(seg_id, start, end, hits=()):
    return Segment(
        segment_id=seg_id, start_index=start, end_index=end,
        message_ids=tuple(f"m{i + 1:06d}" for i in range(start, end + 1)),
        trigger_hits=tuple(hits), start_ts="", end_ts="",
    )


def _error_hits(*indices):
    return [TriggerHit("error.401", "error", i) for i in indices]


def test_reason_order_fixed():
    assert [r.rule_id for r in SCORING_RULES] == [
        "conflict.error", "roles.tri", "roles.diversity.min2", "compress.short", "conclusion.phrase",
    ]


def test_full_marks_segment():
    specs = [(Sender.AO000, "hi"), (Sender.AO001, "401 here"), (Sender.AO002, "ok"),
             (Sender.LEO, "so it is resolved")]
    t = _transcript(specs)
    scored = score_segment(_segment("s001", 0, 3, _error_hits(1, 1, 1, 1)), t)
    points = {r.rule_id: r.points for r in scored.reasons}
    assert points == {
        "conflict.error": 50,          # 4 hits * 15 capped at 50
        "roles.tri": 35,
        "roles.diversity.min2": 15,
        "compress.short": 15,
        "conclusion.phrase": 10,
    }
    assert scored.score == 125
    assert scored.roles == {"ao000": 1, "ao001": 1, "ao002": 1, "leo": 1, "system": 0, "unknown": 0}


def test_minimal_segment():
    t = _transcript([(Sender.UNKNOWN, "x" * 200)] * 3)
    scored = score_segment(_segment("s001", 0, 2), t)
    assert [r.points for r in scored.reasons] == [0, 0, 0, 0, 0]
    assert scored.score == 0
    assert scored.reasons[0].detail == "No error triggers"
    assert scored.reasons[3].detail == "Avg msg length: 200"


@pytest.mark.parametrize("senders,tri,diversity", [
    ([Sender.AO000], 10, 0),
    ([Sender.AO000, Sender.AO001], 20, 15),
    ([Sender.LEO, Sender.SYSTEM], 0, 15),
    ([Sender.AO000, Sender.AO001, Sender.AO002], 35, 15),
])
def test_role_heuristics(senders, tri, diversity):
    t = _transcript([(s, "msg") for s in senders])
    reasons = {r.rule_id: r.points for r in score_segment(_segment("s001", 0, len(senders) - 1), t).reasons}
    assert reasons["roles.tri"] == tri
    assert reasons["roles.diversity.min2"] == diversity


@pytest.mark.parametrize("length,points", [(80, 15), (81, 8), (150, 8), (151, 0)])
def test_compressibility_tiers(length, points):
    t = _transcript([(Sender.AO000, "a" * length)])
    reasons = {r.rule_id: r.points for r in score_segment(_segment("s001", 0, 0), t).reasons}
    assert reasons["compress.short"] == points


def test_conclusion_needs_whole_word():
    t = _transcript([(Sender.AO000, "also someone")])
    reasons = {r.rule_id: r.points for r in score_segment(_segment("s001", 0, 0), t).reasons}
    assert reasons["conclusion.phrase"] == 0


def test_count_roles_fixed_keys():
    assert list(count_roles([])) == ["ao000", "ao001", "ao002", "leo", "system", "unknown"]


# ── Ranking ──────────────────────────────────────────────────────────

def test_ties_break_on_segment_id():
    t = _transcript([(Sender.AO000, "msg")] * 30)
    segs = [_segment("s003", 20, 29), _segment("s001", 0, 9), _segment("s002", 10, 19)]
    topk = score_segments(segs, t, 3)
    assert [s.segment_id for s in topk.segments] == ["s001", "s002", "s003"]


def test_score_desc_then_top_k():
    t = _transcript([(Sender.AO000, "msg")] * 30)
    segs = [_segment("s001", 0, 9), _segment("s002", 10, 19, _error_hits(12)), _segment("s003", 20, 29)]
    topk = score_segments(segs, t, 2)
    assert [s.segment_id for s in topk.segments] == ["s002", "s001"]
    assert topk.meta["k"] == 2
    assert topk.meta["ep"] == "ep_0002"
    assert topk.meta["segmentation"] == "error"
    assert not topk.fallback


def test_fallback_flag_in_meta():
    t = _transcript([(Sender.AO000, "msg")] * 12)
    result = segment(t.messages)
    topk = score_segments(result.segments, t, 1, fallback=result.fallback)
    assert topk.fallback
    assert topk.meta["segmentation"] == "fallback"


def test_k_must_be_positive():
    with pytest.raises(ValueError):
        score_segments([], _transcript([]), 0)
