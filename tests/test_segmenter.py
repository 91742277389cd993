"""Tests for segmentation."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from chat_highlights import Sender
from chat_highlights.segmenter import (
    MAX_SEGMENT_LEN, MIN_SEGMENT_LEN, expand_to_min, merge_ranges, segment, trim_to_max,
)
from chat_highlights.types import Message


def _messages(total, error_at=(), text="all good here"):
    error_at = set(error_at)
    return [
        Message(
            id=f"m{i + 1:06d}",
            ts=f"2024-03-15T00:00:{i % 60:02d}.000Z",
            ts_raw="raw",
            sender=Sender.AO000,
            text="401 Unauthorized" if i in error_at else text,
        )
        for i in range(total)
    ]


# ── Building blocks ──────────────────────────────────────────────────

def test_merge_overlapping_and_adjacent_only():
    assert merge_ranges([(0, 5), (4, 9)]) == [(0, 9)]
    assert merge_ranges([(0, 5), (6, 9)]) == [(0, 9)]
    assert merge_ranges([(0, 5), (7, 9)]) == [(0, 5), (7, 9)]       # one message between
    assert merge_ranges([(10, 12), (0, 3)]) == [(0, 3), (10, 12)]


def test_expand_alternates_back_then_forward():
    assert expand_to_min(5, 6, 100) == (1, 10)
    assert expand_to_min(0, 2, 100) == (0, 9)
    assert expand_to_min(97, 99, 100) == (90, 99)
    assert expand_to_min(0, 3, 5) == (0, 4)


def test_trim_prefers_most_errors_then_earliest():
    assert trim_to_max(0, 99, {70, 80, 90}) == (31, 90)
    assert trim_to_max(0, 99, set()) == (0, 59)
    assert trim_to_max(0, 40, {5}) == (0, 40)


# ── Segmentation ─────────────────────────────────────────────────────

def test_single_trigger_window():
    result = segment(_messages(200, error_at={50}))
    assert not result.fallback
    assert len(result.segments) == 1
    seg = result.segments[0]
    assert (seg.start_index, seg.end_index) == (44, 62)
    assert len(seg.message_ids) == 19
    assert seg.message_ids[0] == "m000045"
    assert seg.segment_id == "s001"
    assert [(h.trigger_id, h.category, h.message_index) for h in seg.trigger_hits] == [
        ("error.401", "error", 50),
    ]
    assert seg.start_ts == "2024-03-15T00:00:44.000Z"


def test_window_clamped_and_expanded_at_edge():
    seg = segment(_messages(200, error_at={0})).segments[0]
    assert (seg.start_index, seg.end_index) == (0, 12)

    seg = segment(_messages(8, error_at={3})).segments[0]
    assert (seg.start_index, seg.end_index) == (0, 7)


def test_separate_triggers_get_sequential_ids():
    result = segment(_messages(200, error_at={20, 120}))
    assert [s.segment_id for s in result.segments] == ["s001", "s002"]
    assert [(s.start_index, s.end_index) for s in result.segments] == [(14, 32), (114, 132)]


def test_windows_one_message_apart_stay_separate():
    result = segment(_messages(200, error_at={20, 40}))
    assert [(s.start_index, s.end_index) for s in result.segments] == [(14, 32), (34, 52)]

    result = segment(_messages(200, error_at={20, 39}))
    assert [(s.start_index, s.end_index) for s in result.segments] == [(14, 51)]


def test_long_merged_range_trimmed_to_max():
    # triggers every 10 messages from 10 to 100 chain into one range [4, 112]
    result = segment(_messages(200, error_at=set(range(10, 101, 10))))
    assert len(result.segments) == 1
    seg = result.segments[0]
    assert len(seg.message_ids) == MAX_SEGMENT_LEN
    # six error messages is the best any 60-window can hold; earliest such start
    assert (seg.start_index, seg.end_index) == (4, 63)


def test_segment_length_invariant():
    for error_at in ({0}, {199}, {5, 7, 9}, set(range(0, 200, 3)), {30, 33, 150}):
        for seg in segment(_messages(200, error_at=error_at)).segments:
            assert MIN_SEGMENT_LEN <= len(seg.message_ids) <= MAX_SEGMENT_LEN


def test_non_error_triggers_recorded_but_do_not_anchor():
    messages = _messages(40, error_at={20})
    messages[22] = Message(id="m000023", ts="", ts_raw="raw", sender=Sender.LEO,
                           text="please approve and curl it")
    seg = segment(messages).segments[0]
    assert [(h.trigger_id, h.message_index) for h in seg.trigger_hits] == [
        ("error.401", 20), ("perm.approve", 22), ("action.curl", 22),
    ]


# ── Fallback ─────────────────────────────────────────────────────────

def test_fallback_short_transcript_single_segment():
    result = segment(_messages(25))
    assert result.fallback
    assert [(s.start_index, s.end_index) for s in result.segments] == [(0, 24)]


def test_fallback_long_transcript_chunks():
    result = segment(_messages(95))
    assert result.fallback
    assert [(s.start_index, s.end_index) for s in result.segments] == [(0, 29), (30, 59), (60, 94)]
    assert [s.segment_id for s in result.segments] == ["s001", "s002", "s003"]


@pytest.mark.parametrize("total", [1, 9, 61, 200, 1000])
def test_fallback_never_empty(total):
    result = segment(_messages(total))
    assert result.fallback
    assert result.segments
    covered = [i for s in result.segments for i in range(s.start_index, s.end_index + 1)]
    assert covered == list(range(total))


def test_empty_transcript():
    result = segment([])
    assert result.segments == []
    assert not result.fallback
