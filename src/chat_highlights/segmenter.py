"""Segmentation — contiguous message ranges anchored on error triggers.

Each error-trigger message opens a window [i - PRE, i + POST] clamped to the
transcript.  Windows that overlap or are adjacent merge.
Merged ranges shorter than MIN_SEGMENT_LEN grow alternately backward and
forward; ranges longer than MAX_SEGMENT_LEN shrink to the MAX-length
sub-window holding the most error-trigger messages (earliest start on ties).

With no error trigger anywhere the transcript is sliced instead (fallback
mode), so a non-empty transcript always yields at least one segment.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass

from .triggers import SEGMENT_WINDOW_POST, SEGMENT_WINDOW_PRE, has_error_trigger, match_triggers
from .types import Message, Segment, TriggerHit

LOGGER = logging.getLogger(__name__)

MIN_SEGMENT_LEN = 10
MAX_SEGMENT_LEN = 60
FALLBACK_CHUNK_LEN = 30


@dataclass(frozen=True, slots=True)
class SegmentationResult:
    segments: list[Segment]
    fallback: bool


def segment_id(index: int) -> str:
    return f"s{index + 1:03d}"


def window(index: int, total: int) -> tuple[int, int]:
    return max(0, index - SEGMENT_WINDOW_PRE), min(total - 1, index + SEGMENT_WINDOW_POST)


def merge_ranges(ranges: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Merge ranges that overlap or touch end to start."""
    merged: list[list[int]] = []
    for start, end in sorted(ranges):
        if merged and start <= merged[-1][1] + 1:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])
    return [(s, e) for s, e in merged]


def expand_to_min(start: int, end: int, total: int, min_len: int = MIN_SEGMENT_LEN) -> tuple[int, int]:
    while end - start + 1 < min_len and (start > 0 or end < total - 1):
        if start > 0:
            start -= 1
        if end - start + 1 >= min_len:
            break
        if end < total - 1:
            end += 1
    return start, end


def trim_to_max(
    start: int,
    end: int,
    error_indices: set[int],
    max_len: int = MAX_SEGMENT_LEN,
) -> tuple[int, int]:
    """Brute-force scan of every max_len sub-window; quadratic but transcripts are small."""
    if end - start + 1 <= max_len:
        return start, end
    best_start, best_count = start, -1
    for i in range(start, end - max_len + 2):
        count = sum(1 for j in range(i, i + max_len) if j in error_indices)
        if count > best_count:
            best_start, best_count = i, count
    return best_start, best_start + max_len - 1


def segment(messages: list[Message] | tuple[Message, ...]) -> SegmentationResult:
    total = len(messages)
    if total == 0:
        return SegmentationResult(segments=[], fallback=False)

    error_indices = {i for i, m in enumerate(messages) if has_error_trigger(m.text)}
    if not error_indices:
        LOGGER.warning("No error trigger in %d message(s); using fallback segmentation", total)
        ranges = _fallback_ranges(total)
        return SegmentationResult(
            segments=[_build(messages, i, s, e) for i, (s, e) in enumerate(ranges)],
            fallback=True,
        )

    ranges = []
    for start, end in merge_ranges([window(i, total) for i in sorted(error_indices)]):
        start, end = expand_to_min(start, end, total)
        start, end = trim_to_max(start, end, error_indices)
        ranges.append((start, end))

    segments = [_build(messages, i, s, e) for i, (s, e) in enumerate(ranges)]
    LOGGER.info("Segmented %d message(s) into %d segment(s) from %d error trigger(s)",
                total, len(segments), len(error_indices))
    return SegmentationResult(segments=segments, fallback=False)


def _fallback_ranges(total: int) -> list[tuple[int, int]]:
    if total <= MAX_SEGMENT_LEN:
        return [(0, total - 1)]
    ranges = [
        (start, min(start + FALLBACK_CHUNK_LEN, total) - 1)
        for start in range(0, total, FALLBACK_CHUNK_LEN)
    ]
    last_start, last_end = ranges[-1]
    if last_end - last_start + 1 < MIN_SEGMENT_LEN:
        ranges.pop()
        ranges[-1] = (ranges[-1][0], last_end)
    return ranges


def _build(messages, index: int, start: int, end: int) -> Segment:
    hits: list[TriggerHit] = []
    for j in range(start, end + 1):
        for t in match_triggers(messages[j].text):
            hits.append(TriggerHit(trigger_id=t.id, category=t.category, message_index=j))
    return Segment(
        segment_id=segment_id(index),
        start_index=start,
        end_index=end,
        message_ids=tuple(m.id for m in messages[start:end + 1]),
        trigger_hits=tuple(hits),
        start_ts=messages[start].ts,
        end_ts=messages[end].ts,
    )
