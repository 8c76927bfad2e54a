"""Timeline retimer: ripple-deletes silent spans from an edit timeline."""

import dataclasses
import logging
import threading
from typing import Sequence

from silencecut.analyzers.levels import AnalysisCancelled
from silencecut.models import EditClip, RetimeResult, SilenceInterval, SkippedClip
from silencecut.rational import format_time, frames_to_seconds, seconds_to_frames

logger = logging.getLogger(__name__)


class MalformedEditDescriptionError(ValueError):
    """Raised when an edit description, or a clip within it, cannot be read."""
    pass


def _clip_problem(clip: EditClip) -> str | None:
    if clip.offset_seconds is None:
        return "missing or unparsable offset"
    if clip.duration_seconds is None:
        return "missing or unparsable duration"
    if clip.duration_seconds <= 0:
        return "non-positive duration"
    if clip.offset_seconds < 0:
        return "negative offset"
    return None


def retime(
    clips: Sequence[EditClip],
    intervals: Sequence[SilenceInterval],
    frame_rate: float,
    cancel_event: threading.Event | None = None,
) -> RetimeResult:
    """Remove ``intervals`` from the timeline and ripple-shift later clips.

    Interval bounds are snapped to frames. Intervals are applied from the
    latest to the earliest so each comparison sees offsets that no later
    removal has touched yet. A clip moves left by an interval's length when
    its offset frame is strictly after the interval's start frame.

    Clips are never trimmed, deleted or reordered, and keep their duration
    and track. Clips without a usable offset/duration are passed through
    unchanged and listed in ``RetimeResult.skipped``; clips whose span
    overlaps a removed interval are listed in ``RetimeResult.overlapping``.
    The input clips are not modified.
    """
    if frame_rate <= 0:
        raise ValueError(f"frame rate must be positive, got {frame_rate}")

    skipped: list[SkippedClip] = []
    offsets: dict[int, int] = {}
    durations: dict[int, int] = {}
    for pos, clip in enumerate(clips):
        problem = _clip_problem(clip)
        if problem is not None:
            logger.warning("Skipping clip: %s", MalformedEditDescriptionError(f"{clip.id}: {problem}"))
            skipped.append(SkippedClip(clip_id=clip.id, reason=problem))
            continue
        offsets[pos] = seconds_to_frames(clip.offset_seconds, frame_rate)
        durations[pos] = seconds_to_frames(clip.duration_seconds, frame_rate)
    original = dict(offsets)

    overlapping: set[int] = set()
    removed_total = 0
    for interval in sorted(intervals, key=lambda i: i.start, reverse=True):
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelled("retime cancelled")

        start_frame = seconds_to_frames(interval.start, frame_rate)
        end_frame = seconds_to_frames(interval.end, frame_rate)
        removed = end_frame - start_frame
        if removed <= 0:
            continue
        removed_total += removed

        for pos, offset in original.items():
            if offset < end_frame and offset + durations[pos] > start_frame:
                overlapping.add(pos)

        for pos, offset in offsets.items():
            if offset > start_frame:
                offsets[pos] = offset - removed

    result_clips: list[EditClip] = []
    for pos, clip in enumerate(clips):
        if pos not in offsets or offsets[pos] == original[pos]:
            result_clips.append(dataclasses.replace(clip))
            continue
        frames = offsets[pos]
        if frames < 0:
            logger.debug("Clip %s would start at frame %d; clamping to 0", clip.id, frames)
            frames = 0
        result_clips.append(
            dataclasses.replace(
                clip,
                offset_seconds=frames_to_seconds(frames, frame_rate),
                offset_text=format_time(frames, frame_rate),
            )
        )

    overlapping_ids = [clips[pos].id for pos in sorted(overlapping)]
    if overlapping_ids:
        logger.warning(
            "%d clip(s) overlap removed silence and were shifted, not trimmed: %s",
            len(overlapping_ids), ", ".join(overlapping_ids),
        )
    logger.info(
        "Retimed %d clips over %d intervals (%d frames removed, %d skipped)",
        len(offsets), len(intervals), removed_total, len(skipped),
    )

    return RetimeResult(
        clips=result_clips,
        frame_rate=frame_rate,
        removed_frames=removed_total,
        skipped=skipped,
        overlapping=overlapping_ids,
    )
