"""Silence detection analyzer."""

import logging
import threading
from fractions import Fraction
from pathlib import Path
from typing import Callable, Iterable

from silencecut import ffutil
from silencecut.analyzers.levels import WINDOW_SECONDS, LevelExtractor
from silencecut.manifest import DetectionSettings
from silencecut.models import LoudnessSample, SilenceInterval
from silencecut.rational import round_half_up

logger = logging.getLogger(__name__)


def segment(
    levels: Iterable[LoudnessSample],
    total_duration: float,
    settings: DetectionSettings,
    window_seconds: float = WINDOW_SECONDS,
) -> list[SilenceInterval]:
    """Turn a loudness sequence into padded, ordered silence intervals.

    A run of windows below ``settings.threshold_db`` spanning windows
    ``first..last`` (inclusive) qualifies when ``(last - first) * window`` is at
    least ``settings.min_duration``. Padding moves both ends inward by
    ``round(padding / window)`` windows; a run that vanishes under padding is
    dropped. A run still open at the end of the sequence ends at
    ``total_duration`` and only its start is padded.
    """
    window = Fraction(str(window_seconds))
    min_duration = Fraction(str(settings.min_duration))
    padding_levels = round_half_up(Fraction(str(settings.padding)) / window)

    def seconds(index: int) -> float:
        return float(index * window)

    def long_enough(first: int, last: int) -> bool:
        return (last - first) * window >= min_duration

    intervals: list[SilenceInterval] = []
    run_first: int | None = None
    run_last = -1
    last_index = -1

    for sample in levels:
        if sample.index <= last_index:
            raise ValueError(
                f"loudness samples must have increasing indices (got {sample.index} after {last_index})"
            )
        last_index = sample.index

        if sample.level_db < settings.threshold_db:
            if run_first is None:
                run_first = sample.index
            run_last = sample.index
            continue

        if run_first is not None:
            if long_enough(run_first, run_last):
                start = max(0, run_first + padding_levels)
                end = min(last_index, run_last - padding_levels)
                if end > start:
                    intervals.append(SilenceInterval(start=seconds(start), end=seconds(end)))
            run_first = None

    # Trailing silence runs to the end of the media; nothing follows it to protect.
    if run_first is not None and long_enough(run_first, run_last):
        start = seconds(min(max(0, run_first + padding_levels), last_index))
        if total_duration > start:
            intervals.append(SilenceInterval(start=start, end=total_duration))

    return intervals


def total_silence_duration(intervals: Iterable[SilenceInterval]) -> float:
    return sum((i.duration for i in intervals), 0.0)


def detect_silence(
    input_path: Path,
    settings: DetectionSettings,
    cancel_event: threading.Event | None = None,
    on_progress: Callable[[float], None] | None = None,
) -> list[SilenceInterval]:
    """Probe, measure, and segment the first audio track of a media file.

    Raises NoAudioTrackError / DecodeFailureError before any interval is
    produced, and AnalysisCancelled if ``cancel_event`` is set mid-scan.
    """
    probe = ffutil.probe(input_path)
    logger.info(
        "Scanning %s (%.1fs, %d Hz, %d ch) at %.1f dB",
        input_path, probe.duration, probe.audio_sample_rate, probe.audio_channels,
        settings.threshold_db,
    )

    levels: list[LoudnessSample] = []
    for sample in LevelExtractor(input_path, cancel_event=cancel_event):
        levels.append(sample)
        if on_progress and probe.duration > 0 and sample.index % 50 == 0:
            on_progress(min(1.0, (sample.index + 1) * WINDOW_SECONDS / probe.duration))

    intervals = segment(levels, probe.duration, settings)
    if on_progress:
        on_progress(1.0)

    logger.info(
        "Found %d silent intervals (%.2fs total) in %d windows",
        len(intervals), total_silence_duration(intervals), len(levels),
    )
    return intervals
