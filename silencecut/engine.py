"""Orchestrator: detects silence and retimes an edit description."""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from silencecut import ffutil
from silencecut.analyzers.levels import AnalysisCancelled
from silencecut.analyzers.silence import detect_silence, total_silence_duration
from silencecut.editors.retime import retime
from silencecut.fcpxml import load_fcpxml
from silencecut.manifest import Manifest
from silencecut.models import SilenceInterval, SkippedClip

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    output_path: Path
    frame_rate: float = 30.0
    intervals: list[SilenceInterval] = field(default_factory=list)
    silence_duration: float = 0.0
    removed_seconds: float = 0.0
    clips_total: int = 0
    clips_moved: int = 0
    skipped: list[SkippedClip] = field(default_factory=list)
    overlapping: list[str] = field(default_factory=list)

    @property
    def segments_removed(self) -> int:
        return len(self.intervals)


def process(
    manifest: Manifest,
    on_progress: Callable[[str, float], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> EngineResult:
    """Execute the detect-and-retime pipeline.

    Args:
        manifest: Validated job manifest.
        on_progress: Optional callback(stage_name, fraction_complete).
        cancel_event: When set, the run stops at the next window or stage
            boundary with AnalysisCancelled and nothing is written.
    """

    def _progress(stage: str, frac: float) -> None:
        if on_progress:
            on_progress(stage, frac)

    def _sub_progress(stage: str, base: float, span: float):
        """Return a callback that maps a [0,1] fraction to [base, base+span]."""
        def cb(frac: float) -> None:
            _progress(stage, base + frac * span)
        return cb

    def _check_cancelled() -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelled("processing cancelled")

    ffutil.check_ffmpeg()

    _progress("Reading edit description", 0.0)
    document = load_fcpxml(manifest.input)
    frame_rate = manifest.frame_rate or document.frame_rate

    audio_path = manifest.audio or document.audio_path
    if audio_path is None:
        raise ffutil.NoAudioTrackError(
            f"{manifest.input} references no media and no audio file was given"
        )
    _progress("Reading edit description", 0.05)
    _check_cancelled()

    # --- Silence detection ---
    _progress("Scanning audio for silence", 0.05)
    intervals = detect_silence(
        audio_path,
        manifest.silence,
        cancel_event=cancel_event,
        on_progress=_sub_progress("Scanning audio for silence", 0.05, 0.75),
    )
    _check_cancelled()

    result = EngineResult(
        output_path=manifest.output,
        frame_rate=frame_rate,
        intervals=intervals,
        silence_duration=total_silence_duration(intervals),
        clips_total=len(document.clips),
    )

    # --- Retime ---
    if intervals:
        _progress(f"Retiming clips over {len(intervals)} silent intervals", 0.80)
        retimed = retime(document.clips, intervals, frame_rate, cancel_event=cancel_event)
        _check_cancelled()
        result.clips_moved = document.apply(retimed.clips)
        result.removed_seconds = retimed.removed_seconds
        result.skipped = retimed.skipped
        result.overlapping = retimed.overlapping
    else:
        logger.info("No silence found in %s; timeline left unchanged", audio_path)
        _progress("No silence found", 0.80)

    _progress("Writing edit description", 0.90)
    document.save(manifest.output)

    _progress("Done", 1.0)
    logger.info(
        "Removed %d intervals (%.2fs), moved %d/%d clips, skipped %d -> %s",
        result.segments_removed, result.removed_seconds, result.clips_moved,
        result.clips_total, len(result.skipped), manifest.output,
    )
    return result
