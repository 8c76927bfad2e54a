"""Shared data types used across SilenceCut."""

from dataclasses import dataclass, field
from enum import Enum

from silencecut.rational import format_timecode


@dataclass(frozen=True)
class LoudnessSample:
    """Loudness of one fixed analysis window, in dBFS."""

    index: int
    level_db: float


@dataclass(frozen=True)
class SilenceInterval:
    """A detected silent span in seconds, already padded."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def start_timecode(self, fps: float = 24.0) -> str:
        return format_timecode(self.start, fps)

    def end_timecode(self, fps: float = 24.0) -> str:
        return format_timecode(self.end, fps)


class TrackKind(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"


@dataclass
class EditClip:
    """One placed clip on one track of an edit timeline.

    ``offset_seconds`` / ``duration_seconds`` are ``None`` when the source
    document had no parsable value. ``offset_text`` is the rational-time text
    that will be written back for the offset.
    """

    id: str
    track_kind: TrackKind
    track_index: int
    offset_seconds: float | None
    duration_seconds: float | None
    offset_text: str | None = None


@dataclass(frozen=True)
class SkippedClip:
    clip_id: str
    reason: str


@dataclass
class RetimeResult:
    """Best-effort rewritten timeline plus the clips that could not be moved."""

    clips: list[EditClip]
    frame_rate: float
    removed_frames: int = 0
    skipped: list[SkippedClip] = field(default_factory=list)
    overlapping: list[str] = field(default_factory=list)

    @property
    def removed_seconds(self) -> float:
        return self.removed_frames / self.frame_rate


@dataclass
class ProbeResult:
    """Metadata extracted from a media file via ffprobe."""

    duration: float
    audio_sample_rate: int
    audio_channels: int
    codec_audio: str
    fps: float | None = None
