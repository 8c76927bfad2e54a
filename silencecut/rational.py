"""Rational time codec for FCPXML-style ``"<num>/<den>s"`` values.

FCPXML expresses every time value as an exact fraction of a second, either
``"83691520/2400000s"`` or a plain decimal such as ``"10s"``. Frame durations
use the same notation (``frameDuration="1001/30000s"``).
"""

import logging
from fractions import Fraction

logger = logging.getLogger(__name__)

DEFAULT_TIMEBASE = 1_000_000
DEFAULT_FRAME_RATE = 30.0

# Real-world frame rates are ratios with small denominators (30000/1001, 24000/1001).
_FPS_MAX_DENOMINATOR = 10_000
# Decimal NTSC rates (23.976, 29.97, 59.94) within this distance of n*1000/1001 snap to it.
_NTSC_TOLERANCE = 0.01


def round_half_up(value: Fraction | float | int) -> int:
    """Round to the nearest integer with ties rounding up."""
    if not isinstance(value, Fraction):
        value = Fraction(str(value))
    whole = value.numerator // value.denominator
    remainder = value.numerator - whole * value.denominator
    if remainder * 2 >= value.denominator:
        return whole + 1
    return whole


def _ntsc_rate(frame_rate: float | int) -> Fraction | None:
    """Exact ``n*1000/1001`` ratio for a decimal NTSC rate, else None."""
    if frame_rate <= 0 or frame_rate == int(frame_rate):
        return None
    nominal = round(frame_rate * 1001 / 1000)
    exact = Fraction(nominal * 1000, 1001)
    if nominal > 0 and abs(frame_rate - float(exact)) < _NTSC_TOLERANCE:
        return exact
    return None


def _as_fps(frame_rate: Fraction | float | int) -> Fraction:
    if isinstance(frame_rate, Fraction):
        fps = frame_rate
    else:
        fps = _ntsc_rate(frame_rate) or Fraction(frame_rate).limit_denominator(_FPS_MAX_DENOMINATOR)
    if fps <= 0:
        raise ValueError(f"frame rate must be positive, got {frame_rate}")
    return fps


def parse_rational(text: str) -> Fraction:
    """Strictly parse ``"<n>/<d>s"`` or ``"<decimal>s"`` into seconds.

    Raises ValueError on anything else, including a zero denominator.
    """
    value = text.strip()
    if not value.endswith("s"):
        raise ValueError(f"time value {text!r} has no 's' unit suffix")
    value = value[:-1]
    if "/" in value:
        parts = value.split("/")
        if len(parts) != 2:
            raise ValueError(f"malformed rational time {text!r}")
        numerator, denominator = int(parts[0]), int(parts[1])
        if denominator == 0:
            raise ValueError(f"zero denominator in {text!r}")
        return Fraction(numerator, denominator)
    return Fraction(value)


def try_parse_time(text: str | None) -> float | None:
    """Parse a time value, returning None when it is missing or malformed."""
    if text is None:
        return None
    try:
        return float(parse_rational(text))
    except ValueError:
        return None


def parse_time(text: str | None) -> float:
    """Leniently parse a time value to seconds.

    Malformed input yields ``0.0`` rather than an error. Callers that need to
    tell "zero" from "garbage" use :func:`try_parse_time`.
    """
    seconds = try_parse_time(text)
    if seconds is None:
        logger.debug("Unparsable time value %r treated as 0s", text)
        return 0.0
    return seconds


def format_rational(value: Fraction) -> str:
    """Format seconds in reduced form: ``"n/ds"``, or ``"ns"`` for whole seconds."""
    value = Fraction(value)
    if value.denominator == 1:
        return f"{value.numerator}s"
    return f"{value.numerator}/{value.denominator}s"


def format_time(
    frames: int,
    frame_rate: Fraction | float,
    timebase: int = DEFAULT_TIMEBASE,
) -> str:
    """Format a frame count as ``"<ticks>/<timebase>s"``.

    ``ticks = round(frames / frame_rate * timebase)``; the fraction is not
    reduced so every value shares the same timebase.
    """
    fps = _as_fps(frame_rate)
    ticks = round_half_up(Fraction(frames) / fps * timebase)
    return f"{ticks}/{timebase}s"


def frame_rate_from_duration(frame_duration: str | None) -> float:
    """A frame duration of ``n/d`` seconds implies ``d/n`` frames per second.

    Falls back to 30 fps when the descriptor is missing or unusable.
    """
    if frame_duration is None:
        return DEFAULT_FRAME_RATE
    try:
        duration = parse_rational(frame_duration)
    except ValueError:
        logger.debug("Unparsable frameDuration %r; using %.1f fps", frame_duration, DEFAULT_FRAME_RATE)
        return DEFAULT_FRAME_RATE
    if duration <= 0:
        return DEFAULT_FRAME_RATE
    return float(1 / duration)


def seconds_to_frames(seconds: float, frame_rate: Fraction | float) -> int:
    return round_half_up(Fraction(str(seconds)) * _as_fps(frame_rate))


def frames_to_seconds(frames: int, frame_rate: Fraction | float) -> float:
    return float(Fraction(frames) / _as_fps(frame_rate))


def format_timecode(seconds: float, frame_rate: Fraction | float = 24.0) -> str:
    """Human-readable ``HH:MM:SS:FF`` timecode (non-drop-frame)."""
    nominal = max(1, round(float(frame_rate)))
    total_frames = seconds_to_frames(max(seconds, 0.0), frame_rate)
    total_seconds, frames = divmod(total_frames, nominal)
    h, rem = divmod(total_seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}:{frames:02d}"
