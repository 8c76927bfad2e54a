"""Level extractor: reduces decoded audio to one loudness value per window."""

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Iterator

import numpy

from silencecut import ffutil
from silencecut.models import LoudnessSample

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 0.1
SILENCE_FLOOR = 1e-7
INT16_FULL_SCALE = 32768.0


class AnalysisCancelled(Exception):
    """Raised when an analysis is cancelled; partial results are discarded."""
    pass


def _check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelled("analysis cancelled")


def window_size(sample_rate: int, window_seconds: float = WINDOW_SECONDS) -> int:
    """Number of samples per analysis window (4410 at 44.1 kHz)."""
    return max(1, round(sample_rate * window_seconds))


def window_level_db(samples: numpy.ndarray) -> float:
    """RMS level of integer PCM samples in dBFS, floored at -140 dB."""
    if len(samples) == 0:
        raise ValueError("cannot measure an empty window")
    normalized = numpy.asarray(samples, dtype=numpy.float64) / INT16_FULL_SCALE
    rms = math.sqrt(float(numpy.mean(normalized * normalized)))
    return 20.0 * math.log10(max(rms, SILENCE_FLOOR))


def iter_levels(
    pcm_chunks: Iterable[bytes],
    sample_rate: int,
    window_seconds: float = WINDOW_SECONDS,
    cancel_event: threading.Event | None = None,
) -> Iterator[LoudnessSample]:
    """Turn a stream of s16le mono PCM chunks into loudness samples.

    Chunks may split windows (or even samples) anywhere. A trailing partial
    window is measured over whatever samples remain.
    """
    window_bytes = window_size(sample_rate, window_seconds) * ffutil.PCM_SAMPLE_WIDTH
    buffer = bytearray()
    index = 0

    for chunk in pcm_chunks:
        buffer.extend(chunk)
        offset = 0
        while len(buffer) - offset >= window_bytes:
            _check_cancelled(cancel_event)
            window = numpy.frombuffer(bytes(buffer[offset:offset + window_bytes]), dtype="<i2")
            yield LoudnessSample(index=index, level_db=window_level_db(window))
            index += 1
            offset += window_bytes
        if offset:
            del buffer[:offset]

    # An odd trailing byte is half a sample and is dropped.
    tail_samples = len(buffer) // ffutil.PCM_SAMPLE_WIDTH
    if tail_samples:
        _check_cancelled(cancel_event)
        window = numpy.frombuffer(bytes(buffer[:tail_samples * ffutil.PCM_SAMPLE_WIDTH]), dtype="<i2")
        yield LoudnessSample(index=index, level_db=window_level_db(window))


def levels_from_samples(
    samples: numpy.ndarray,
    sample_rate: int,
    window_seconds: float = WINDOW_SECONDS,
    max_workers: int | None = None,
    cancel_event: threading.Event | None = None,
) -> list[LoudnessSample]:
    """Measure an in-memory PCM array.

    A 2-D ``(frames, channels)`` array is down-mixed to mono first. With
    ``max_workers > 1`` windows are measured on a thread pool; results keep
    their window order.
    """
    samples = numpy.asarray(samples)
    if samples.ndim == 2:
        samples = samples.mean(axis=1)

    size = window_size(sample_rate, window_seconds)
    windows = [samples[i:i + size] for i in range(0, len(samples), size)]

    def measure(window: numpy.ndarray) -> float:
        _check_cancelled(cancel_event)
        return window_level_db(window)

    if max_workers and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            levels = list(pool.map(measure, windows))
    else:
        levels = [measure(w) for w in windows]

    logger.debug("Measured %d windows (workers=%s)", len(levels), max_workers or 1)
    return [LoudnessSample(index=i, level_db=db) for i, db in enumerate(levels)]


class LevelExtractor:
    """Restartable loudness sequence for an audio or video file.

    Every iteration re-runs the decoder from the start of the file. A file
    without an audio stream raises NoAudioTrackError on the first iteration.
    """

    def __init__(
        self,
        input_path: Path,
        sample_rate: int = ffutil.PCM_SAMPLE_RATE,
        window_seconds: float = WINDOW_SECONDS,
        cancel_event: threading.Event | None = None,
    ):
        self.input_path = Path(input_path)
        self.sample_rate = sample_rate
        self.window_seconds = window_seconds
        self.cancel_event = cancel_event

    def __iter__(self) -> Iterator[LoudnessSample]:
        pcm = ffutil.decode_pcm(self.input_path, self.sample_rate)
        try:
            yield from iter_levels(pcm, self.sample_rate, self.window_seconds, self.cancel_event)
        finally:
            pcm.close()
