"""Unit tests for the silence segmenter."""

import random
from pathlib import Path
from unittest.mock import patch

import pytest

from silencecut.analyzers.silence import detect_silence, segment, total_silence_duration
from silencecut.ffutil import NoAudioTrackError
from silencecut.manifest import DetectionSettings
from silencecut.models import LoudnessSample, ProbeResult, SilenceInterval

from conftest import make_levels

LOUD = -10.0
QUIET = -60.0
DEFAULTS = DetectionSettings()


def _run(n: int, silent) -> list[LoudnessSample]:
    return make_levels([QUIET if i in silent else LOUD for i in range(n)])


def _make_probe(duration: float = 2.0) -> ProbeResult:
    return ProbeResult(
        duration=duration,
        audio_sample_rate=44100,
        audio_channels=1,
        codec_audio="pcm_s16le",
    )


class TestSegmentNoSilence:
    def test_all_loud(self):
        assert segment(_run(20, range(0)), 2.0, DEFAULTS) == []

    def test_empty_input(self):
        assert segment([], 0.0, DEFAULTS) == []

    def test_level_at_threshold_is_not_silent(self):
        levels = make_levels([LOUD] * 5 + [-40.0] * 10 + [LOUD] * 5)
        assert segment(levels, 2.0, DEFAULTS) == []


class TestSegmentBasic:
    def test_single_run_with_one_window_padding(self):
        result = segment(_run(20, range(5, 15)), 2.0, DEFAULTS)
        assert len(result) == 1
        assert result[0].start == pytest.approx(0.6)
        assert result[0].end == pytest.approx(1.3)
        assert result[0].duration == pytest.approx(0.7)

    def test_two_runs_sorted(self):
        levels = _run(40, set(range(3, 12)) | set(range(20, 30)))
        result = segment(levels, 4.0, DEFAULTS)
        assert [(round(i.start, 6), round(i.end, 6)) for i in result] == [(0.4, 1.0), (2.1, 2.8)]


class TestSegmentMinimumDuration:
    def test_short_run_ignored(self):
        assert segment(_run(20, range(5, 10)), 2.0, DEFAULTS) == []

    def test_run_at_minimum_is_kept(self):
        result = segment(_run(20, range(5, 11)), 2.0, DEFAULTS)
        assert len(result) == 1
        assert result[0].start == pytest.approx(0.6)
        assert result[0].end == pytest.approx(0.9)

    def test_custom_minimum(self):
        settings = DetectionSettings(min_duration=1.0)
        assert segment(_run(30, range(5, 15)), 3.0, settings) == []
        assert len(segment(_run(30, range(5, 16)), 3.0, settings)) == 1


class TestSegmentPadding:
    def test_padding_eliminates_run(self):
        settings = DetectionSettings(padding=0.3)
        assert segment(_run(20, range(5, 11)), 2.0, settings) == []

    def test_zero_padding(self):
        settings = DetectionSettings(padding=0.0)
        result = segment(_run(20, range(5, 15)), 2.0, settings)
        assert result[0].start == pytest.approx(0.5)
        assert result[0].end == pytest.approx(1.4)


class TestSegmentEdges:
    def test_leading_silence(self):
        result = segment(_run(20, range(0, 10)), 2.0, DEFAULTS)
        assert result[0].start == pytest.approx(0.1)
        assert result[0].end == pytest.approx(0.8)

    def test_trailing_silence_ends_at_total_duration(self):
        result = segment(_run(20, range(12, 20)), 2.05, DEFAULTS)
        assert len(result) == 1
        assert result[0].start == pytest.approx(1.3)
        assert result[0].end == 2.05

    def test_short_trailing_silence_ignored(self):
        assert segment(_run(20, range(17, 20)), 2.0, DEFAULTS) == []

    def test_entirely_silent(self):
        result = segment(_run(20, range(0, 20)), 2.0, DEFAULTS)
        assert result == [SilenceInterval(start=0.1, end=2.0)]

    def test_indices_must_increase(self):
        levels = [LoudnessSample(0, QUIET), LoudnessSample(2, QUIET), LoudnessSample(1, QUIET)]
        with pytest.raises(ValueError, match="increasing"):
            segment(levels, 1.0, DEFAULTS)

    def test_accepts_a_generator(self):
        levels = (s for s in _run(20, range(5, 15)))
        assert len(segment(levels, 2.0, DEFAULTS)) == 1


class TestSegmentProperties:
    @pytest.mark.parametrize("seed", range(20))
    def test_random_sequences(self, seed):
        rng = random.Random(seed)
        n = rng.randint(0, 300)
        levels = make_levels([rng.choice([QUIET, QUIET, LOUD]) for _ in range(n)])
        total = n * 0.1

        first = segment(levels, total, DEFAULTS)
        second = segment(levels, total, DEFAULTS)
        assert first == second

        for interval in first:
            assert interval.end > interval.start
            assert interval.start >= 0
            assert interval.duration >= 0.3 - 1e-9
        for a, b in zip(first, first[1:]):
            assert a.end <= b.start

        assert total_silence_duration(first) == pytest.approx(sum(i.duration for i in first))


class TestTotalSilenceDuration:
    def test_empty(self):
        assert total_silence_duration([]) == 0

    def test_sum(self):
        intervals = [SilenceInterval(0.5, 1.0), SilenceInterval(2.0, 3.25)]
        assert total_silence_duration(intervals) == pytest.approx(1.75)


class TestDetectSilence:
    @patch("silencecut.analyzers.silence.LevelExtractor")
    @patch("silencecut.analyzers.silence.ffutil.probe")
    def test_pipeline(self, mock_probe, mock_extractor):
        mock_probe.return_value = _make_probe(2.0)
        mock_extractor.return_value = _run(20, range(5, 15))
        progress: list[float] = []

        result = detect_silence(Path("a.wav"), DEFAULTS, on_progress=progress.append)

        assert len(result) == 1
        assert result[0].start == pytest.approx(0.6)
        assert progress[-1] == 1.0

    @patch("silencecut.analyzers.silence.ffutil.probe")
    def test_no_audio_track_propagates(self, mock_probe):
        mock_probe.side_effect = NoAudioTrackError("No audio stream found")
        with pytest.raises(NoAudioTrackError):
            detect_silence(Path("video.mp4"), DEFAULTS)
