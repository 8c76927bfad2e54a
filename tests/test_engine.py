"""Tests for the engine module."""

import shutil
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from silencecut.analyzers.levels import AnalysisCancelled
from silencecut.engine import EngineResult, process
from silencecut.fcpxml import load_fcpxml
from silencecut.ffutil import DecodeFailureError, NoAudioTrackError
from silencecut.manifest import DetectionSettings, Manifest
from silencecut.models import SilenceInterval


class TestEngineResult:
    def test_defaults(self):
        r = EngineResult(output_path=Path("out.fcpxml"))
        assert r.segments_removed == 0
        assert r.silence_duration == 0.0
        assert r.removed_seconds == 0.0
        assert r.intervals == []
        assert r.skipped == []
        assert r.overlapping == []


@pytest.fixture
def project(sample_fcpxml_path: Path, tmp_path: Path) -> Path:
    dest = tmp_path / "project.fcpxml"
    shutil.copy(sample_fcpxml_path, dest)
    return dest


@patch("silencecut.engine.ffutil.check_ffmpeg")
class TestProcess:
    @patch("silencecut.engine.detect_silence")
    def test_retimes_and_writes(self, mock_detect, mock_check, project: Path, tmp_path: Path):
        mock_detect.return_value = [SilenceInterval(1.0, 1.5)]
        out = tmp_path / "out.fcpxml"
        stages: list[str] = []

        result = process(
            Manifest(input=project, output=out),
            on_progress=lambda stage, frac: stages.append(stage),
        )

        assert result.segments_removed == 1
        assert result.silence_duration == pytest.approx(0.5)
        assert result.removed_seconds == pytest.approx(0.5)
        assert result.clips_total == 4
        assert result.clips_moved == 2
        assert [s.clip_id for s in result.skipped] == ["clip#3"]
        assert stages[-1] == "Done"

        offsets = {c.id: c.offset_seconds for c in load_fcpxml(out).clips}
        assert offsets["asset-clip#1"] == 1.5

        # Audio path comes from the project's asset src
        assert mock_detect.call_args[0][0] == Path("/Volumes/Media/My Interview.mov")

    @patch("silencecut.engine.detect_silence", return_value=[])
    def test_no_silence_is_success(self, mock_detect, mock_check, project: Path, tmp_path: Path):
        out = tmp_path / "out.fcpxml"
        result = process(Manifest(input=project, output=out))

        assert result.segments_removed == 0
        assert result.clips_moved == 0
        assert out.exists()

    @patch("silencecut.engine.detect_silence", return_value=[])
    def test_audio_override_and_settings(self, mock_detect, mock_check, project: Path, tmp_path: Path):
        settings = DetectionSettings(threshold_db=-50.0)
        process(Manifest(
            input=project,
            output=tmp_path / "out.fcpxml",
            audio=Path("voice.wav"),
            silence=settings,
        ))
        assert mock_detect.call_args[0] == (Path("voice.wav"), settings)

    @patch("silencecut.engine.detect_silence")
    def test_frame_rate_override(self, mock_detect, mock_check, project: Path, tmp_path: Path):
        mock_detect.return_value = [SilenceInterval(1.0, 1.5)]
        result = process(Manifest(input=project, output=tmp_path / "o.fcpxml", frame_rate=25.0))
        assert result.frame_rate == 25.0

    @patch("silencecut.engine.detect_silence", side_effect=DecodeFailureError("boom"))
    def test_decode_failure_writes_nothing(self, mock_detect, mock_check, project: Path, tmp_path: Path):
        out = tmp_path / "out.fcpxml"
        with pytest.raises(DecodeFailureError):
            process(Manifest(input=project, output=out))
        assert not out.exists()

    def test_project_without_media(self, mock_check, tmp_path: Path):
        project = tmp_path / "bare.fcpxml"
        project.write_text('<fcpxml version="1.8"><library/></fcpxml>')
        with pytest.raises(NoAudioTrackError):
            process(Manifest(input=project, output=tmp_path / "out.fcpxml"))

    @patch("silencecut.engine.detect_silence")
    def test_cancelled_writes_nothing(self, mock_detect, mock_check, project: Path, tmp_path: Path):
        event = threading.Event()

        def detect(*args, **kwargs):
            event.set()
            return [SilenceInterval(1.0, 1.5)]

        mock_detect.side_effect = detect
        out = tmp_path / "out.fcpxml"
        with pytest.raises(AnalysisCancelled):
            process(Manifest(input=project, output=out), cancel_event=event)
        assert not out.exists()
