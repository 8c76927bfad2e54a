"""FFmpeg/ffprobe subprocess helpers."""

import json
import logging
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Iterator

from silencecut.models import ProbeResult

logger = logging.getLogger(__name__)

PCM_SAMPLE_RATE = 44100
PCM_SAMPLE_WIDTH = 2  # signed 16-bit little-endian

# ffmpeg: "Stream map '0:a:0' matches no streams."
_NO_AUDIO_MARKER = "matches no streams"


class FFmpegNotFoundError(RuntimeError):
    pass


class NoAudioTrackError(ValueError):
    """Raised when the input file has no audio stream."""
    pass


class DecodeFailureError(RuntimeError):
    """Raised when the decoder cannot start or aborts mid-stream."""
    pass


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def probe(input_path: Path) -> ProbeResult:
    """Extract audio metadata (and the video frame rate, if any) via ffprobe."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    except subprocess.CalledProcessError as e:
        raise DecodeFailureError(f"ffprobe could not read {input_path} (rc={e.returncode})") from e
    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise DecodeFailureError(f"ffprobe returned invalid JSON for {input_path}: {e}") from e

    streams = data.get("streams", [])
    video_stream = next((s for s in streams if s.get("codec_type") == "video"), None)
    audio_stream = next((s for s in streams if s.get("codec_type") == "audio"), None)

    if audio_stream is None:
        raise NoAudioTrackError(
            f"No audio stream found in {input_path}; silence detection requires audio"
        )

    duration = data.get("format", {}).get("duration") or audio_stream.get("duration")
    if duration is None:
        raise DecodeFailureError(f"ffprobe reported no duration for {input_path}")

    try:
        fps = None
        if video_stream is not None and "r_frame_rate" in video_stream:
            # r_frame_rate looks like "30000/1001"
            num, den = video_stream["r_frame_rate"].split("/")
            if int(den) != 0:
                fps = int(num) / int(den)

        return ProbeResult(
            duration=float(duration),
            audio_sample_rate=int(audio_stream["sample_rate"]),
            audio_channels=int(audio_stream.get("channels", 1)),
            codec_audio=audio_stream["codec_name"],
            fps=fps,
        )
    except (KeyError, ValueError) as e:
        raise DecodeFailureError(f"ffprobe output for {input_path} is incomplete: {e!r}") from e


def decode_pcm(
    input_path: Path,
    sample_rate: int = PCM_SAMPLE_RATE,
    chunk_bytes: int = 1 << 16,
) -> Iterator[bytes]:
    """Stream the first audio track as mono s16le PCM.

    ffmpeg down-mixes and resamples; chunks are yielded as they arrive and
    have no alignment guarantee. Closing the generator early kills ffmpeg.
    """
    cmd = [
        "ffmpeg",
        "-nostdin",
        "-v", "error",
        "-i", str(input_path),
        "-map", "0:a:0",
        "-vn",
        "-ac", "1",
        "-ar", str(sample_rate),
        "-acodec", "pcm_s16le",
        "-f", "s16le",
        "-",
    ]
    logger.debug("Decoding audio: %s", " ".join(cmd))
    # only stdout is drained while ffmpeg runs, so stderr must not be a pipe
    stderr_file = tempfile.TemporaryFile()
    try:
        proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=stderr_file)
    except OSError as e:
        stderr_file.close()
        raise DecodeFailureError(f"could not start ffmpeg: {e}") from e

    try:
        while True:
            chunk = proc.stdout.read(chunk_bytes)
            if not chunk:
                break
            yield chunk
        returncode = proc.wait()
        stderr_file.seek(0)
        stderr = stderr_file.read().decode(errors="replace")
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait()
        proc.stdout.close()
        stderr_file.close()

    if returncode != 0 and _NO_AUDIO_MARKER in stderr:
        raise NoAudioTrackError(f"No audio stream found in {input_path}")
    if returncode != 0:
        raise DecodeFailureError(
            f"ffmpeg decode failed (rc={returncode}): {stderr.strip()[-500:]}"
        )
