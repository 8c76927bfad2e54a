"""Thin CLI entry point: builds a Manifest and calls the engine."""

import argparse
import json
import logging
import sys
from pathlib import Path

from silencecut import ffutil
from silencecut.analyzers.levels import AnalysisCancelled
from silencecut.analyzers.silence import detect_silence, total_silence_duration
from silencecut.editors.retime import MalformedEditDescriptionError
from silencecut.engine import process
from silencecut.manifest import DetectionSettings, Manifest, load_manifest


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def _add_detection_args(parser: argparse.ArgumentParser) -> None:
    defaults = DetectionSettings()
    parser.add_argument("--silence-threshold", type=float, default=defaults.threshold_db, help="Silence threshold in dB")
    parser.add_argument("--silence-min-duration", type=float, default=defaults.min_duration, help="Minimum silence duration (seconds)")
    parser.add_argument("--silence-padding", type=float, default=defaults.padding, help="Audio kept around each silence (seconds)")


def _settings_from_args(args: argparse.Namespace) -> DetectionSettings:
    return DetectionSettings(
        threshold_db=args.silence_threshold,
        min_duration=args.silence_min_duration,
        padding=args.silence_padding,
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="silencecut",
        description="SilenceCut: remove silent pauses from FCPXML timelines.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    proc = sub.add_parser("process", help="Remove silence from an FCPXML timeline")
    proc.add_argument("project", nargs="?", type=Path, help="Input FCPXML file")
    proc.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    proc.add_argument("--output", "-o", type=Path, help="Output FCPXML path")
    proc.add_argument("--audio", "-a", type=Path, help="Audio/video file to analyze instead of the project's asset")
    proc.add_argument("--frame-rate", type=float, help="Override the sequence frame rate")
    _add_detection_args(proc)

    detect = sub.add_parser("detect", help="List silent intervals in a media file")
    detect.add_argument("media", type=Path, help="Audio or video file")
    detect.add_argument("--fps", type=float, default=24.0, help="Frame rate for printed timecodes")
    detect.add_argument("--json", action="store_true", help="Print intervals as JSON")
    _add_detection_args(detect)

    serve = sub.add_parser("serve", help="Launch the HTTP API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    args = parser.parse_args()
    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from silencecut.web import create_app
        app = create_app()
        print(f"SilenceCut API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    try:
        if args.command == "detect":
            _detect(args)
        else:
            _process(args)
    except (
        ffutil.FFmpegNotFoundError,
        ffutil.NoAudioTrackError,
        ffutil.DecodeFailureError,
        MalformedEditDescriptionError,
        AnalysisCancelled,
    ) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _detect(args: argparse.Namespace) -> None:
    ffutil.check_ffmpeg()
    intervals = detect_silence(args.media, _settings_from_args(args))
    total = total_silence_duration(intervals)

    if args.json:
        print(json.dumps({
            "intervals": [
                {"start": i.start, "end": i.end, "duration": i.duration} for i in intervals
            ],
            "total_silence": total,
        }, indent=2))
        return

    if not intervals:
        print("No silence found.")
        return
    for n, interval in enumerate(intervals, 1):
        print(
            f"  {n:3d}  {interval.start_timecode(args.fps)} -> {interval.end_timecode(args.fps)}"
            f"  ({interval.duration:.2f}s)"
        )
    print(f"Total silence: {total:.2f}s in {len(intervals)} intervals")


def _process(args: argparse.Namespace) -> None:
    if args.manifest:
        m = load_manifest(args.manifest)
    elif args.project:
        output = args.output or args.project.with_stem(args.project.stem + "_nosilence")
        m = Manifest(
            input=args.project,
            output=output,
            audio=args.audio,
            frame_rate=args.frame_rate,
            silence=_settings_from_args(args),
        )
    else:
        print("Error: provide either a PROJECT argument or --manifest.", file=sys.stderr)
        sys.exit(1)

    def on_progress(stage: str, frac: float) -> None:
        print(f"  [{frac:3.0%}] {stage}")

    result = process(m, on_progress=on_progress)

    print()
    print(f"Done! Output: {result.output_path}")
    if result.segments_removed:
        print(f"  Silent intervals removed: {result.segments_removed} ({result.removed_seconds:.2f}s)")
        print(f"  Clips moved: {result.clips_moved}/{result.clips_total}")
    else:
        print("  No silence found; timeline unchanged.")
    if result.skipped:
        print(f"  Skipped {len(result.skipped)} malformed clips:")
        for s in result.skipped:
            print(f"    {s.clip_id}: {s.reason}")
    if result.overlapping:
        print(f"  Clips overlapping removed silence (review these): {', '.join(result.overlapping)}")
