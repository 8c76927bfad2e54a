"""JSON manifest schema, the contract between CLI/API and engine."""

import json
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class DetectionSettings:
    """Configuration for silence detection.

    Levels below ``threshold_db`` are silent; silent runs shorter than
    ``min_duration`` seconds are ignored; ``padding`` seconds of audio are kept
    on each side of a detected silence so cuts do not clip speech.
    """

    threshold_db: float = -40.0
    min_duration: float = 0.5
    padding: float = 0.1


@dataclass
class Manifest:
    """Top-level retime job."""

    input: Path
    output: Path
    version: str = "1"
    audio: Path | None = None
    frame_rate: float | None = None
    silence: DetectionSettings = field(default_factory=DetectionSettings)


def load_manifest(path: str | Path) -> Manifest:
    """Load and validate a manifest from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if "input" not in data or "output" not in data:
        raise ValueError("Manifest must contain 'input' and 'output' fields")

    silence = DetectionSettings(**data["silence"]) if "silence" in data else DetectionSettings()

    frame_rate = data.get("frame_rate")
    if frame_rate is not None and float(frame_rate) <= 0:
        raise ValueError("Manifest 'frame_rate' must be positive")

    return Manifest(
        version=data.get("version", "1"),
        input=Path(data["input"]),
        output=Path(data["output"]),
        audio=Path(data["audio"]) if data.get("audio") else None,
        frame_rate=float(frame_rate) if frame_rate is not None else None,
        silence=silence,
    )
