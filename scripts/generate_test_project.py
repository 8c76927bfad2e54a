#!/usr/bin/env python3
"""Generate a synthetic audio file and matching FCPXML for SilenceCut testing.

Produces a ~22-second mono WAV alternating tone and silence:
  0-3s   440 Hz tone
  3-6s   silence
  6-10s  880 Hz tone
  10-12s silence
  12-16s 440 Hz tone
  16-18s silence
  18-22s 660 Hz tone

and a 24 fps FCPXML with one asset-clip per tone block, placed at the tone's
start so that running ``silencecut process`` closes the gaps.
"""

import subprocess
import sys
from pathlib import Path

BLOCKS = [
    ("tone", 440, 0, 3),
    ("silence", None, 3, 3),
    ("tone", 880, 6, 4),
    ("silence", None, 10, 2),
    ("tone", 440, 12, 4),
    ("silence", None, 16, 2),
    ("tone", 660, 18, 4),
]


def generate_audio(output: Path) -> None:
    parts = []
    labels = []
    for i, (kind, freq, _start, duration) in enumerate(BLOCKS):
        if kind == "tone":
            parts.append(f"sine=f={freq}:d={duration}:sample_rate=44100[s{i}]")
        else:
            parts.append(f"anullsrc=r=44100:cl=mono:d={duration}[s{i}]")
        labels.append(f"[s{i}]")
    parts.append(f"{''.join(labels)}concat=n={len(BLOCKS)}:v=0:a=1[aout]")

    cmd = [
        "ffmpeg", "-y",
        "-filter_complex", ";".join(parts),
        "-map", "[aout]",
        "-ac", "1",
        "-acodec", "pcm_s16le",
        str(output),
    ]
    subprocess.run(cmd, check=True)


def generate_fcpxml(output: Path, audio: Path) -> None:
    total = sum(b[3] for b in BLOCKS)
    clips = "\n".join(
        f'            <asset-clip name="tone{i}" ref="r2" offset="{start}s" '
        f'start="{start}s" duration="{duration}s"/>'
        for i, (kind, _f, start, duration) in enumerate(BLOCKS)
        if kind == "tone"
    )
    output.write_text(
        f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE fcpxml>
<fcpxml version="1.8">
  <resources>
    <format id="r1" frameDuration="100/2400s" width="320" height="240"/>
    <asset id="r2" name="synthetic" src="{audio.resolve().as_uri()}" start="0s" duration="{total}s" hasAudio="1"/>
  </resources>
  <library>
    <event name="Synthetic">
      <project name="Synthetic">
        <sequence duration="{total}s" format="r1">
          <spine>
{clips}
          </spine>
        </sequence>
      </project>
    </event>
  </library>
</fcpxml>
""",
        encoding="utf-8",
    )


if __name__ == "__main__":
    out_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("tests/fixtures")
    out_dir.mkdir(parents=True, exist_ok=True)
    audio = out_dir / "synthetic.wav"
    generate_audio(audio)
    generate_fcpxml(out_dir / "synthetic.fcpxml", audio)
    print(f"Generated: {audio}, {out_dir / 'synthetic.fcpxml'}")
