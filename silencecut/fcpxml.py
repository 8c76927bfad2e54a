"""FCPXML reader/writer for the edit description the retimer works on."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote, urlparse

import lxml.etree

from silencecut.editors.retime import MalformedEditDescriptionError
from silencecut.models import EditClip, TrackKind
from silencecut.rational import DEFAULT_FRAME_RATE, frame_rate_from_duration, parse_time, try_parse_time

logger = logging.getLogger(__name__)

CLIP_XPATH = "//asset-clip | //clip | //video | //audio"


@dataclass
class EditDocument:
    """A parsed FCPXML document plus the clip records extracted from it."""

    tree: lxml.etree._ElementTree
    project_name: str
    duration: float
    frame_rate: float
    audio_path: Path | None
    clips: list[EditClip]
    elements: dict[str, lxml.etree._Element] = field(default_factory=dict, repr=False)

    def apply(self, clips: list[EditClip]) -> int:
        """Write clip offsets back into the XML tree; returns how many changed."""
        changed = 0
        for clip in clips:
            element = self.elements.get(clip.id)
            if element is None or clip.offset_text is None:
                continue
            if element.get("offset") != clip.offset_text:
                element.set("offset", clip.offset_text)
                changed += 1
        self.clips = list(clips)
        return changed

    def save(self, path: Path) -> Path:
        path = Path(path)
        self.tree.write(str(path), xml_declaration=True, encoding="UTF-8", pretty_print=True)
        return path


def _resolve_media_path(src: str, base_dir: Path) -> Path:
    parsed = urlparse(src)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    path = Path(unquote(src))
    return path if path.is_absolute() else base_dir / path


def _asset_src(root: lxml.etree._Element) -> str | None:
    asset = root.find(".//asset")
    if asset is None:
        return None
    src = asset.get("src")
    if src is None:
        # FCPXML 1.9+ moves the URL to a <media-rep> child
        media_rep = asset.find("media-rep")
        src = media_rep.get("src") if media_rep is not None else None
    return src


def _track_of(element: lxml.etree._Element) -> tuple[TrackKind, int]:
    try:
        lane = int(element.get("lane", "0"))
    except ValueError:
        lane = 0
    kind = TrackKind.AUDIO if element.tag == "audio" or lane < 0 else TrackKind.VIDEO
    return kind, 1 + abs(lane)


def load_fcpxml(path: str | Path) -> EditDocument:
    """Parse an FCPXML file into an :class:`EditDocument`.

    Raises MalformedEditDescriptionError if the file cannot be read as XML.
    Individual clips with bad timing attributes are kept with ``None`` fields
    so the retimer can report them.
    """
    path = Path(path)
    parser = lxml.etree.XMLParser(remove_blank_text=True)
    try:
        tree = lxml.etree.parse(str(path), parser)
    except (OSError, lxml.etree.XMLSyntaxError) as e:
        raise MalformedEditDescriptionError(f"cannot read FCPXML {path}: {e}") from e
    root = tree.getroot()

    project = root.find(".//project")
    project_name = project.get("name", "Unknown") if project is not None else "Unknown"

    frame_rate = DEFAULT_FRAME_RATE
    duration = 0.0
    sequence = root.find(".//sequence")
    if sequence is not None:
        duration = parse_time(sequence.get("duration"))
        format_id = sequence.get("format")
        if format_id:
            formats = root.xpath("//format[@id=$fid]", fid=format_id)
            if formats:
                frame_rate = frame_rate_from_duration(formats[0].get("frameDuration"))

    src = _asset_src(root)
    audio_path = _resolve_media_path(src, path.parent) if src else None

    clips: list[EditClip] = []
    elements: dict[str, lxml.etree._Element] = {}
    for i, element in enumerate(root.xpath(CLIP_XPATH)):
        clip_id = f"{element.tag}#{i}"
        kind, track_index = _track_of(element)
        clips.append(
            EditClip(
                id=clip_id,
                track_kind=kind,
                track_index=track_index,
                offset_seconds=try_parse_time(element.get("offset")),
                duration_seconds=try_parse_time(element.get("duration")),
                offset_text=element.get("offset"),
            )
        )
        elements[clip_id] = element

    logger.info(
        "Loaded %s: project %r, %d clips, %.3f fps, %.2fs",
        path.name, project_name, len(clips), frame_rate, duration,
    )
    return EditDocument(
        tree=tree,
        project_name=project_name,
        duration=duration,
        frame_rate=frame_rate,
        audio_path=audio_path,
        clips=clips,
        elements=elements,
    )
