"""
Parser for the line-oriented report printed by a container inspection tool
(mkvinfo), e.g.

    + EBML head
    |+ Document type: webm
    + Segment: size 1234
    |+ Segment information
    | + Multiplexing application: libebml v1.4.2 + libmatroska v1.6.4
    | + Writing application: mkvmerge v70.0.0
    | + Duration: 00:00:05.000000000
    | + Date: 2023-01-01 12:00:00 UTC
    |+ Tracks
    | + Track
    |  + Track number: 1 (track ID for mkvmerge & mkvextract: 0)
    |  + Codec ID: V_VP8
    |  + Pixel width: 1920

The report is decoded once into a VideoMetadataRecord; every display field is
then served from the record through VIDEO_FIELDS. When a label repeats (one
Codec ID per track) the first line wins.
"""
import re
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from ..models import VideoMetadataRecord

# Known labels, matched as substrings of each report line
LABELS = (
    "Duration",
    "Title",
    "Multiplexing application",
    "Muxing application",
    "Writing application",
    "Track number",
    "Track type",
    "Codec ID",
    "Pixel width",
    "Pixel height",
    "Channels",
    "Sampling frequency",
    "Date",
    "Document type",
)

# "2023-01-01 12:00:00 UTC"
DATE_PATTERN = re.compile(r'^(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}) (\S+)$')

TRACK_LABELS = ("Track type", "Codec ID", "Pixel width", "Pixel height", "Channels", "Sampling frequency")


def parse_report(text: str) -> VideoMetadataRecord:
    """Classifies each line of `text` by the labels it contains."""
    record = VideoMetadataRecord()
    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue
        for label in LABELS:
            if label in line:
                record.entries.append((label, line))
    return record


# --- Field renderers ---
# Each takes the record and the field's labels from VIDEO_FIELDS, and returns
# None when the field isn't in the report, so the table default applies.

Renderer = Callable[[VideoMetadataRecord, Tuple[str, ...]], Optional[str]]


def _render_date(record: VideoMetadataRecord, labels: Tuple[str, ...]) -> Optional[str]:
    value = record.value(*labels)
    if not value:
        return None
    match = DATE_PATTERN.match(value)
    if not match:
        return None
    try:
        dt = datetime.strptime(match.group(1), "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return None
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}\n{dt.strftime('%H:%M')}"


def _render_dimensions(record: VideoMetadataRecord, labels: Tuple[str, ...]) -> Optional[str]:
    width_label, height_label = labels
    width = record.value(width_label)
    height = record.value(height_label)
    if not width or not height:
        return None
    return f"{width}x{height}"


def _render_duration(record: VideoMetadataRecord, labels: Tuple[str, ...]) -> Optional[str]:
    # Keeps the whole source line, not only the value
    line = record.first(*labels)
    return None if line is None else f"Duration: {line}"


def _value_as(template: str) -> Renderer:
    def render(record: VideoMetadataRecord, labels: Tuple[str, ...]) -> Optional[str]:
        value = record.value(*labels)
        return template.format(value) if value else None
    return render


@dataclass(frozen=True)
class VideoField:
    labels: Tuple[str, ...]
    render: Renderer
    default: str


VIDEO_FIELDS: Dict[str, VideoField] = OrderedDict([
    ("date", VideoField(("Date",), _render_date, "Date not found.")),
    ("dimensions", VideoField(("Pixel width", "Pixel height"), _render_dimensions, "Dimensions not found.")),
    ("duration", VideoField(("Duration",), _render_duration, "Duration not found.")),
    ("multiplexing_application", VideoField(
        ("Multiplexing application", "Muxing application"),
        _value_as("{}"),
        "Multiplexing Application: Not found")),
    ("writing_application", VideoField(("Writing application",), _value_as("Writing application: {}"), "")),
    ("document_type", VideoField(("Document type",), _value_as("File Type: {}"), "File Type: Not found")),
    ("codec_id", VideoField(("Codec ID",), _value_as("Codec ID: {}"), "Codec ID: Not found")),
    ("title", VideoField(("Title",), _value_as("{}"), "")),
])


def video_field(record: VideoMetadataRecord, name: str) -> str:
    """Renders one field of VIDEO_FIELDS, falling back to its default string."""
    field_def = VIDEO_FIELDS[name]
    rendered = field_def.render(record, field_def.labels)
    return field_def.default if rendered is None else rendered


def video_date(record: VideoMetadataRecord) -> str:
    return video_field(record, "date")


def video_dimensions(record: VideoMetadataRecord) -> str:
    return video_field(record, "dimensions")


def video_duration(record: VideoMetadataRecord) -> str:
    return video_field(record, "duration")


def multiplexing_application(record: VideoMetadataRecord) -> str:
    return video_field(record, "multiplexing_application")


def writing_application(record: VideoMetadataRecord) -> str:
    return video_field(record, "writing_application")


def document_type(record: VideoMetadataRecord) -> str:
    return video_field(record, "document_type")


def codec_id(record: VideoMetadataRecord) -> str:
    return video_field(record, "codec_id")


def describe_video(record: VideoMetadataRecord) -> Dict[str, str]:
    """Every display field, in table order."""
    return OrderedDict((name, video_field(record, name)) for name in VIDEO_FIELDS)


def tracks(record: VideoMetadataRecord) -> List[Dict[str, str]]:
    """
    Groups per-track lines into one dict per track.

    A "Track number" line opens a track; the track-level lines that follow
    it (type, codec, dimensions, audio properties) belong to it.
    """
    result: List[Dict[str, str]] = []
    current: Optional[Dict[str, str]] = None
    for label, line in record.entries:
        value = line.split(':', 1)[1].strip() if ':' in line else ""
        if label == "Track number":
            current = {"number": value.split(' ', 1)[0] if value else ""}
            result.append(current)
        elif current is not None and label in TRACK_LABELS:
            key = label.lower().replace(' ', '_')
            current.setdefault(key, value)
    return result
