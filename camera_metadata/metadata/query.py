"""
Display strings derived from a decoded ImageMetadataRecord.

Every function is pure. A field that was never populated yields "" (the
capture date yields "Invalid date/time", the flash predicate False).
"""
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, Optional

from ..models import ImageMetadataRecord

INVALID_DATE = "Invalid date/time"
EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"


def format_number(value: float) -> str:
    """Shortest natural form: 2.8 -> '2.8', 4.0 -> '4', -0.3333.. -> '-0.333333'."""
    return f"{value:g}"


def parse_exif_datetime(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.strptime(raw.strip(), EXIF_DATE_FORMAT)
    except ValueError:
        return None


def picture_date(record: ImageMetadataRecord) -> str:
    dt = parse_exif_datetime(record.capture_timestamp)
    if dt is None:
        return INVALID_DATE
    return dt.strftime("%b %d, %Y\n%H:%M")


def camera_hardware(record: ImageMetadataRecord) -> str:
    if record.make is None and record.model is None:
        return ""
    return f"{record.make or ''} {record.model or ''}"


def dimensions(record: ImageMetadataRecord) -> str:
    if record.image_width is None or record.image_height is None:
        return ""
    return f"{record.image_width} x {record.image_height}"


def f_stop(record: ImageMetadataRecord) -> str:
    if record.f_number is None:
        return ""
    return f"f/{format_number(record.f_number)}"


def exposure(record: ImageMetadataRecord) -> str:
    # Zero or missing exposure time means the exposure is unknown
    if not record.exposure_time or record.exposure_time <= 0:
        return ""
    # A second or longer is shown in seconds; 1/n would round to 1/0
    if record.exposure_time >= 1:
        return f"{format_number(record.exposure_time)} s"
    return f"1/{round(1.0 / record.exposure_time)} s"


def iso_speed(record: ImageMetadataRecord) -> str:
    if record.iso_speed is None:
        return ""
    return f"ISO: {record.iso_speed}"


def exposure_bias(record: ImageMetadataRecord) -> str:
    if record.exposure_bias is None:
        return ""
    return f"{format_number(record.exposure_bias)} EV"


def focal_length_35mm(record: ImageMetadataRecord) -> str:
    if record.focal_length_35mm is None:
        return ""
    return f"35mm focal length: {record.focal_length_35mm} mm"


def focal_length(record: ImageMetadataRecord) -> str:
    if record.focal_length is None:
        return ""
    return f"{format_number(record.focal_length)} mm"


def flash_fired(record: ImageMetadataRecord) -> bool:
    return record.flash_fired


def lens(record: ImageMetadataRecord) -> str:
    parts = [p for p in (record.lens.make, record.lens.model) if p]
    return " ".join(parts)


def gps_coordinates(record: ImageMetadataRecord) -> str:
    geo = record.geo
    if geo.latitude is None or geo.longitude is None:
        return ""
    return f"{geo.latitude:.6f}, {geo.longitude:.6f}"


IMAGE_QUERIES = OrderedDict([
    ("date", picture_date),
    ("hardware", camera_hardware),
    ("dimensions", dimensions),
    ("f_stop", f_stop),
    ("exposure", exposure),
    ("iso", iso_speed),
    ("exposure_bias", exposure_bias),
    ("focal_length", focal_length),
    ("focal_length_35mm", focal_length_35mm),
    ("flash", flash_fired),
    ("lens", lens),
    ("gps", gps_coordinates),
])


def describe_picture(record: ImageMetadataRecord) -> Dict[str, Any]:
    """Every display value, in IMAGE_QUERIES order."""
    return OrderedDict((name, fn(record)) for name, fn in IMAGE_QUERIES.items())
