from dataclasses import dataclass, field
from typing import Optional, List, Tuple


@dataclass(frozen=True)
class GeoComponents:
    """Degrees/minutes/seconds form of one GPS axis, as stored in the GPS IFD."""
    degrees: Optional[float] = None
    minutes: Optional[float] = None
    seconds: Optional[float] = None
    direction: Optional[str] = None  # N/S or E/W


@dataclass(frozen=True)
class GeoLocation:
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    altitude_ref: Optional[int] = None  # 0 = above sea level, 1 = below
    dop: Optional[float] = None
    lat_components: GeoComponents = field(default_factory=GeoComponents)
    lon_components: GeoComponents = field(default_factory=GeoComponents)


@dataclass(frozen=True)
class LensInfo:
    focal_length_min: Optional[float] = None
    focal_length_max: Optional[float] = None
    f_stop_min: Optional[float] = None
    f_stop_max: Optional[float] = None
    make: Optional[str] = None
    model: Optional[str] = None


@dataclass(frozen=True)
class ImageMetadataRecord:
    """
    Decoded EXIF tags for one image.

    Built once per parse call; every field stays None when its tag is absent.
    Rationals are stored as floats (numerator / denominator).
    """
    # IFD0
    image_description: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    orientation: Optional[int] = None
    bits_per_sample: Optional[int] = None
    software: Optional[str] = None
    date_time: Optional[str] = None         # "YYYY:MM:DD HH:MM:SS"
    copyright: Optional[str] = None

    # Exif IFD
    date_time_original: Optional[str] = None
    date_time_digitized: Optional[str] = None
    sub_sec_time_original: Optional[str] = None
    exposure_time: Optional[float] = None   # seconds
    f_number: Optional[float] = None
    exposure_program: Optional[int] = None
    iso_speed: Optional[int] = None
    shutter_speed_value: Optional[float] = None  # APEX
    exposure_bias: Optional[float] = None   # EV
    subject_distance: Optional[float] = None  # meters
    focal_length: Optional[float] = None    # mm
    focal_length_35mm: Optional[int] = None  # mm
    flash: Optional[int] = None             # raw Flash bitfield
    metering_mode: Optional[int] = None
    image_width: Optional[int] = None
    image_height: Optional[int] = None

    lens: LensInfo = field(default_factory=LensInfo)
    geo: GeoLocation = field(default_factory=GeoLocation)

    @property
    def capture_timestamp(self) -> Optional[str]:
        return self.date_time_original or self.date_time

    @property
    def flash_fired(self) -> bool:
        # Bit 0 of the EXIF Flash tag
        return self.flash is not None and bool(self.flash & 0x1)

    @property
    def flash_returned_light(self) -> Optional[int]:
        return None if self.flash is None else (self.flash & 0x6) >> 1

    @property
    def flash_mode(self) -> Optional[int]:
        return None if self.flash is None else (self.flash & 0x18) >> 3


@dataclass
class VideoMetadataRecord:
    """
    Classified lines of one container report.

    `entries` holds (label, trimmed line) pairs in report order. A line that
    contains several known labels appears once per label.
    """
    entries: List[Tuple[str, str]] = field(default_factory=list)

    def first(self, *labels: str) -> Optional[str]:
        """Returns the first line carrying any of `labels` (first match wins)."""
        for label, line in self.entries:
            if label in labels:
                return line
        return None

    def value(self, *labels: str) -> Optional[str]:
        """Text after the first colon of the first matching line, trimmed."""
        line = self.first(*labels)
        if line is None or ':' not in line:
            return None
        return line.split(':', 1)[1].strip()

    def all(self, label: str) -> List[str]:
        return [line for lbl, line in self.entries if lbl == label]

    def __bool__(self) -> bool:
        return bool(self.entries)
