"""
Binary EXIF/TIFF tag parser.

Layout:
  JPEG:  FFD8 ... FFE1 <len:2> "Exif\\0\\0" <TIFF block> ...
  TIFF:  <byte order:2> 002A <IFD0 offset:4>
  IFD:   <count:2> count * (<tag:2> <type:2> <components:4> <value or offset:4>) <next:4>

All offsets inside the TIFF block are relative to its first byte. Every read
is bounds-checked: a tag whose value falls outside the buffer is skipped, a
directory that cannot fit aborts the walk with a status code, and whatever was
decoded up to that point is still returned.
"""
import logging
import struct
from typing import Any, Callable, Dict, List, Optional, Tuple

from .. import config
from ..exceptions import ExifParseError
from ..models import GeoComponents, GeoLocation, ImageMetadataRecord, LensInfo

EXIF_HEADER = b'Exif\x00\x00'
APP1_MARKER = b'\xff\xe1'
IFD_ENTRY_SIZE = 12

# Type code -> (struct code, size of one component)
TYPE_FORMATS = {
    1: ('B', 1),   # byte
    2: ('s', 1),   # ASCII
    3: ('H', 2),   # short
    4: ('I', 4),   # long
    5: ('I', 8),   # unsigned rational
    7: ('s', 1),   # undefined
    9: ('i', 4),   # signed long
    10: ('i', 8),  # signed rational
}

TAG_EXIF_IFD = 0x8769
TAG_GPS_IFD = 0x8825


# --- Value converters ---
# Each takes (type code, decoded values) and returns the field value or None
# when the tag was stored with a type it can't represent.

def _text(fmt: int, values: Any) -> Optional[str]:
    if fmt != 2:
        return None
    return values.split(b'\x00', 1)[0].decode('utf-8', errors='replace').strip()


def _int(fmt: int, values: Any) -> Optional[int]:
    if fmt not in (1, 3, 4, 9) or not values:
        return None
    return int(values[0])


def _real(fmt: int, values: Any) -> Optional[float]:
    if fmt not in (1, 3, 4, 5, 9, 10) or not values:
        return None
    return float(values[0])


def _reals(fmt: int, values: Any) -> Optional[List[float]]:
    if fmt not in (5, 10):
        return None
    return [float(v) for v in values]


IFD0_TAGS: Dict[int, Tuple[str, Callable]] = {
    0x0100: ('image_width', _int),
    0x0101: ('image_height', _int),
    0x0102: ('bits_per_sample', _int),
    0x010E: ('image_description', _text),
    0x010F: ('make', _text),
    0x0110: ('model', _text),
    0x0112: ('orientation', _int),
    0x0131: ('software', _text),
    0x0132: ('date_time', _text),
    0x8298: ('copyright', _text),
}

EXIF_TAGS: Dict[int, Tuple[str, Callable]] = {
    0x010F: ('make', _text),
    0x0110: ('model', _text),
    0x829A: ('exposure_time', _real),
    0x829D: ('f_number', _real),
    0x8822: ('exposure_program', _int),
    0x8827: ('iso_speed', _int),
    0x9003: ('date_time_original', _text),
    0x9004: ('date_time_digitized', _text),
    0x9201: ('shutter_speed_value', _real),
    0x9204: ('exposure_bias', _real),
    0x9206: ('subject_distance', _real),
    0x9207: ('metering_mode', _int),
    0x9209: ('flash', _int),
    0x920A: ('focal_length', _real),
    0x9291: ('sub_sec_time_original', _text),
    # PixelXDimension / PixelYDimension override the IFD0 values
    0xA002: ('image_width', _int),
    0xA003: ('image_height', _int),
    0xA405: ('focal_length_35mm', _int),
    0xA432: ('lens.info', _reals),
    0xA433: ('lens.make', _text),
    0xA434: ('lens.model', _text),
}

GPS_TAGS: Dict[int, Tuple[str, Callable]] = {
    0x0001: ('gps.lat_ref', _text),
    0x0002: ('gps.lat', _reals),
    0x0003: ('gps.lon_ref', _text),
    0x0004: ('gps.lon', _reals),
    0x0005: ('gps.alt_ref', _int),
    0x0006: ('gps.alt', _real),
    0x000B: ('gps.dop', _real),
}


class TiffReader:
    """Byte-order aware, bounds-checked view over a TIFF block."""

    def __init__(self, data: bytes, endian: str):
        self.data = data
        self.endian = endian

    def fits(self, offset: int, size: int) -> bool:
        return 0 <= offset and size >= 0 and offset + size <= len(self.data)

    def u16(self, offset: int) -> int:
        return struct.unpack_from(self.endian + 'H', self.data, offset)[0]

    def u32(self, offset: int) -> int:
        return struct.unpack_from(self.endian + 'I', self.data, offset)[0]

    def decode(self, fmt: int, count: int, entry_offset: int) -> Any:
        """
        Decodes the value of the IFD entry at `entry_offset`.

        Returns None if the type is unknown or the value lies outside the buffer.
        """
        if fmt not in TYPE_FORMATS:
            return None
        code, unit = TYPE_FORMATS[fmt]
        total = unit * count

        # Values of 4 bytes or less are stored inline
        if total <= 4:
            data_offset = entry_offset + 8
        else:
            data_offset = self.u32(entry_offset + 8)
        if not self.fits(data_offset, total):
            return None

        if code == 's':
            return bytes(self.data[data_offset:data_offset + total])
        if fmt in (5, 10):
            raw = struct.unpack_from(f"{self.endian}{2 * count}{code}", self.data, data_offset)
            return [num / den if den else 0.0 for num, den in zip(raw[0::2], raw[1::2])]
        return list(struct.unpack_from(f"{self.endian}{count}{code}", self.data, data_offset))


class ExifParser:
    """
    Decodes the EXIF block of a JPEG (or a bare APP1 payload / TIFF stream)
    into an ImageMetadataRecord.

    Stateless between calls; a fresh field map is built on every parse.
    """

    def parse(self, data: bytes) -> Tuple[ImageMetadataRecord, int]:
        fields: Dict[str, Any] = {}
        status = config.PARSE_EXIF_SUCCESS
        try:
            tiff, truncated = self._locate_tiff(data)
            self._parse_tiff(tiff, fields)
            if truncated:
                status = config.PARSE_EXIF_ERROR_CORRUPT
        except ExifParseError as e:
            logging.debug(f"EXIF parse stopped: {e}")
            status = e.code
        return build_record(fields), status

    def parse_exif_segment(self, segment: bytes) -> Tuple[ImageMetadataRecord, int]:
        """Parses a buffer starting at the 'Exif\\0\\0' header or at the TIFF header."""
        fields: Dict[str, Any] = {}
        status = config.PARSE_EXIF_SUCCESS
        try:
            if segment[:6] == EXIF_HEADER:
                segment = segment[6:]
            self._parse_tiff(segment, fields)
        except ExifParseError as e:
            logging.debug(f"EXIF parse stopped: {e}")
            status = e.code
        return build_record(fields), status

    # --- Locating the TIFF block ---

    def _locate_tiff(self, data: bytes) -> Tuple[bytes, bool]:
        """
        Returns (tiff block, truncated flag).

        Accepts a full JPEG, an APP1 payload or a bare TIFF stream.
        """
        if data[:6] == EXIF_HEADER:
            return data[6:], False
        if data[:4] in (b'II*\x00', b'MM\x00*'):
            return data, False
        if data[:2] != b'\xff\xd8':
            raise ExifParseError(config.PARSE_EXIF_ERROR_NO_JPEG, "buffer is not a JPEG")

        # Scan for an APP1 marker carrying the Exif header; other APP1
        # segments (XMP) and stray bytes before it are skipped.
        pos = data.find(APP1_MARKER, 2)
        while pos != -1:
            if pos + 4 > len(data):
                break
            seg_len = struct.unpack_from('>H', data, pos + 2)[0]
            payload_start = pos + 4
            if data[payload_start:payload_start + 6] == EXIF_HEADER:
                if seg_len < 16:
                    raise ExifParseError(config.PARSE_EXIF_ERROR_CORRUPT, "APP1 segment too short")
                seg_end = pos + 2 + seg_len
                truncated = seg_end > len(data)
                return data[payload_start + 6:min(seg_end, len(data))], truncated
            pos = data.find(APP1_MARKER, pos + 2)

        raise ExifParseError(config.PARSE_EXIF_ERROR_NO_EXIF, "no EXIF segment in JPEG")

    # --- TIFF / IFD walking ---

    def _parse_tiff(self, tiff: bytes, fields: Dict[str, Any]):
        if len(tiff) < 8:
            raise ExifParseError(config.PARSE_EXIF_ERROR_CORRUPT, "too short for a TIFF header")

        byte_order = tiff[:2]
        if byte_order == b'II':
            reader = TiffReader(tiff, '<')
        elif byte_order == b'MM':
            reader = TiffReader(tiff, '>')
        else:
            raise ExifParseError(config.PARSE_EXIF_ERROR_UNKNOWN_BYTEALIGN, f"byte order {byte_order!r}")

        if reader.u16(2) != 0x2A:
            raise ExifParseError(config.PARSE_EXIF_ERROR_CORRUPT, "bad TIFF magic")

        visited = set()
        pointers = self._walk_ifd(reader, reader.u32(4), IFD0_TAGS, fields, visited)

        # Sub-directories are only reachable from IFD0
        if TAG_EXIF_IFD in pointers:
            self._walk_ifd(reader, pointers[TAG_EXIF_IFD], EXIF_TAGS, fields, visited)
        if TAG_GPS_IFD in pointers:
            self._walk_ifd(reader, pointers[TAG_GPS_IFD], GPS_TAGS, fields, visited)

    def _walk_ifd(self,
                  reader: TiffReader,
                  offset: int,
                  table: Dict[int, Tuple[str, Callable]],
                  fields: Dict[str, Any],
                  visited: set) -> Dict[int, int]:
        """
        Decodes every recognized entry of the IFD at `offset` into `fields`.

        Returns the sub-IFD pointers found in the directory.
        """
        if offset in visited:
            return {}
        visited.add(offset)

        if not reader.fits(offset, 2):
            raise ExifParseError(config.PARSE_EXIF_ERROR_CORRUPT, f"IFD offset {offset} out of range")
        count = reader.u16(offset)
        if not reader.fits(offset + 2, count * IFD_ENTRY_SIZE):
            raise ExifParseError(config.PARSE_EXIF_ERROR_CORRUPT, f"IFD at {offset} claims {count} entries")

        pointers: Dict[int, int] = {}
        for i in range(count):
            entry = offset + 2 + i * IFD_ENTRY_SIZE
            tag = reader.u16(entry)
            fmt = reader.u16(entry + 2)
            components = reader.u32(entry + 4)

            if tag in (TAG_EXIF_IFD, TAG_GPS_IFD):
                if fmt in (4, 13) and components == 1:
                    pointers[tag] = reader.u32(entry + 8)
                continue

            if tag not in table:
                continue
            name, convert = table[tag]
            values = reader.decode(fmt, components, entry)
            if values is None:
                logging.debug(f"Skipping EXIF tag 0x{tag:04x}: value out of range or unknown type {fmt}")
                continue
            value = convert(fmt, values)
            if value is not None:
                fields[name] = value
        return pointers


# --- Record assembly ---

def _dms(values: Optional[List[float]], ref: Optional[str]) -> Tuple[Optional[float], GeoComponents]:
    if not values or len(values) < 3:
        return None, GeoComponents(direction=ref)
    degrees, minutes, seconds = values[:3]
    decimal = degrees + minutes / 60.0 + seconds / 3600.0
    if ref in ('S', 'W'):
        decimal = -decimal
    return decimal, GeoComponents(degrees, minutes, seconds, ref)


def build_record(fields: Dict[str, Any]) -> ImageMetadataRecord:
    """Turns the flat field map collected by the parser into a record."""
    plain = {k: v for k, v in fields.items() if '.' not in k}

    lens_info = fields.get('lens.info') or []
    lens_info = list(lens_info) + [None] * (4 - len(lens_info))
    lens = LensInfo(
        focal_length_min=lens_info[0],
        focal_length_max=lens_info[1],
        f_stop_min=lens_info[2],
        f_stop_max=lens_info[3],
        make=fields.get('lens.make'),
        model=fields.get('lens.model'),
    )

    latitude, lat_components = _dms(fields.get('gps.lat'), fields.get('gps.lat_ref'))
    longitude, lon_components = _dms(fields.get('gps.lon'), fields.get('gps.lon_ref'))
    altitude = fields.get('gps.alt')
    alt_ref = fields.get('gps.alt_ref')
    if altitude is not None and alt_ref == 1:
        altitude = -altitude
    geo = GeoLocation(
        latitude=latitude,
        longitude=longitude,
        altitude=altitude,
        altitude_ref=alt_ref,
        dop=fields.get('gps.dop'),
        lat_components=lat_components,
        lon_components=lon_components,
    )
    return ImageMetadataRecord(lens=lens, geo=geo, **plain)


def parse(data: bytes) -> Tuple[ImageMetadataRecord, int]:
    """Module-level shortcut for ExifParser().parse(data)."""
    return ExifParser().parse(data)
