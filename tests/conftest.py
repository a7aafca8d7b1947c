import struct
import pytest

from camera_metadata.metadata.exif import ExifParser

# Type code -> struct code for the scalar EXIF types
_SCALAR_CODES = {1: 'B', 3: 'H', 4: 'I', 9: 'i'}


def _encode(endian, fmt, values):
    """Returns (component count, raw bytes) for one tag value."""
    if fmt == 2:
        raw = values.encode('utf-8') + b'\x00'
        return len(raw), raw
    if fmt == 7:
        return len(values), bytes(values)
    if fmt in (5, 10):
        code = 'I' if fmt == 5 else 'i'
        raw = b''.join(struct.pack(f"{endian}2{code}", n, d) for n, d in values)
        return len(values), raw
    code = _SCALAR_CODES[fmt]
    return len(values), struct.pack(f"{endian}{len(values)}{code}", *values)


class ExifBuilder:
    """
    Assembles a synthetic TIFF block (and a JPEG around it) from tag lists.

    Layout: header, IFD0, Exif IFD, GPS IFD, then out-of-line values.
    """

    def __init__(self, endian='<'):
        self.endian = endian
        self.ifd0 = []
        self.exif = []
        self.gps = []

    def tag(self, ifd, tag, fmt, values):
        getattr(self, ifd).append((tag, fmt, values))
        return self

    def tiff(self) -> bytes:
        e = self.endian
        ifd0 = list(self.ifd0)
        n0 = len(ifd0) + (1 if self.exif else 0) + (1 if self.gps else 0)

        def ifd_size(n):
            return 2 + 12 * n + 4

        exif_off = 8 + ifd_size(n0)
        gps_off = exif_off + (ifd_size(len(self.exif)) if self.exif else 0)
        data_off = gps_off + (ifd_size(len(self.gps)) if self.gps else 0)

        if self.exif:
            ifd0.append((0x8769, 4, [exif_off]))
        if self.gps:
            ifd0.append((0x8825, 4, [gps_off]))

        data_area = bytearray()

        def serialize(entries):
            out = bytearray(struct.pack(f"{e}H", len(entries)))
            for tag, fmt, values in entries:
                count, raw = _encode(e, fmt, values)
                if len(raw) <= 4:
                    value_field = raw.ljust(4, b'\x00')
                else:
                    value_field = struct.pack(f"{e}I", data_off + len(data_area))
                    data_area.extend(raw)
                out += struct.pack(f"{e}HHI", tag, fmt, count) + value_field
            out += struct.pack(f"{e}I", 0)
            return bytes(out)

        body = serialize(ifd0)
        if self.exif:
            body += serialize(self.exif)
        if self.gps:
            body += serialize(self.gps)

        byte_order = b'II' if e == '<' else b'MM'
        header = byte_order + struct.pack(f"{e}HI", 0x2A, 8)
        return header + body + bytes(data_area)

    def app1(self) -> bytes:
        return b'Exif\x00\x00' + self.tiff()

    def jpeg(self) -> bytes:
        payload = self.app1()
        jfif = b'\xff\xe0' + struct.pack('>H', 16) + b'JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        app1 = b'\xff\xe1' + struct.pack('>H', len(payload) + 2) + payload
        return b'\xff\xd8' + jfif + app1 + b'\xff\xd9'


@pytest.fixture
def exif_builder():
    """Returns the ExifBuilder class; call it with '<' or '>' for byte order."""
    return ExifBuilder


@pytest.fixture
def parser():
    return ExifParser()


@pytest.fixture
def camera_jpeg(exif_builder):
    """A little-endian JPEG with the usual camera tags."""
    b = exif_builder('<')
    b.tag('ifd0', 0x010F, 2, "Canon")
    b.tag('ifd0', 0x0110, 2, "EOS R6")
    b.tag('ifd0', 0x0132, 2, "2023:01:05 14:30:12")
    b.tag('exif', 0x829A, 5, [(1, 125)])
    b.tag('exif', 0x829D, 5, [(28, 10)])
    b.tag('exif', 0x8827, 3, [200])
    b.tag('exif', 0x9204, 10, [(-1, 3)])
    b.tag('exif', 0x920A, 5, [(50, 1)])
    b.tag('exif', 0xA405, 3, [80])
    b.tag('exif', 0x9209, 3, [0x19])
    b.tag('exif', 0xA002, 4, [6000])
    b.tag('exif', 0xA003, 4, [4000])
    return b.jpeg()


SAMPLE_REPORT = """\
+ EBML head
|+ EBML version: 1
|+ Document type: webm
|+ Document type version: 4
+ Segment: size 1048576
|+ Seek head (subentries will be skipped)
|+ Segment information
| + Timestamp scale: 1000000
| + Multiplexing application: libebml v1.4.2 + libmatroska v1.6.4
| + Writing application: mkvmerge v70.0.0 64-bit
| + Duration: 00:00:05.000000000
| + Date: 2023-01-01 12:00:00 UTC
| + Title: Holiday
|+ Tracks
| + Track
|  + Track number: 1 (track ID for mkvmerge & mkvextract: 0)
|  + Track type: video
|  + Codec ID: V_VP8
|  + Default duration: 33.333ms (30.000 frames/fields per second for a video track)
|  + Video track
|   + Pixel width: 1920
|   + Pixel height: 1080
| + Track
|  + Track number: 2 (track ID for mkvmerge & mkvextract: 1)
|  + Track type: audio
|  + Codec ID: A_OPUS
|  + Audio track
|   + Sampling frequency: 48000
|   + Channels: 2
|+ Cluster
"""


@pytest.fixture
def sample_report():
    """mkvinfo output for a two-track WebM file."""
    return SAMPLE_REPORT
