import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from PIL import Image

from .. import config
from ..exceptions import ReportUnavailableError
from ..models import ImageMetadataRecord, VideoMetadataRecord
from ..storage import delete_file
from . import query, report
from .exif import ExifParser, build_record
from .sources import mediainfo_report, read_file_bytes, run_inspector, strip_scheme

# Optional imports handled gracefully to prevent crashes if libs are missing
try:
    import exifread
except ImportError:
    exifread = None

# exifread tag name -> (record field, kind)
EXIFREAD_TAGS = {
    'Image Make': ('make', 'text'),
    'Image Model': ('model', 'text'),
    'Image Software': ('software', 'text'),
    'Image DateTime': ('date_time', 'text'),
    'Image Orientation': ('orientation', 'int'),
    'EXIF DateTimeOriginal': ('date_time_original', 'text'),
    'EXIF DateTimeDigitized': ('date_time_digitized', 'text'),
    'EXIF ExposureTime': ('exposure_time', 'real'),
    'EXIF FNumber': ('f_number', 'real'),
    'EXIF ISOSpeedRatings': ('iso_speed', 'int'),
    'EXIF ExposureBiasValue': ('exposure_bias', 'real'),
    'EXIF FocalLength': ('focal_length', 'real'),
    'EXIF FocalLengthIn35mmFilm': ('focal_length_35mm', 'int'),
    'EXIF Flash': ('flash', 'int'),
    'EXIF ExifImageWidth': ('image_width', 'int'),
    'EXIF ExifImageLength': ('image_height', 'int'),
    'EXIF LensMake': ('lens.make', 'text'),
    'EXIF LensModel': ('lens.model', 'text'),
}


def _tag_number(tag) -> float:
    values = tag.values
    value = values[0] if isinstance(values, (list, tuple)) else values
    if hasattr(value, 'num') and hasattr(value, 'den'):
        return value.num / value.den if value.den else 0.0
    return float(value)


class MetadataExtractor:
    """
    Answers display queries about image and video files.

    Strategies:
      - Images: built-in EXIF parser -> falls back to 'exifread' + Pillow
        when the file carries no JPEG EXIF segment.
      - Video: 'mkvinfo' report -> falls back to 'pymediainfo'.

    Locators may carry a URI scheme ("file:/path"); it is stripped first.
    Queries never raise: unreadable input yields the documented defaults.
    """

    def __init__(self, inspector_timeout: float = config.INSPECTOR_TIMEOUT):
        self.parser = ExifParser()
        self.inspector_timeout = inspector_timeout

    # --- Picture Metadata ---

    def get_picture_metadata(self, file_url: str) -> ImageMetadataRecord:
        """Decodes the EXIF record of the image at `file_url`."""
        path = Path(strip_scheme(file_url))
        data = read_file_bytes(path)
        record, code = self.parser.parse(data)

        if code in (config.PARSE_EXIF_ERROR_NO_JPEG, config.PARSE_EXIF_ERROR_NO_EXIF):
            logging.debug(f"No EXIF segment in {path} (code {code})")
            if data:
                record = self._fallback_image_record(path, record)
        elif code:
            # Partial record: keep whatever was decoded
            logging.warning(f"Error parsing EXIF for {path}: code {code}")
        return record

    def _fallback_image_record(self, path: Path, record: ImageMetadataRecord) -> ImageMetadataRecord:
        """Reads tags with exifread and pixel size with Pillow for non-JPEG images."""
        fields: Dict[str, Any] = {}

        if exifread:
            try:
                with path.open('rb') as f:
                    # details=False speeds up processing significantly
                    tags = exifread.process_file(f, details=False)
                for tag_name, (field, kind) in EXIFREAD_TAGS.items():
                    if tag_name not in tags:
                        continue
                    tag = tags[tag_name]
                    try:
                        if kind == 'text':
                            fields[field] = str(tag).strip()
                        elif kind == 'int':
                            fields[field] = int(_tag_number(tag))
                        else:
                            fields[field] = _tag_number(tag)
                    except (TypeError, ValueError, ZeroDivisionError):
                        logging.debug(f"Unusable {tag_name} in {path}: {tag}")
            except Exception as e:
                logging.debug(f"ExifRead failed for {path}: {e}")

        if 'image_width' not in fields or 'image_height' not in fields:
            try:
                with Image.open(path) as im:
                    fields['image_width'], fields['image_height'] = im.size
            except Exception as e:
                logging.debug(f"Pillow could not open {path}: {e}")

        if not fields:
            return record
        return build_record(fields)

    def _picture_query(self, file_url: str, fn: Callable[[ImageMetadataRecord], Any], empty: Any = "") -> Any:
        if not file_url:
            return empty
        return fn(self.get_picture_metadata(file_url))

    def get_picture_date(self, file_url: str) -> str:
        return self._picture_query(file_url, query.picture_date)

    def get_camera_hardware(self, file_url: str) -> str:
        return self._picture_query(file_url, query.camera_hardware)

    def get_dimensions(self, file_url: str) -> str:
        return self._picture_query(file_url, query.dimensions)

    def get_f_stop(self, file_url: str) -> str:
        """Aperture setting, e.g. 'f/2.8'."""
        return self._picture_query(file_url, query.f_stop)

    def get_exposure(self, file_url: str) -> str:
        """Exposure time, e.g. '1/125 s'."""
        return self._picture_query(file_url, query.exposure)

    def get_iso_speed(self, file_url: str) -> str:
        return self._picture_query(file_url, query.iso_speed)

    def get_exposure_bias(self, file_url: str) -> str:
        return self._picture_query(file_url, query.exposure_bias)

    def focal_length_standard(self, file_url: str) -> str:
        """35mm-equivalent focal length."""
        return self._picture_query(file_url, query.focal_length_35mm)

    def focal_length(self, file_url: str) -> str:
        return self._picture_query(file_url, query.focal_length)

    def get_flash(self, file_url: str) -> bool:
        return self._picture_query(file_url, query.flash_fired, empty=False)

    # --- Video Metadata ---

    def get_video_report(self, file_url: str) -> str:
        """
        Report text for the video at `file_url`, or "" if no tool could read it.
        """
        if not file_url:
            return ""
        path = Path(strip_scheme(file_url))

        # Strategy 1: mkvinfo
        try:
            return run_inspector(path, timeout=self.inspector_timeout)
        except ReportUnavailableError as e:
            logging.debug(f"Inspector failed for {path}: {e}")

        # Strategy 2: MediaInfo
        try:
            return mediainfo_report(path)
        except Exception as e:
            logging.debug(f"MediaInfo failed for {path}: {e}")

        logging.warning(f"No container report available for {path}")
        return ""

    def get_video_metadata(self, file_url: str) -> VideoMetadataRecord:
        return report.parse_report(self.get_video_report(file_url))

    def get_video_date(self, file_url: str) -> str:
        return report.video_date(self.get_video_metadata(file_url))

    def get_video_dimensions(self, file_url: str) -> str:
        return report.video_dimensions(self.get_video_metadata(file_url))

    def get_duration(self, file_url: str) -> str:
        return report.video_duration(self.get_video_metadata(file_url))

    def get_multiplexing_application(self, file_url: str) -> str:
        return report.multiplexing_application(self.get_video_metadata(file_url))

    def get_writing_application(self, file_url: str) -> str:
        return report.writing_application(self.get_video_metadata(file_url))

    def get_document_type(self, file_url: str) -> str:
        return report.document_type(self.get_video_metadata(file_url))

    def get_codec_id(self, file_url: str) -> str:
        return report.codec_id(self.get_video_metadata(file_url))

    # --- Files ---

    def delete_image(self, file_url: str) -> bool:
        if not file_url:
            return False
        return delete_file(Path(strip_scheme(file_url)))

    def classify(self, file_url: str) -> Optional[str]:
        """'image', 'video' or None, by file extension."""
        return config.EXT_TO_TYPE.get(Path(strip_scheme(file_url)).suffix.lower())

    def inspect(self, file_url: str, kind: Optional[str] = None) -> Dict[str, Any]:
        """
        Every display value for one file, decoded once.

        Args:
            kind: 'image' or 'video' to skip extension-based routing.
        """
        if not file_url:
            return {}
        kind = kind or self.classify(file_url)
        if kind == 'image':
            return query.describe_picture(self.get_picture_metadata(file_url))
        if kind == 'video':
            record = self.get_video_metadata(file_url)
            result: Dict[str, Any] = report.describe_video(record)
            result['tracks'] = report.tracks(record)
            return result
        logging.debug(f"Unknown file type for {file_url}")
        return {}


class InspectionSession(MetadataExtractor):
    """
    Extractor that decodes each file at most once while the session is open.

    Use it when a view asks several questions about the same file:

        with InspectionSession() as session:
            session.get_f_stop(url)
            session.get_exposure(url)   # no second read
    """

    def __init__(self, inspector_timeout: float = config.INSPECTOR_TIMEOUT):
        super().__init__(inspector_timeout)
        self._pictures: Dict[str, ImageMetadataRecord] = {}
        self._videos: Dict[str, VideoMetadataRecord] = {}

    def get_picture_metadata(self, file_url: str) -> ImageMetadataRecord:
        key = strip_scheme(file_url)
        if key not in self._pictures:
            self._pictures[key] = super().get_picture_metadata(file_url)
        return self._pictures[key]

    def get_video_metadata(self, file_url: str) -> VideoMetadataRecord:
        key = strip_scheme(file_url)
        if key not in self._videos:
            self._videos[key] = super().get_video_metadata(file_url)
        return self._videos[key]

    def delete_image(self, file_url: str) -> bool:
        key = strip_scheme(file_url)
        self._pictures.pop(key, None)
        self._videos.pop(key, None)
        return super().delete_image(file_url)

    def clear(self):
        self._pictures.clear()
        self._videos.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.clear()
