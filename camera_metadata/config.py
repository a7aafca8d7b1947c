"""
Configuration constants for camera metadata extraction.
"""
import platform
from pathlib import Path

# --- File Type Definitions ---
IMAGE_EXTS = {'.jpg', '.jpeg', '.jpe', '.tif', '.tiff', '.png', '.heic', '.dng'}
VIDEO_EXTS = {'.mkv', '.webm', '.mka', '.mk3d', '.mp4', '.mov', '.m4v'}

# Extension to Type Mapping
# Used to route a locator to the image or video parser
EXT_TO_TYPE = {}
for ext in IMAGE_EXTS: EXT_TO_TYPE[ext] = 'image'
for ext in VIDEO_EXTS: EXT_TO_TYPE[ext] = 'video'

# --- EXIF Parsing ---
PARSE_EXIF_SUCCESS = 0
PARSE_EXIF_ERROR_NO_JPEG = 1982          # No JPEG markers found in buffer
PARSE_EXIF_ERROR_NO_EXIF = 1983          # No EXIF header found in JPEG
PARSE_EXIF_ERROR_UNKNOWN_BYTEALIGN = 1984  # Byte order marker is neither II nor MM
PARSE_EXIF_ERROR_CORRUPT = 1985          # EXIF header found but data is corrupted

# --- Container Inspection ---
INSPECTOR_EXECUTABLE = "mkvinfo"
INSPECTOR_TIMEOUT = 30.0  # seconds

# --- Desktop Integration ---
CONFIG_CANDIDATES = [
    Path("/usr/lib/droidian/device/droidian-camera.conf"),
    Path("/etc/droidian-camera.conf"),
]
CONFIG_NOT_FOUND = "None"

PIPELINE_CACHE_DIR = Path(".cache") / "gstreamer-1.0"
PIPELINE_CACHE_REGISTRY = f"registry.{platform.machine() or 'aarch64'}.bin"
PIPELINE_CACHE_MAX_AGE_DAYS = 7
