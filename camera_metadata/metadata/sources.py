"""
Raw inputs for the parsers: file bytes for images, report text for videos.

Failures here never propagate to a query. Unreadable files become b"" and an
unavailable inspector becomes "", so the parsers produce their defaults.
"""
import logging
import subprocess
from pathlib import Path
from typing import Any, List, Optional

from .. import config
from ..exceptions import ReportUnavailableError

# Type hint 'Any' prevents Pylance from complaining about "None" having no attribute "parse"
MediaInfo: Any = None
try:
    from pymediainfo import MediaInfo
except ImportError:
    MediaInfo = None


def strip_scheme(locator: str) -> str:
    """Drops a URI scheme prefix ("file:", "image:") up to and including the first colon."""
    colon = locator.find(':')
    if colon != -1:
        return locator[colon + 1:]
    return locator


def read_file_bytes(path: Path) -> bytes:
    try:
        data = path.read_bytes()
    except (OSError, ValueError) as e:
        logging.warning(f"Can't open file {path}: {e}")
        return b""
    if not data:
        logging.warning(f"Can't read file {path}: empty")
    return data


def run_inspector(path: Path,
                  timeout: float = config.INSPECTOR_TIMEOUT,
                  executable: str = config.INSPECTOR_EXECUTABLE) -> str:
    """
    Runs the container inspection tool against `path` and returns its stdout.

    Raises:
        ReportUnavailableError: executable missing, timed out, or failed without output.
    """
    cmd = [executable, str(path)]
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, errors="replace", timeout=timeout)
    except FileNotFoundError as e:
        raise ReportUnavailableError(f"{executable} not found") from e
    except subprocess.TimeoutExpired as e:
        raise ReportUnavailableError(f"{executable} timed out after {timeout}s") from e
    except (OSError, ValueError) as e:
        raise ReportUnavailableError(f"Error executing {executable}: {e}") from e

    if proc.stderr:
        logging.debug(f"{executable} error output: {proc.stderr.strip()}")
    if proc.returncode != 0 and not proc.stdout:
        raise ReportUnavailableError(f"{executable} exited with {proc.returncode}")

    logging.debug(f"Full {executable} output for {path}:\n{proc.stdout}")
    return proc.stdout


def _format_ms(duration: Any) -> str:
    total_ms = int(float(duration))
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}000000"


def _normalize_date(value: str) -> str:
    # Older MediaInfo releases print "UTC 2023-01-01 12:00:00"
    if value.startswith("UTC "):
        return f"{value[4:]} UTC"
    return value


def mediainfo_report(path: Path) -> str:
    """
    Renders MediaInfo tracks as labelled report lines, so the report parser
    can serve files the inspection tool can't (or isn't installed to) read.
    """
    if MediaInfo is None:
        raise ReportUnavailableError("pymediainfo not installed")

    mi = MediaInfo.parse(str(path))
    lines: List[str] = []

    def add(label: str, value: Optional[Any]):
        if value not in (None, ""):
            lines.append(f"{label}: {value}")

    for track in mi.tracks:
        if track.track_type == "General":
            add("Document type", getattr(track, "format", None))
            add("Title", getattr(track, "title", None))
            add("Multiplexing application", getattr(track, "writing_library", None))
            add("Writing application", getattr(track, "writing_application", None))
            if getattr(track, "duration", None):
                add("Duration", _format_ms(track.duration))
            for field in ("encoded_date", "recorded_date", "tagged_date"):
                val = getattr(track, field, None)
                if val:
                    add("Date", _normalize_date(str(val)))
                    break
        elif track.track_type in ("Video", "Audio", "Text"):
            add("Track number", getattr(track, "track_id", None))
            add("Track type", track.track_type.lower())
            add("Codec ID", getattr(track, "codec_id", None))
            add("Pixel width", getattr(track, "width", None))
            add("Pixel height", getattr(track, "height", None))
            add("Channels", getattr(track, "channel_s", None))
            add("Sampling frequency", getattr(track, "sampling_rate", None))

    return "\n".join(lines)
