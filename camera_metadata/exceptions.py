"""
Custom exception hierarchy for camera metadata extraction.

None of these escape a metadata query: each is converted into a status code,
a default display value or an empty input at the boundary that owns it.
"""


class CameraMetadataError(Exception):
    """Base exception for all camera metadata errors."""
    pass


class ExifParseError(CameraMetadataError):
    """Raised inside the EXIF parser when the header or a directory is unusable."""

    def __init__(self, code: int, message: str = ""):
        super().__init__(message or f"EXIF parse error {code}")
        self.code = code


class ReportUnavailableError(CameraMetadataError):
    """Raised when the container inspection tool is missing, fails or times out."""
    pass


class FileOperationError(CameraMetadataError):
    """Raised when a filesystem operation fails."""
    pass
