"""
Filesystem helpers used by the gallery around metadata display:
directory creation, pipeline cache eviction, config discovery and deletion.
"""
import logging
import shutil
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional

from . import config
from .exceptions import FileOperationError


def create_directory(relative: str, home: Optional[Path] = None) -> Path:
    """
    Creates `relative` (e.g. "/Pictures/camera") under the home directory.

    Raises:
        FileOperationError: if the directory can't be created.
    """
    home = home or Path.home()
    target = home / relative.lstrip('/')
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileOperationError(f"Failed to create {target}: {e}") from e
    return target


def remove_stale_cache(home: Optional[Path] = None, now: Optional[datetime] = None) -> bool:
    """
    Removes the GStreamer cache directory when its registry file is older
    than PIPELINE_CACHE_MAX_AGE_DAYS. Returns True if it was removed.
    """
    home = home or Path.home()
    now = now or datetime.now()
    cache_dir = home / config.PIPELINE_CACHE_DIR
    registry = cache_dir / config.PIPELINE_CACHE_REGISTRY

    if not registry.exists():
        return False

    last_modified = datetime.fromtimestamp(registry.stat().st_mtime)
    if last_modified + timedelta(days=config.PIPELINE_CACHE_MAX_AGE_DAYS) >= now:
        return False

    logging.info(f"Removing stale pipeline cache {cache_dir} (last modified {last_modified})")
    shutil.rmtree(cache_dir, ignore_errors=True)
    return not cache_dir.exists()


def get_config_file(candidates: Optional[Iterable[Path]] = None) -> str:
    """First existing config file in priority order, else the "None" sentinel."""
    for candidate in candidates if candidates is not None else config.CONFIG_CANDIDATES:
        if candidate.exists():
            return str(candidate.absolute())
    return config.CONFIG_NOT_FOUND


def delete_file(path: Path) -> bool:
    """Removes `path`. Returns False if it doesn't exist or can't be removed."""
    try:
        if not path.exists():
            return False
        path.unlink()
    except (OSError, ValueError) as e:
        logging.debug(f"Failed to delete {path}: {e}")
        return False
    return True
