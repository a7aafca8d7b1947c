import os
from datetime import datetime, timedelta

import pytest

from camera_metadata import config
from camera_metadata.exceptions import FileOperationError
from camera_metadata.storage import create_directory, delete_file, get_config_file, remove_stale_cache


def test_create_directory_under_home(tmp_path):
    target = create_directory("/Pictures/camera", home=tmp_path)

    assert target == tmp_path / "Pictures" / "camera"
    assert target.is_dir()
    # Existing directories are fine
    assert create_directory("/Pictures/camera", home=tmp_path) == target


def test_create_directory_failure(tmp_path):
    (tmp_path / "Pictures").write_text("not a dir")

    with pytest.raises(FileOperationError):
        create_directory("/Pictures/camera", home=tmp_path)


def _make_cache(home, age_days):
    cache_dir = home / config.PIPELINE_CACHE_DIR
    cache_dir.mkdir(parents=True)
    registry = cache_dir / config.PIPELINE_CACHE_REGISTRY
    registry.write_bytes(b"registry")
    mtime = (datetime.now() - timedelta(days=age_days)).timestamp()
    os.utime(registry, (mtime, mtime))
    return cache_dir


def test_stale_cache_is_removed(tmp_path):
    cache_dir = _make_cache(tmp_path, age_days=10)

    assert remove_stale_cache(home=tmp_path) is True
    assert not cache_dir.exists()


def test_fresh_cache_is_kept(tmp_path):
    cache_dir = _make_cache(tmp_path, age_days=1)

    assert remove_stale_cache(home=tmp_path) is False
    assert cache_dir.exists()


def test_missing_cache(tmp_path):
    assert remove_stale_cache(home=tmp_path) is False


def test_config_file_priority(tmp_path):
    primary = tmp_path / "primary.conf"
    secondary = tmp_path / "secondary.conf"

    assert get_config_file([primary, secondary]) == "None"

    secondary.write_text("[camera]")
    assert get_config_file([primary, secondary]) == str(secondary)

    primary.write_text("[camera]")
    assert get_config_file([primary, secondary]) == str(primary)


def test_config_file_defaults(monkeypatch, tmp_path):
    conf = tmp_path / "camera.conf"
    conf.write_text("")
    monkeypatch.setattr(config, "CONFIG_CANDIDATES", [tmp_path / "nope.conf", conf])

    assert get_config_file() == str(conf)


def test_delete_file(tmp_path):
    p = tmp_path / "a.jpg"
    p.write_bytes(b"x")

    assert delete_file(p) is True
    assert delete_file(p) is False


def test_delete_directory_fails_quietly(tmp_path):
    d = tmp_path / "folder"
    d.mkdir()

    assert delete_file(d) is False
    assert d.exists()


def test_delete_file_unsearchable_parent(monkeypatch, tmp_path):
    locked = tmp_path / "locked" / "a.jpg"
    real_stat = os.stat

    def denied_stat(path, *args, **kwargs):
        if str(path) == str(locked):
            raise PermissionError(13, "Permission denied", str(path))
        return real_stat(path, *args, **kwargs)

    monkeypatch.setattr(os, "stat", denied_stat)

    assert delete_file(locked) is False


def test_delete_file_null_byte(tmp_path):
    assert delete_file(tmp_path / "a\x00b.jpg") is False
