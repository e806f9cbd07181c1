"""Tests for the polling directory watcher."""

import threading

import pytest

from usb_relay.errors import WatchSourceError
from usb_relay.watcher import EventKind, PollingWatcher, WatchEvent, diff_snapshots


def test_scan_lists_files_only(tmp_path):
    """Directories are left out of the scan result."""
    (tmp_path / "D_OUT_1").touch()
    (tmp_path / "D_OUT_2").mkdir()
    watcher = PollingWatcher(tmp_path)
    assert watcher.scan() == {"D_OUT_1"}


def test_next_batch_reports_created_and_deleted(tmp_path):
    """Changes since the scan arrive as one name-ordered batch."""
    (tmp_path / "D_OUT_1").touch()
    watcher = PollingWatcher(tmp_path, interval=0.01)
    watcher.scan()

    (tmp_path / "D_OUT_1").unlink()
    (tmp_path / "D_OUT_5").touch()
    (tmp_path / "sub").mkdir()

    events = watcher.next_batch()
    assert events == [
        WatchEvent(EventKind.DELETED, "D_OUT_1", False),
        WatchEvent(EventKind.CREATED, "D_OUT_5", False),
        WatchEvent(EventKind.CREATED, "sub", True),
    ]


def test_next_batch_returns_empty_when_stopped(tmp_path):
    """A set stop event ends the wait with no events."""
    stop = threading.Event()
    stop.set()
    watcher = PollingWatcher(tmp_path, interval=0.01, stop_event=stop)
    watcher.scan()
    assert watcher.next_batch() == []


def test_missing_directory_raises(tmp_path):
    """An unreadable directory raises WatchSourceError."""
    watcher = PollingWatcher(tmp_path / "missing")
    with pytest.raises(WatchSourceError):
        watcher.scan()


def test_diff_type_change():
    """A file replaced by a directory is a delete then a create."""
    events = diff_snapshots({"x": False}, {"x": True})
    assert events == [
        WatchEvent(EventKind.DELETED, "x", False),
        WatchEvent(EventKind.CREATED, "x", True),
    ]


def test_diff_no_change():
    """Identical snapshots produce no events."""
    assert diff_snapshots({"a": False}, {"a": False}) == []
