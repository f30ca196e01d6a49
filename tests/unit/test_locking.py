"""Unit tests for the registry file lock."""

import json
import os
import time
from pathlib import Path

import pytest

from flashloan_deployments.exceptions import RegistryLockedError
from flashloan_deployments.locking import RegistryLock
from flashloan_deployments.paths import get_lock_path


def _make_lock_file(registry_path: Path, age: float = 0) -> Path:
    lock_path = get_lock_path(registry_path)
    lock_path.write_text(json.dumps({"token": "other", "pid": 99999, "host": "elsewhere"}))
    if age:
        past = time.time() - age
        os.utime(lock_path, (past, past))
    return lock_path


class TestRegistryLock:
    def test_acquire_and_release(self, registry_path: Path):
        lock = RegistryLock(registry_path)
        with lock:
            assert lock.held
            assert get_lock_path(registry_path).exists()

        assert not lock.held
        assert not get_lock_path(registry_path).exists()

    def test_fresh_lock_blocks_until_retries_exhausted(self, registry_path: Path):
        lock_path = _make_lock_file(registry_path)

        with pytest.raises(RegistryLockedError) as exc_info:
            RegistryLock(registry_path, retries=2, retry_delay=0.01).acquire()

        assert str(lock_path) in str(exc_info.value)
        # Someone else's lock is left alone
        assert json.loads(lock_path.read_text())["token"] == "other"

    def test_stale_lock_is_reclaimed(self, registry_path: Path):
        _make_lock_file(registry_path, age=120)

        lock = RegistryLock(registry_path, stale_after=30, retries=1)
        lock.acquire()
        try:
            holder = json.loads(get_lock_path(registry_path).read_text())
            assert holder["pid"] == os.getpid()
        finally:
            lock.release()

    def test_lock_released_when_body_raises(self, registry_path: Path):
        with pytest.raises(RuntimeError):
            with RegistryLock(registry_path):
                raise RuntimeError("write failed")

        assert not get_lock_path(registry_path).exists()

    def test_release_leaves_reclaimed_lock_alone(self, registry_path: Path):
        lock = RegistryLock(registry_path)
        lock.acquire()
        # Another process reclaimed it and now holds it
        _make_lock_file(registry_path)

        lock.release()

        assert get_lock_path(registry_path).exists()

    def test_release_without_acquire_is_noop(self, registry_path: Path):
        RegistryLock(registry_path).release()

    def test_reclaim_race_with_new_holder_is_logged(self, registry_path: Path, monkeypatch, caplog):
        lock_path = _make_lock_file(registry_path, age=120)
        lock = RegistryLock(registry_path, stale_after=30, retries=1)
        checks = []

        def is_stale(path: Path) -> bool:
            checks.append(path)
            if len(checks) == 1:
                return True
            # The renamed lock looks fresh and a third process has taken the slot
            lock_path.write_text(json.dumps({"token": "third", "pid": 1, "host": "elsewhere"}))
            return False

        monkeypatch.setattr(lock, "_is_stale", is_stale)

        with caplog.at_level("WARNING", logger="flashloan_deployments.locking"):
            assert lock._reclaim_if_stale() is False

        assert json.loads(lock_path.read_text())["token"] == "third"
        assert sorted(p.name for p in registry_path.parent.iterdir() if p.name.endswith(".stale")) == []
        assert "two processes may briefly have held the lock" in caplog.text
