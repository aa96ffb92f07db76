import os
from unittest.mock import patch

import pytest

from codex_notify.ui.lock import InteractionLock, LockRecord


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestInteractionLock:
    """単一表示ロック"""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def lock(self, tmp_path, clock):
        return InteractionLock.for_group(tmp_path / "locks", "codex-notify-approval-native-t1", clock=clock)

    def test_path_is_keyed_by_group(self, lock, tmp_path):
        assert lock.path == tmp_path / "locks" / "codex-notify-approval-native-t1.lock"

    def test_free_when_missing(self, lock):
        assert lock.read() is None
        assert lock.is_held() is False

    def test_acquire_then_held(self, lock):
        record = lock.acquire(os.getpid(), 45, "g")

        assert record == LockRecord(pid=os.getpid(), created_at=1000.0, timeout_seconds=45, group="g")
        assert lock.read() == record
        assert lock.is_held() is True

    def test_release(self, lock):
        lock.acquire(os.getpid(), 45)
        lock.release()

        assert lock.is_held() is False
        # releasing twice is fine
        lock.release()

    def test_stale_after_twice_timeout(self, lock, clock):
        lock.acquire(os.getpid(), 10)

        clock.now += 20
        assert lock.is_held() is True

        clock.now += 1
        assert lock.is_held() is False
        assert not lock.path.exists()

    def test_dead_owner_is_stale(self, lock):
        lock.acquire(999_999, 45)

        with patch("codex_notify.ui.lock.psutil.pid_exists", return_value=False):
            assert lock.is_held() is False

        assert not lock.path.exists()

    def test_unreadable_marker_uses_mtime(self, tmp_path):
        path = tmp_path / "garbage.lock"
        path.write_text("not json")
        lock = InteractionLock(path)

        record = lock.read()

        assert record.pid == 0
        assert record.created_at == pytest.approx(path.stat().st_mtime)
        # fresh and without an owner pid -> still held
        assert lock.is_held() is True

    def test_claim_is_exclusive(self, lock):
        assert lock.claim(45, "g") is True
        assert lock.read().pid == os.getpid()

        assert lock.claim(45, "g") is False

    def test_claim_replaces_stale_lock(self, lock, clock):
        lock.acquire(os.getpid(), 10)
        clock.now += 21

        assert lock.claim(10, "g", pid=4242) is True
        assert lock.read() == LockRecord(pid=4242, created_at=1021.0, timeout_seconds=10, group="g")

    def test_claim_then_acquire_sets_helper_pid(self, lock):
        lock.claim(45, "g")
        lock.acquire(4242, 45, "g")

        assert lock.read().pid == 4242
