"""
Tests for download handles and their deferred release.
"""

import threading

import pytest

from query_demo.errors import DownloadError, ErrorCategory
from query_demo.query.download import CSV_MEDIA_TYPE, DownloadManager, SaveToDirectory, safe_filename


class TestDownloadHandle:
    """Handle acquisition and release."""

    def test_acquire_writes_payload(self):
        manager = DownloadManager()

        handle = manager.acquire(b"\xef\xbb\xbfid", "results.csv")
        try:
            assert handle.path.read_bytes() == b"\xef\xbb\xbfid"
            assert handle.filename == "results.csv"
            assert handle.media_type == CSV_MEDIA_TYPE
            assert handle.size == 5
            assert not handle.released
        finally:
            handle.release()

    def test_release_is_idempotent(self):
        handle = DownloadManager().acquire(b"x", "a.csv")

        handle.release()
        handle.release()

        assert handle.released
        assert not handle.path.exists()
        assert "released" in repr(handle)

    def test_unscheduled_handle_settled_by_release_pending(self):
        manager = DownloadManager()
        handle = manager.acquire(b"x", "a.csv")

        assert manager.pending_count == 1
        assert manager.release_pending() == 1

        assert handle.released
        assert not handle.path.exists()
        assert manager.pending_count == 0

    def test_scheduling_replaces_unscheduled_entry(self, fake_timers):
        manager = DownloadManager(timer_factory=fake_timers)
        handle = manager.acquire(b"x", "a.csv")

        manager.schedule_release(handle)

        assert manager.pending_count == 1
        fake_timers.created[0].fire()
        assert handle.released
        assert manager.pending_count == 0

    def test_acquire_failure_is_download_error(self, monkeypatch):
        def refuse(*args, **kwargs):
            raise OSError("no space left on device")

        monkeypatch.setattr("query_demo.query.download.tempfile.mkstemp", refuse)

        with pytest.raises(DownloadError) as exc_info:
            DownloadManager().acquire(b"x", "a.csv")

        assert exc_info.value.category == ErrorCategory.DOWNLOAD
        assert exc_info.value.context.filename == "a.csv"


class TestScopedRelease:
    """The context manager schedules, never performs, the release."""

    def test_open_schedules_release_on_exit(self, fake_timers):
        manager = DownloadManager(release_delay_seconds=1.5, timer_factory=fake_timers)

        with manager.open(b"data", "a.csv") as handle:
            assert fake_timers.created == []

        assert len(fake_timers.created) == 1
        timer = fake_timers.created[0]
        assert timer.interval == 1.5
        assert timer.daemon
        assert timer.started
        assert not handle.released
        assert manager.pending_count == 1

        timer.fire()

        assert handle.released
        assert manager.pending_count == 0

    def test_open_schedules_release_on_error(self, fake_timers):
        manager = DownloadManager(timer_factory=fake_timers)

        with pytest.raises(RuntimeError):
            with manager.open(b"data", "a.csv"):
                raise RuntimeError("hand-off blew up")

        assert len(fake_timers.created) == 1
        assert manager.pending_count == 1

    def test_release_pending_cancels_timers(self, fake_timers):
        manager = DownloadManager(timer_factory=fake_timers)
        with manager.open(b"1", "a.csv") as first:
            pass
        with manager.open(b"2", "b.csv") as second:
            pass

        assert manager.release_pending() == 2

        assert first.released and second.released
        assert all(timer.cancelled for timer in fake_timers.created)
        assert manager.pending_count == 0

    def test_release_pending_wait_lets_timers_fire(self, fake_timers):
        manager = DownloadManager(timer_factory=fake_timers)
        with manager.open(b"1", "a.csv") as handle:
            pass

        assert manager.release_pending(wait=True) == 1

        timer = fake_timers.created[0]
        assert timer.fired
        assert not timer.cancelled
        assert handle.released

    def test_real_timer_releases_after_delay(self):
        manager = DownloadManager(release_delay_seconds=0.5)
        released = threading.Event()

        with manager.open(b"data", "a.csv") as handle:
            original_release = handle.release

            def tracking_release():
                original_release()
                released.set()

            handle.release = tracking_release

        assert not handle.released
        assert released.wait(timeout=5)
        assert not handle.path.exists()


class TestDeliver:
    """Hand-off to a download mechanism."""

    def test_save_to_directory(self, tmp_path, fake_timers):
        manager = DownloadManager(timer_factory=fake_timers)
        mechanism = SaveToDirectory(str(tmp_path / "nested" / "dl"))

        destination = manager.deliver(b"payload", "out.csv", mechanism)

        assert destination == tmp_path / "nested" / "dl" / "out.csv"
        assert destination.read_bytes() == b"payload"
        assert manager.pending_count == 1

    def test_mechanism_os_error_wrapped(self, fake_timers):
        manager = DownloadManager(timer_factory=fake_timers)

        def refuse(handle):
            raise OSError("read-only file system")

        with pytest.raises(DownloadError):
            manager.deliver(b"payload", "out.csv", refuse)

        assert manager.pending_count == 1

    def test_other_mechanism_errors_propagate(self, fake_timers):
        manager = DownloadManager(timer_factory=fake_timers)

        def broken(handle):
            raise ValueError("bug")

        with pytest.raises(ValueError):
            manager.deliver(b"payload", "out.csv", broken)

    @pytest.mark.parametrize("filename, expected", [
        ("results_fin/tech_20250101-000000.csv", "results_fin_tech_20250101-000000.csv"),
        ("results_a\\b_20250101-000000.csv", "results_a_b_20250101-000000.csv"),
        ("results_../up_20250101-000000.csv", "results_.._up_20250101-000000.csv"),
    ])
    def test_save_to_directory_keeps_separators_out(self, tmp_path, fake_timers, filename, expected):
        manager = DownloadManager(timer_factory=fake_timers)

        destination = manager.deliver(b"payload", filename, SaveToDirectory(str(tmp_path)))

        assert destination == tmp_path / expected
        assert destination.parent == tmp_path
        assert [p.name for p in tmp_path.iterdir()] == [expected]

    def test_safe_filename(self):
        assert safe_filename("plain.csv") == "plain.csv"
        assert safe_filename("a/b\\c.csv") == "a_b_c.csv"
