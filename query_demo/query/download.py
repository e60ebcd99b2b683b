"""
Download handles for CSV exports.

Each export writes its payload to a temporary file (the handle), hands the
handle to a download mechanism, and releases the file only after a
configurable delay so the consumer has started reading it first.
"""

import logging
import os
import shutil
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional

from ..errors import DownloadError, create_error_context

logger = logging.getLogger(__name__)


CSV_MEDIA_TYPE = "text/csv;charset=utf-8"


class DownloadHandle:
    """A temporary file holding one download payload."""

    def __init__(self, path: Path, filename: str, media_type: str, size: int):
        self.path = path
        self.filename = filename
        self.media_type = media_type
        self.size = size
        self.released = False

    def release(self) -> None:
        """Delete the backing file. Safe to call more than once."""
        if self.released:
            return
        self.released = True
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        logger.debug("Released download handle for %s", self.filename,
                     extra={"export_filename": self.filename})

    def __repr__(self) -> str:
        state = "released" if self.released else "open"
        return f"DownloadHandle({self.filename!r}, {state})"


def safe_filename(filename: str) -> str:
    """Replace path separators so the name stays a single path component."""
    return filename.replace("/", "_").replace("\\", "_")


class SaveToDirectory:
    """Download mechanism that copies the payload to ``<directory>/<filename>``."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def __call__(self, handle: DownloadHandle) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        destination = self.directory / safe_filename(handle.filename)
        shutil.copyfile(handle.path, destination)
        return destination


class DownloadManager:
    """
    Creates download handles and schedules their deferred release.

    Args:
        release_delay_seconds: How long a handle outlives its hand-off
        timer_factory: Callable with the ``threading.Timer`` signature
    """

    def __init__(
        self,
        release_delay_seconds: float = 1.0,
        timer_factory: Callable[..., Any] = threading.Timer
    ):
        self.release_delay_seconds = release_delay_seconds
        self._timer_factory = timer_factory
        self._pending: Dict[int, tuple] = {}
        self._lock = threading.Lock()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def acquire(self, payload: bytes, filename: str, media_type: str = CSV_MEDIA_TYPE) -> DownloadHandle:
        """
        Write the payload to a fresh temporary file.

        Raises:
            DownloadError: If the host refuses to create the file
        """
        try:
            fd, raw_path = tempfile.mkstemp(prefix="query-demo-", suffix=".download")
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
        except OSError as e:
            raise DownloadError(
                f"Could not create download for {filename}: {e}",
                context=create_error_context("acquire_download", filename=filename),
                original_exception=e
            ) from e

        handle = DownloadHandle(Path(raw_path), filename, media_type, len(payload))
        # Registered unscheduled; release_pending settles it either way
        with self._lock:
            self._pending[id(handle)] = (handle, None)
        return handle

    def schedule_release(self, handle: DownloadHandle) -> None:
        """Release the handle after ``release_delay_seconds``."""
        timer = self._timer_factory(self.release_delay_seconds, self._release, args=(handle,))
        timer.daemon = True
        with self._lock:
            self._pending[id(handle)] = (handle, timer)
        timer.start()

    def _release(self, handle: DownloadHandle) -> None:
        with self._lock:
            self._pending.pop(id(handle), None)
        handle.release()

    def release_pending(self, wait: bool = False) -> int:
        """
        Settle every outstanding handle, scheduled or not.

        Args:
            wait: Block until each timer fires on schedule instead of
                cancelling it and releasing right away

        Returns:
            Number of handles settled
        """
        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()

        for handle, timer in pending:
            if timer is not None:
                if wait:
                    timer.join()
                else:
                    timer.cancel()
            handle.release()
        return len(pending)

    @contextmanager
    def open(self, payload: bytes, filename: str, media_type: str = CSV_MEDIA_TYPE) -> Iterator[DownloadHandle]:
        """
        Acquire a handle for the duration of a hand-off.

        The release is scheduled when the block exits, whether or not the
        hand-off succeeded.
        """
        handle = self.acquire(payload, filename, media_type)
        try:
            yield handle
        finally:
            self.schedule_release(handle)

    def deliver(
        self,
        payload: bytes,
        filename: str,
        mechanism: Callable[[DownloadHandle], Any],
        media_type: str = CSV_MEDIA_TYPE
    ) -> Optional[Any]:
        """
        Hand a payload to a download mechanism.

        Returns:
            Whatever the mechanism returns (for ``SaveToDirectory``, the path)

        Raises:
            DownloadError: If the mechanism fails with an OS error
        """
        with self.open(payload, filename, media_type) as handle:
            try:
                return mechanism(handle)
            except OSError as e:
                raise DownloadError(
                    f"Download of {filename} failed: {e}",
                    context=create_error_context("deliver_download", filename=filename),
                    original_exception=e
                ) from e
