"""Time-ranged recording downloads.

A ``DownloadSession`` wraps one transfer handle returned by
NET_DVR_GetFileByTime_V40 and moves through CREATED -> STARTED -> STOPPED.
The handle is released exactly once, by ``stop()``; ``close()`` (also run by
the context manager and on garbage collection) stops the transfer and waits
for an attached ``ProgressMonitor`` to exit.
"""

from __future__ import annotations

import enum
import logging
import threading
import weakref
from collections.abc import Callable

from hikctl.core.classify import check_result, classify_position, native_failure
from hikctl.core.errors import (
    DownloadClosedError,
    HikctlError,
    NotStartedError,
    PlaybackControlFailed,
    StopDownloadFailed,
)
from hikctl.native.base import NativeSdk
from hikctl.native.structs import NET_DVR_PLAYSTART

LOGGER = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 0.5

CleanupHook = Callable[[HikctlError], None]
ProgressCallback = Callable[[int], None]
FinishHook = Callable[[], None]


def log_cleanup_error(error: HikctlError) -> None:
    LOGGER.warning("Ignoring failure during cleanup: %s", error)


class DownloadState(enum.Enum):
    CREATED = "created"
    STARTED = "started"
    STOPPED = "stopped"


class ProgressMonitor:
    """Background poller for one download.

    Polls ``get_progress`` every ``interval_s`` until the device reports 100,
    a poll raises or it is cancelled. It never stops the download; the owner
    can pass ``on_finish`` to release the transfer once polling has ended.
    """

    def __init__(
        self,
        download: DownloadSession,
        *,
        interval_s: float = DEFAULT_POLL_INTERVAL_S,
        on_progress: ProgressCallback | None = None,
        on_finish: FinishHook | None = None,
    ) -> None:
        # Weak so that dropping the download triggers its teardown.
        self._download = weakref.ref(download)
        self._handle = download.handle
        self._interval_s = interval_s
        self._on_progress = on_progress
        self._on_finish = on_finish
        self._cancel = threading.Event()
        self._done = threading.Event()
        self.progress: int | None = None
        self.error: HikctlError | None = None
        self._thread = threading.Thread(
            target=self._run,
            name=f"hikctl-download-{self._handle}",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        try:
            while not self._cancel.is_set():
                download = self._download()
                if download is None:
                    return
                try:
                    progress = download.get_progress()
                except HikctlError as exc:
                    if self._cancel.is_set():
                        return
                    self.error = exc
                    LOGGER.debug("Download %s polling ended: %s", self._handle, exc)
                    return
                finally:
                    del download
                self.progress = progress
                if self._on_progress is not None:
                    self._on_progress(progress)
                if progress >= 100:
                    LOGGER.debug("Download %s complete", self._handle)
                    return
                self._cancel.wait(self._interval_s)
        finally:
            try:
                if self._on_finish is not None:
                    self._on_finish()
            finally:
                self._done.set()

    @property
    def completed(self) -> bool:
        return self.progress is not None and self.progress >= 100

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def thread(self) -> threading.Thread:
        return self._thread

    def wait(self, timeout: float | None = None) -> bool:
        """Block until polling ended; returns False on timeout."""
        return self._done.wait(timeout)

    def cancel(self) -> None:
        self._cancel.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)


class DownloadSession:
    def __init__(
        self,
        sdk: NativeSdk,
        handle: int,
        *,
        on_cleanup_error: CleanupHook | None = None,
    ) -> None:
        self._sdk = sdk
        self.handle = handle
        self._on_cleanup_error = on_cleanup_error or log_cleanup_error
        # Serialises polling against stop so a poll never hits a released handle.
        self._lock = threading.RLock()
        self._state = DownloadState.CREATED
        self._monitor: ProgressMonitor | None = None

    @property
    def state(self) -> DownloadState:
        return self._state

    @property
    def is_started(self) -> bool:
        return self._state is DownloadState.STARTED

    @property
    def monitor_task(self) -> ProgressMonitor | None:
        return self._monitor

    def start(self) -> None:
        with self._lock:
            if self._state is DownloadState.STARTED:
                return
            if self._state is DownloadState.STOPPED:
                raise DownloadClosedError(f"Download {self.handle} was stopped; request a new one.")
            check_result(self._sdk.playback_control(self.handle, NET_DVR_PLAYSTART), self._sdk, PlaybackControlFailed)
            self._state = DownloadState.STARTED
            LOGGER.debug("Download %s started", self.handle)

    def get_progress(self) -> int:
        with self._lock:
            if self._state is not DownloadState.STARTED:
                raise NotStartedError("Download not started")
            return classify_position(self._sdk, self._sdk.get_download_pos(self.handle))

    def stop(self) -> None:
        with self._lock:
            if self._state is DownloadState.STOPPED:
                return
            self._state = DownloadState.STOPPED
            ok = self._sdk.stop_get_file(self.handle)
            LOGGER.debug("Download %s stopped (ok=%s)", self.handle, ok)
            if not ok:
                raise native_failure(self._sdk, StopDownloadFailed)

    def monitor(
        self,
        *,
        interval_s: float = DEFAULT_POLL_INTERVAL_S,
        on_progress: ProgressCallback | None = None,
        on_finish: FinishHook | None = None,
    ) -> ProgressMonitor:
        """Start polling progress in a background thread.

        ``on_finish`` runs on the polling thread after the last poll and before
        ``ProgressMonitor.wait`` returns.
        """
        if self._monitor is not None:
            raise HikctlError(f"Download {self.handle} already has a progress monitor")
        if not self.is_started:
            raise NotStartedError("Download not started")
        monitor = ProgressMonitor(
            self,
            interval_s=interval_s,
            on_progress=on_progress,
            on_finish=on_finish,
        )
        self._monitor = monitor
        monitor.start()
        return monitor

    def close(self) -> None:
        monitor = self._monitor
        # A poll racing the stop must already see the cancel.
        if monitor is not None:
            monitor.cancel()
        try:
            self.stop()
        except HikctlError as exc:
            self._on_cleanup_error(exc)
        if monitor is not None:
            monitor.join()

    def __enter__(self) -> DownloadSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_state", DownloadState.STOPPED) is DownloadState.STOPPED and getattr(self, "_monitor", None) is None:
            return
        self.close()
