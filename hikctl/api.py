"""Stable public API for building tooling on top of hikctl.

This module is the supported integration surface for third-party callers
(HTTP front-ends, scripts, schedulers). Sessions are addressed by an opaque
session id of the form ``host_port``.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from hikctl.core.download import DownloadSession, DownloadState, ProgressCallback, ProgressMonitor
from hikctl.core.errors import (
    CaptureFailed,
    CaptureFileMissingError,
    ConfigQueryFailed,
    FileQueryFailed,
    HikctlError,
    InvalidArgumentError,
    LoginFailed,
    MalformedResponseError,
    NativeCallFailed,
    NetworkError,
    NoSessionError,
    NotStartedError,
    PlaybackControlFailed,
    ProgressQueryFailed,
    UnknownSessionError,
)
from hikctl.core.model import Channel, DeviceDescriptor, IPChannel, LogicChannel
from hikctl.core.registry import SessionRegistry, session_key
from hikctl.core.session import DeviceSession
from hikctl.core.settings import Settings, load_settings
from hikctl.native.base import NativeSdk

__all__ = [
    "HikctlError",
    "NativeCallFailed",
    "LoginFailed",
    "ConfigQueryFailed",
    "CaptureFailed",
    "CaptureFileMissingError",
    "FileQueryFailed",
    "PlaybackControlFailed",
    "ProgressQueryFailed",
    "NetworkError",
    "NoSessionError",
    "NotStartedError",
    "InvalidArgumentError",
    "MalformedResponseError",
    "UnknownSessionError",
    "Channel",
    "LogicChannel",
    "IPChannel",
    "DeviceDescriptor",
    "DeviceSession",
    "DownloadSession",
    "DownloadState",
    "DownloadJob",
    "Client",
]

TIME_FORMAT = "%Y%m%d_%H%M%S"


@dataclass(frozen=True)
class DownloadJob:
    """A started recording download and the thread watching its progress."""

    download_id: str
    session_id: str
    path: Path
    download: DownloadSession
    monitor: ProgressMonitor

    @property
    def progress(self) -> int | None:
        return self.monitor.progress

    @property
    def done(self) -> bool:
        return self.monitor.done

    def wait(self, timeout: float | None = None) -> bool:
        return self.monitor.wait(timeout)

    def cancel(self) -> None:
        self.download.close()


class Client:
    """Public client for device sessions, capture and recording downloads.

    The native SDK is loaded on first login unless one is injected.
    """

    def __init__(
        self,
        *,
        sdk: NativeSdk | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._sdk = sdk
        self._registry = SessionRegistry()
        self._jobs: dict[str, DownloadJob] = {}
        self._jobs_lock = threading.Lock()

    def _native(self) -> NativeSdk:
        if self._sdk is None:
            from hikctl.native.hcnetsdk import load_sdk

            self._sdk = load_sdk(self.settings.sdk_path)
        return self._sdk

    @property
    def session_ids(self) -> list[str]:
        return self._registry.keys()

    @property
    def jobs(self) -> dict[str, DownloadJob]:
        with self._jobs_lock:
            return dict(self._jobs)

    def login(self, host: str, port: int, username: str, password: str) -> str:
        session = DeviceSession(self._native())
        session.login(host, username, password, port)
        session_id = session_key(host, port)
        # Transfers of a session being replaced go before its logout.
        self._cancel_session_jobs(session_id)
        return self._registry.register(session_id, session)

    def login_profile(self, name: str) -> str:
        profile = self.settings.device(name)
        return self.login(profile.host, profile.port, profile.username, profile.password)

    def logout(self, session_id: str) -> None:
        self._cancel_session_jobs(session_id)
        self._registry.remove(session_id)

    def device_info(self, session_id: str) -> DeviceDescriptor:
        with self._registry.acquire(session_id) as session:
            return session.descriptor

    def list_channels(self, session_id: str) -> list[Channel]:
        with self._registry.acquire(session_id) as session:
            return session.get_channels()

    def capture(self, session_id: str, channel: int, output_dir: Path | None = None) -> Path:
        """Capture a JPEG from ``channel`` into ``output_dir`` and return its path."""
        directory = output_dir or self.settings.output_dir
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"channel_{channel}_{int(time.time())}.jpg"

        with self._registry.acquire(session_id) as session:
            session.capture_jpeg(channel, path)

        if not path.exists():
            raise CaptureFileMissingError(str(path))
        return path

    def download(
        self,
        session_id: str,
        channel: int,
        start: datetime,
        end: datetime,
        *,
        output_dir: Path | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> DownloadJob:
        """Start downloading the recording of ``channel`` between ``start`` and ``end``.

        Returns immediately; the job's monitor polls progress in the background.
        The transfer is stopped and the job dropped from ``jobs`` once polling
        ends, whether the recording completed or failed.
        """
        directory = (output_dir or self.settings.output_dir) / "recordings"
        directory.mkdir(parents=True, exist_ok=True)
        download_id = f"recording_ch{channel}_{start.strftime(TIME_FORMAT)}_{end.strftime(TIME_FORMAT)}.dav"
        path = directory / download_id

        with self._registry.acquire(session_id) as session:
            download = session.get_file_by_time(path, channel, start, end)
            try:
                download.start()
            except HikctlError:
                download.close()
                raise

        # Held until the job is stored so the finish hook always finds it.
        with self._jobs_lock:
            monitor = download.monitor(
                interval_s=self.settings.poll_interval_s,
                on_progress=on_progress,
                on_finish=lambda: self._release(download_id, download),
            )
            job = DownloadJob(
                download_id=download_id,
                session_id=session_id,
                path=path,
                download=download,
                monitor=monitor,
            )
            previous = self._jobs.get(download_id)
            self._jobs[download_id] = job
        if previous is not None:
            previous.cancel()
        return job

    def _release(self, download_id: str, download: DownloadSession) -> None:
        with self._jobs_lock:
            job = self._jobs.get(download_id)
            if job is not None and job.download is download:
                del self._jobs[download_id]
        download.close()

    def _cancel_session_jobs(self, session_id: str) -> None:
        with self._jobs_lock:
            jobs = [job for job in self._jobs.values() if job.session_id == session_id]
            for job in jobs:
                del self._jobs[job.download_id]
        for job in jobs:
            job.cancel()

    def cancel_download(self, download_id: str) -> None:
        with self._jobs_lock:
            job = self._jobs.pop(download_id, None)
        if job is None:
            raise HikctlError(f"No download '{download_id}'")
        job.cancel()

    def close(self) -> None:
        with self._jobs_lock:
            jobs = list(self._jobs.values())
            self._jobs.clear()
        for job in jobs:
            job.cancel()
        self._registry.close_all()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
