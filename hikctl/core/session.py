"""Authenticated device sessions."""

from __future__ import annotations

import ctypes
import logging
import os
from datetime import datetime

from hikctl.core.classify import check_result, native_failure
from hikctl.core.download import CleanupHook, DownloadSession, log_cleanup_error
from hikctl.core.errors import (
    CaptureFailed,
    ConfigQueryFailed,
    FileQueryFailed,
    InvalidArgumentError,
    LoginFailed,
    LogoutFailed,
    MalformedResponseError,
    NoSessionError,
    SdkInitError,
)
from hikctl.core.model import Channel, DeviceDescriptor
from hikctl.core.topology import resolve_channels
from hikctl.native.base import NativeSdk
from hikctl.native.structs import (
    NET_DVR_GET_IPPARACFG_V40,
    DeviceInfoV30,
    DvrTime,
    IPParaCfgV40,
    JpegPara,
    PlayCond,
)

LOGGER = logging.getLogger(__name__)

_IP_CONFIG_GROUP = 0


def _c_string(value: str | os.PathLike[str], *, field: str) -> bytes:
    encoded = os.fsencode(value) if isinstance(value, os.PathLike) else value.encode()
    if b"\x00" in encoded:
        raise InvalidArgumentError(f"{field} must not contain NUL bytes")
    return encoded


def _device_time(value: datetime) -> DvrTime:
    # The device has no notion of time zones; calendar fields go out as given.
    return DvrTime(
        dwYear=value.year,
        dwMonth=value.month,
        dwDay=value.day,
        dwHour=value.hour,
        dwMinute=value.minute,
        dwSecond=value.second,
    )


class DeviceSession:
    """One login on one device.

    A handle is held iff the session is logged in; everything except
    ``login`` raises ``NoSessionError`` otherwise. Use as a context manager to
    guarantee logout; dropping a logged-in instance also logs out, best-effort.
    """

    def __init__(
        self,
        sdk: NativeSdk | None = None,
        *,
        on_cleanup_error: CleanupHook | None = None,
    ) -> None:
        if sdk is None:
            from hikctl.native.hcnetsdk import load_sdk

            sdk = load_sdk()
        self._sdk = sdk
        self._on_cleanup_error = on_cleanup_error or log_cleanup_error
        self._user_id: int | None = None
        self._descriptor: DeviceDescriptor | None = None

    @property
    def sdk(self) -> NativeSdk:
        return self._sdk

    @property
    def is_logged_in(self) -> bool:
        return self._user_id is not None

    @property
    def user_id(self) -> int:
        return self._require_login()

    @property
    def descriptor(self) -> DeviceDescriptor:
        if self._descriptor is None:
            raise NoSessionError()
        return self._descriptor

    def _require_login(self) -> int:
        if self._user_id is None:
            raise NoSessionError()
        return self._user_id

    def login(self, host: str, username: str, password: str, port: int) -> DeviceSession:
        host_b = _c_string(host, field="host")
        username_b = _c_string(username, field="username")
        password_b = _c_string(password, field="password")
        if not 0 <= port <= 0xFFFF:
            raise InvalidArgumentError(f"port must be in 0..65535, got {port}")

        if not self._sdk.init():
            raise SdkInitError("NET_DVR_Init failed")

        if self._user_id is not None:
            self.logout()

        info = DeviceInfoV30()
        user_id = self._sdk.login(host_b, port, username_b, password_b, info)
        if user_id < 0:
            raise native_failure(self._sdk, LoginFailed)

        self._descriptor = DeviceDescriptor.from_native(info)
        self._user_id = user_id
        LOGGER.debug(
            "Logged in to %s:%s as %s (handle %s, serial %s)",
            host,
            port,
            username,
            user_id,
            self._descriptor.serial_number,
        )
        return self

    def logout(self) -> None:
        user_id, self._user_id = self._user_id, None
        self._descriptor = None
        if user_id is None:
            return
        if not self._sdk.logout(user_id):
            self._on_cleanup_error(native_failure(self._sdk, LogoutFailed))
        LOGGER.debug("Logged out handle %s", user_id)

    def get_ip_channel_config(self) -> IPParaCfgV40:
        user_id = self._require_login()
        config = IPParaCfgV40()
        ok, returned = self._sdk.get_config(user_id, NET_DVR_GET_IPPARACFG_V40, _IP_CONFIG_GROUP, config)
        if not ok:
            raise native_failure(self._sdk, ConfigQueryFailed, bytes_returned=returned)
        expected = ctypes.sizeof(config)
        if returned and returned != expected:
            raise MalformedResponseError(
                f"IP channel config returned {returned} bytes, expected {expected}"
            )
        return config

    def get_channels(self) -> list[Channel]:
        """Logic channels followed by IP channels.

        Only the first IP config group is fetched, so devices reporting more
        than 64 IP channels raise ``MalformedResponseError``.
        """
        descriptor = self.descriptor
        return resolve_channels(descriptor, self.get_ip_channel_config())

    def capture_jpeg(self, channel: int, destination: str | os.PathLike[str]) -> None:
        """Have the SDK write a JPEG snapshot of ``channel`` to ``destination``."""
        user_id = self._require_login()
        path = _c_string(destination, field="destination")
        check_result(self._sdk.capture_jpeg(user_id, channel, JpegPara(), path), self._sdk, CaptureFailed)

    def get_file_by_time(
        self,
        destination: str | os.PathLike[str],
        channel: int,
        start: datetime,
        end: datetime,
    ) -> DownloadSession:
        """Open a download of the recording between ``start`` and ``end``.

        Only the calendar fields of ``start``/``end`` are sent, to the second.
        Pass them in the wall-clock convention the device records in; aware
        datetimes are not converted.
        """
        user_id = self._require_login()
        path = _c_string(destination, field="destination")
        if end < start:
            raise InvalidArgumentError("end must not be before start")

        condition = PlayCond(
            dwChannel=channel,
            struStartTime=_device_time(start),
            struStopTime=_device_time(end),
        )
        handle = self._sdk.get_file_by_time(user_id, path, condition)
        if handle < 0:
            raise native_failure(self._sdk, FileQueryFailed)
        LOGGER.debug("Opened download %s for channel %s (%s .. %s)", handle, channel, start, end)
        return DownloadSession(self._sdk, handle, on_cleanup_error=self._on_cleanup_error)

    def __enter__(self) -> DeviceSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.logout()

    def __del__(self) -> None:
        if getattr(self, "_user_id", None) is None:
            return
        self.logout()
