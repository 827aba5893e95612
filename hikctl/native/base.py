"""Native SDK interface."""

from __future__ import annotations

from typing import Protocol

from hikctl.native.structs import DeviceInfoV30, IPParaCfgV40, JpegPara, PlayCond


class NativeSdk(Protocol):
    """Blocking, handle-addressed device capability.

    Calls report failure through their return value only; the matching error
    code must be fetched with ``get_last_error`` right after the failing call.
    """

    def init(self) -> bool:
        """Initialise the SDK once per process."""

    def login(
        self,
        host: bytes,
        port: int,
        username: bytes,
        password: bytes,
        device_info: DeviceInfoV30,
    ) -> int:
        """Return a session handle, negative on failure."""

    def logout(self, user_id: int) -> bool: ...

    def get_config(
        self,
        user_id: int,
        command: int,
        group: int,
        buffer: IPParaCfgV40,
    ) -> tuple[bool, int]:
        """Fill ``buffer`` and return (success, bytes returned)."""

    def capture_jpeg(self, user_id: int, channel: int, params: JpegPara, path: bytes) -> bool: ...

    def get_file_by_time(self, user_id: int, path: bytes, condition: PlayCond) -> int:
        """Return a transfer handle, negative on failure."""

    def playback_control(self, handle: int, command: int) -> bool: ...

    def get_download_pos(self, handle: int) -> int: ...

    def stop_get_file(self, handle: int) -> bool: ...

    def get_last_error(self) -> int: ...
