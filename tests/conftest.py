from __future__ import annotations

import ctypes
from pathlib import Path

import pytest

from hikctl.core.session import DeviceSession
from hikctl.native.structs import DeviceInfoV30, IPParaCfgV40, JpegPara, PlayCond


def put_bytes(field: ctypes.Array, data: bytes) -> None:
    for i, value in enumerate(data):
        field[i] = value


class FakeSdk:
    """In-memory NativeSdk that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.init_ok = True
        self.login_result = 1
        self.device_info = {
            "byChanNum": 4,
            "byStartChan": 1,
            "byIPChanNum": 8,
            "byHighDChanNum": 0,
            "byStartDChan": 33,
        }
        self.serial = b"DS-7608NI0120160101CCWR"
        self.logout_ok = True
        self.config_ok = True
        self.config_returned: int | None = None
        self.analog_enabled: list[int] = [1, 1, 0, 1]
        self.ip_devices: dict[int, dict] = {}
        self.stream_modes: dict[int, tuple[int, int]] = {}
        self.capture_ok = True
        self.capture_writes_file = True
        self.file_handle = 7
        self.playback_ok = True
        self.positions: list[int] = [100]
        self.stop_ok = True
        self.last_error = 0
        self.last_error_calls = 0
        self.conditions: list[PlayCond] = []

    def init(self) -> bool:
        self.calls.append(("init",))
        return self.init_ok

    def login(self, host: bytes, port: int, username: bytes, password: bytes, device_info: DeviceInfoV30) -> int:
        self.calls.append(("login", host, port, username, password))
        if self.login_result >= 0:
            for name, value in self.device_info.items():
                setattr(device_info, name, value)
            put_bytes(device_info.sSerialNumber, self.serial)
        return self.login_result

    def logout(self, user_id: int) -> bool:
        self.calls.append(("logout", user_id))
        return self.logout_ok

    def get_config(self, user_id: int, command: int, group: int, buffer: IPParaCfgV40) -> tuple[bool, int]:
        self.calls.append(("get_config", user_id, command, group))
        if not self.config_ok:
            return False, self.config_returned or 0
        for i, enabled in enumerate(self.analog_enabled):
            buffer.byAnalogChanEnable[i] = enabled
        for i, dev in self.ip_devices.items():
            buffer.struIPDevInfo[i].byEnable = dev.get("enable", 0)
            put_bytes(buffer.struIPDevInfo[i].struIP.sIpV4, dev.get("ipv4", b""))
            put_bytes(buffer.struIPDevInfo[i].struIP.byIPv6, dev.get("ipv6", b""))
        for i, (stream_type, payload) in self.stream_modes.items():
            buffer.struStreamMode[i].byGetStreamType = stream_type
            buffer.struStreamMode[i].uGetStream.byUnion[2] = payload
        returned = self.config_returned if self.config_returned is not None else ctypes.sizeof(buffer)
        return True, returned

    def capture_jpeg(self, user_id: int, channel: int, params: JpegPara, path: bytes) -> bool:
        self.calls.append(("capture_jpeg", user_id, channel, path))
        if self.capture_ok and self.capture_writes_file:
            Path(path.decode()).write_bytes(b"\xff\xd8\xff\xd9")
        return self.capture_ok

    def get_file_by_time(self, user_id: int, path: bytes, condition: PlayCond) -> int:
        self.calls.append(("get_file_by_time", user_id, path, condition.dwChannel))
        self.conditions.append(condition)
        return self.file_handle

    def playback_control(self, handle: int, command: int) -> bool:
        self.calls.append(("playback_control", handle, command))
        return self.playback_ok

    def get_download_pos(self, handle: int) -> int:
        self.calls.append(("get_download_pos", handle))
        if len(self.positions) > 1:
            return self.positions.pop(0)
        return self.positions[0]

    def stop_get_file(self, handle: int) -> bool:
        self.calls.append(("stop_get_file", handle))
        return self.stop_ok

    def get_last_error(self) -> int:
        self.calls.append(("get_last_error",))
        self.last_error_calls += 1
        return self.last_error

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def sdk() -> FakeSdk:
    return FakeSdk()


@pytest.fixture
def session(sdk: FakeSdk) -> DeviceSession:
    return DeviceSession(sdk).login("192.168.1.64", "admin", "secret", 8000)
