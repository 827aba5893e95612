"""Core data models shared by the session layer, API and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

from hikctl.native.structs import DeviceInfoV30, decode_fixed


@dataclass(frozen=True)
class DeviceDescriptor:
    """Device metadata captured at login."""

    serial_number: str
    analog_channel_count: int
    start_analog_channel: int
    ip_channel_count_low: int
    ip_channel_count_high: int
    start_digital_channel: int
    alarm_in_count: int = 0
    alarm_out_count: int = 0
    disk_count: int = 0
    device_type: int = 0

    @property
    def ip_channel_count(self) -> int:
        # The IP channel count is split across a low and a high byte.
        return self.ip_channel_count_low + self.ip_channel_count_high * 256

    @classmethod
    def from_native(cls, info: DeviceInfoV30) -> DeviceDescriptor:
        return cls(
            serial_number=decode_fixed(info.sSerialNumber),
            analog_channel_count=info.byChanNum,
            start_analog_channel=info.byStartChan,
            ip_channel_count_low=info.byIPChanNum,
            ip_channel_count_high=info.byHighDChanNum,
            start_digital_channel=info.byStartDChan,
            alarm_in_count=info.byAlarmInPortNum,
            alarm_out_count=info.byAlarmOutPortNum,
            disk_count=info.byDiskNum,
            device_type=info.wDevType,
        )


@dataclass(frozen=True)
class LogicChannel:
    kind: ClassVar[str] = "logic"

    index: int
    number: int
    enabled: bool = False


@dataclass(frozen=True)
class IPChannel:
    kind: ClassVar[str] = "ip"

    index: int
    number: int
    enabled: bool = False
    ipv4_address: str = ""
    ipv6_address: str = ""
    stream_type: int | None = None
    stream_channel: int | None = None


Channel = Union[LogicChannel, IPChannel]


@dataclass(frozen=True)
class DeviceProfile:
    name: str
    host: str
    port: int
    username: str
    password: str
