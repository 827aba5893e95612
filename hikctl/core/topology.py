"""Channel topology resolution.

Joins the descriptor captured at login with a freshly fetched
NET_DVR_IPPARACFG_V40 block. Array position is the join key: logic channel
``i`` reads ``byAnalogChanEnable[i]``, IP channel ``i`` reads
``struIPDevInfo[i]`` and ``struStreamMode[i]``.
"""

from __future__ import annotations

from hikctl.core.errors import MalformedResponseError
from hikctl.core.model import Channel, DeviceDescriptor, IPChannel, LogicChannel
from hikctl.native.structs import STREAM_TYPE_DIRECT, IPParaCfgV40, StreamMode, decode_fixed

__all__ = ["decode_fixed", "resolve_channels"]


def _check_capacity(count: int, capacity: int, what: str) -> None:
    if count > capacity:
        raise MalformedResponseError(
            f"Device reports {count} {what} channels but the IP config block holds {capacity}"
        )


def _stream_channel(mode: StreamMode) -> int | None:
    # Only the member selected by byGetStreamType is valid in the union.
    if mode.byGetStreamType == STREAM_TYPE_DIRECT:
        return mode.uGetStream.struChanInfo.byChannel
    return None


def _logic_channels(descriptor: DeviceDescriptor, config: IPParaCfgV40) -> list[LogicChannel]:
    count = descriptor.analog_channel_count
    _check_capacity(count, len(config.byAnalogChanEnable), "analog")
    return [
        LogicChannel(
            index=i,
            number=descriptor.start_analog_channel + i,
            enabled=config.byAnalogChanEnable[i] == 1,
        )
        for i in range(count)
    ]


def _ip_channels(descriptor: DeviceDescriptor, config: IPParaCfgV40) -> list[IPChannel]:
    count = descriptor.ip_channel_count
    _check_capacity(count, min(len(config.struIPDevInfo), len(config.struStreamMode)), "IP")

    channels: list[IPChannel] = []
    for i in range(count):
        dev = config.struIPDevInfo[i]
        mode = config.struStreamMode[i]
        channels.append(
            IPChannel(
                index=i,
                number=descriptor.start_digital_channel + i,
                enabled=dev.byEnable == 1,
                ipv4_address=decode_fixed(dev.struIP.sIpV4),
                ipv6_address=decode_fixed(dev.struIP.byIPv6),
                stream_type=mode.byGetStreamType,
                stream_channel=_stream_channel(mode),
            )
        )
    return channels


def resolve_channels(descriptor: DeviceDescriptor, config: IPParaCfgV40) -> list[Channel]:
    channels: list[Channel] = []
    channels.extend(_logic_channels(descriptor, config))
    channels.extend(_ip_channels(descriptor, config))
    return channels
