"""ctypes mirrors of the HCNetSDK structures used by hikctl.

Field names follow the vendor header so the layouts can be checked against
``HCNetSDK.h`` line by line. Byte buffers are declared as ``c_ubyte`` arrays
so the raw contents (including NUL padding) stay readable.
"""

from __future__ import annotations

import ctypes
from ctypes import c_ubyte, c_uint16, c_uint32

SERIALNO_LEN = 48
NAME_LEN = 32
PASSWD_LEN = 16
MAX_DOMAIN_NAME = 64
MAX_CHANNUM_V30 = 64
MAX_IP_DEVICE_V40 = 64
STREAM_ID_LEN = 32
STREAM_UNION_LEN = 492
SDK_PATH_LEN = 256

NET_DVR_GET_IPPARACFG_V40 = 1062
NET_DVR_PLAYSTART = 1
NET_SDK_INIT_CFG_SDK_PATH = 2

# byGetStreamType value for a stream pulled directly from the IP device
STREAM_TYPE_DIRECT = 0

PROGRESS_FAILED = -1
PROGRESS_NETWORK_ERROR = 200


class DeviceInfoV30(ctypes.Structure):
    """NET_DVR_DEVICEINFO_V30, filled in by NET_DVR_Login_V30."""

    _fields_ = [
        ("sSerialNumber", c_ubyte * SERIALNO_LEN),
        ("byAlarmInPortNum", c_ubyte),
        ("byAlarmOutPortNum", c_ubyte),
        ("byDiskNum", c_ubyte),
        ("byDVRType", c_ubyte),
        ("byChanNum", c_ubyte),
        ("byStartChan", c_ubyte),
        ("byAudioChanNum", c_ubyte),
        ("byIPChanNum", c_ubyte),
        ("byZeroChanNum", c_ubyte),
        ("byMainProto", c_ubyte),
        ("bySubProto", c_ubyte),
        ("bySupport", c_ubyte),
        ("bySupport1", c_ubyte),
        ("bySupport2", c_ubyte),
        ("wDevType", c_uint16),
        ("bySupport3", c_ubyte),
        ("byMultiStreamProto", c_ubyte),
        ("byStartDChan", c_ubyte),
        ("byStartDTalkChan", c_ubyte),
        ("byHighDChanNum", c_ubyte),
        ("bySupport4", c_ubyte),
        ("byLanguageType", c_ubyte),
        ("byVoiceInChanNum", c_ubyte),
        ("byStartVoiceInChanNo", c_ubyte),
        ("bySupport5", c_ubyte),
        ("bySupport6", c_ubyte),
        ("byMirrorChanNum", c_ubyte),
        ("wStartMirrorChanNo", c_uint16),
        ("bySupport7", c_ubyte),
        ("byRes2", c_ubyte),
    ]


class IPAddr(ctypes.Structure):
    _fields_ = [
        ("sIpV4", c_ubyte * 16),
        ("byIPv6", c_ubyte * 128),
    ]


class IPDevInfoV31(ctypes.Structure):
    _fields_ = [
        ("byEnable", c_ubyte),
        ("byProType", c_ubyte),
        ("byEnableQuickAdd", c_ubyte),
        ("byCameraType", c_ubyte),
        ("sUserName", c_ubyte * NAME_LEN),
        ("sPassword", c_ubyte * PASSWD_LEN),
        ("byDomain", c_ubyte * MAX_DOMAIN_NAME),
        ("struIP", IPAddr),
        ("wDVRPort", c_uint16),
        ("szDeviceID", c_ubyte * 32),
        ("byEnableTiming", c_ubyte),
        ("byCertificateValidation", c_ubyte),
        ("byRes2", c_ubyte * 32),
    ]


class IPChanInfo(ctypes.Structure):
    _fields_ = [
        ("byEnable", c_ubyte),
        ("byIPID", c_ubyte),
        ("byChannel", c_ubyte),
        ("byIPIDHigh", c_ubyte),
        ("byTransProtocol", c_ubyte),
        ("byGetStream", c_ubyte),
        ("byres", c_ubyte * 30),
    ]


class GetStreamUnion(ctypes.Union):
    """NET_DVR_GET_STREAM_UNION; the active member depends on byGetStreamType."""

    _fields_ = [
        ("struChanInfo", IPChanInfo),
        ("byUnion", c_ubyte * STREAM_UNION_LEN),
    ]


class StreamMode(ctypes.Structure):
    _fields_ = [
        ("byGetStreamType", c_ubyte),
        ("byRes", c_ubyte * 3),
        ("uGetStream", GetStreamUnion),
    ]


class IPParaCfgV40(ctypes.Structure):
    """NET_DVR_IPPARACFG_V40, returned by NET_DVR_GET_IPPARACFG_V40."""

    _fields_ = [
        ("dwSize", c_uint32),
        ("dwGroupNum", c_uint32),
        ("dwAChanNum", c_uint32),
        ("dwDChanNum", c_uint32),
        ("dwStartDChan", c_uint32),
        ("byAnalogChanEnable", c_ubyte * MAX_CHANNUM_V30),
        ("struIPDevInfo", IPDevInfoV31 * MAX_IP_DEVICE_V40),
        ("struStreamMode", StreamMode * MAX_CHANNUM_V30),
        ("byRes2", c_ubyte * 20),
    ]


class DvrTime(ctypes.Structure):
    _fields_ = [
        ("dwYear", c_uint32),
        ("dwMonth", c_uint32),
        ("dwDay", c_uint32),
        ("dwHour", c_uint32),
        ("dwMinute", c_uint32),
        ("dwSecond", c_uint32),
    ]


class PlayCond(ctypes.Structure):
    _fields_ = [
        ("dwChannel", c_uint32),
        ("struStartTime", DvrTime),
        ("struStopTime", DvrTime),
        ("byDrawFrame", c_ubyte),
        ("byStreamType", c_ubyte),
        ("byStreamID", c_ubyte * STREAM_ID_LEN),
        ("byCourseFile", c_ubyte),
        ("byDownload", c_ubyte),
        ("byOptimalStreamType", c_ubyte),
        ("byVODFileType", c_ubyte),
        ("byRes2", c_ubyte * 26),
    ]


class JpegPara(ctypes.Structure):
    _fields_ = [
        ("wPicSize", c_uint16),
        ("wPicQuality", c_uint16),
    ]


class LocalSdkPath(ctypes.Structure):
    _fields_ = [
        ("sPath", ctypes.c_char * SDK_PATH_LEN),
        ("byRes", c_ubyte * 128),
    ]


def decode_fixed(buffer: ctypes.Array) -> str:
    """Decode a fixed-width byte field, dropping the trailing NUL padding.

    Firmware leaves unused slots filled with arbitrary bytes, so invalid UTF-8
    is replaced rather than rejected.
    """
    return bytes(buffer).decode("utf-8", errors="replace").rstrip("\x00")
