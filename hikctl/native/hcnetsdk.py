"""ctypes binding of the vendor HCNetSDK shared library."""

from __future__ import annotations

import ctypes
import logging
import os
import sys
import threading
from ctypes import POINTER, byref, c_char_p, c_int32, c_uint16, c_uint32, c_void_p, sizeof
from pathlib import Path

from hikctl.core.errors import SdkLoadError
from hikctl.native.structs import (
    NET_SDK_INIT_CFG_SDK_PATH,
    SDK_PATH_LEN,
    DeviceInfoV30,
    IPParaCfgV40,
    JpegPara,
    LocalSdkPath,
    PlayCond,
)

LOGGER = logging.getLogger(__name__)

SDK_PATH_ENV = "HIK_SDK_PATH"

_SHARED_LOCK = threading.Lock()
_SHARED: dict[str | None, "HCNetSDK"] = {}


def _library_name() -> str:
    if sys.platform == "win32":
        return "HCNetSDK.dll"
    return "libhcnetsdk.so"


def _open_library(sdk_dir: Path | None) -> ctypes.CDLL:
    name = _library_name()
    target = str(sdk_dir / name) if sdk_dir else name
    try:
        if sys.platform == "win32":
            if sdk_dir:
                os.add_dll_directory(str(sdk_dir))
            return ctypes.WinDLL(target)
        return ctypes.CDLL(target)
    except OSError as exc:
        raise SdkLoadError(
            f"Could not load {name} from {sdk_dir or 'the system library path'}: {exc}. "
            f"Set {SDK_PATH_ENV} to the SDK library directory."
        ) from exc


def _declare(lib: ctypes.CDLL) -> None:
    lib.NET_DVR_Init.argtypes = []
    lib.NET_DVR_Init.restype = c_int32
    lib.NET_DVR_GetLastError.argtypes = []
    lib.NET_DVR_GetLastError.restype = c_uint32
    lib.NET_DVR_Login_V30.argtypes = [c_char_p, c_uint16, c_char_p, c_char_p, POINTER(DeviceInfoV30)]
    lib.NET_DVR_Login_V30.restype = c_int32
    lib.NET_DVR_Logout_V30.argtypes = [c_int32]
    lib.NET_DVR_Logout_V30.restype = c_int32
    lib.NET_DVR_GetDVRConfig.argtypes = [c_int32, c_uint32, c_int32, c_void_p, c_uint32, POINTER(c_uint32)]
    lib.NET_DVR_GetDVRConfig.restype = c_int32
    lib.NET_DVR_CaptureJPEGPicture.argtypes = [c_int32, c_int32, POINTER(JpegPara), c_char_p]
    lib.NET_DVR_CaptureJPEGPicture.restype = c_int32
    lib.NET_DVR_GetFileByTime_V40.argtypes = [c_int32, c_char_p, POINTER(PlayCond)]
    lib.NET_DVR_GetFileByTime_V40.restype = c_int32
    lib.NET_DVR_PlayBackControl_V40.argtypes = [
        c_int32,
        c_uint32,
        c_void_p,
        c_uint32,
        c_void_p,
        POINTER(c_uint32),
    ]
    lib.NET_DVR_PlayBackControl_V40.restype = c_int32
    lib.NET_DVR_GetDownloadPos.argtypes = [c_int32]
    lib.NET_DVR_GetDownloadPos.restype = c_int32
    lib.NET_DVR_StopGetFile.argtypes = [c_int32]
    lib.NET_DVR_StopGetFile.restype = c_int32


class HCNetSDK:
    """NativeSdk implementation over HCNetSDK.dll / libhcnetsdk.so."""

    def __init__(self, sdk_dir: str | Path | None = None) -> None:
        if sdk_dir is None:
            sdk_dir = os.environ.get(SDK_PATH_ENV) or None
        self.sdk_dir = Path(sdk_dir) if sdk_dir else None
        self._lib = _open_library(self.sdk_dir)
        _declare(self._lib)
        self._init_lock = threading.Lock()
        self._init_result: bool | None = None

    def init(self) -> bool:
        # The SDK does not support re-initialisation; the first outcome sticks.
        with self._init_lock:
            if self._init_result is None:
                self._configure_component_path()
                self._init_result = self._lib.NET_DVR_Init() == 1
                LOGGER.debug("NET_DVR_Init -> %s", self._init_result)
            return self._init_result

    def _configure_component_path(self) -> None:
        if self.sdk_dir is None or not hasattr(self._lib, "NET_DVR_SetSDKInitCfg"):
            return
        cfg = LocalSdkPath()
        cfg.sPath = str(self.sdk_dir).encode()[: SDK_PATH_LEN - 1]
        self._lib.NET_DVR_SetSDKInitCfg.argtypes = [c_int32, c_void_p]
        self._lib.NET_DVR_SetSDKInitCfg.restype = c_int32
        if self._lib.NET_DVR_SetSDKInitCfg(NET_SDK_INIT_CFG_SDK_PATH, byref(cfg)) != 1:
            LOGGER.warning("NET_DVR_SetSDKInitCfg rejected component path %s", self.sdk_dir)

    def login(
        self,
        host: bytes,
        port: int,
        username: bytes,
        password: bytes,
        device_info: DeviceInfoV30,
    ) -> int:
        return self._lib.NET_DVR_Login_V30(host, port, username, password, byref(device_info))

    def logout(self, user_id: int) -> bool:
        return self._lib.NET_DVR_Logout_V30(user_id) == 1

    def get_config(
        self,
        user_id: int,
        command: int,
        group: int,
        buffer: IPParaCfgV40,
    ) -> tuple[bool, int]:
        returned = c_uint32(0)
        ok = self._lib.NET_DVR_GetDVRConfig(
            user_id,
            command,
            group,
            byref(buffer),
            sizeof(buffer),
            byref(returned),
        )
        return ok == 1, returned.value

    def capture_jpeg(self, user_id: int, channel: int, params: JpegPara, path: bytes) -> bool:
        return self._lib.NET_DVR_CaptureJPEGPicture(user_id, channel, byref(params), path) == 1

    def get_file_by_time(self, user_id: int, path: bytes, condition: PlayCond) -> int:
        return self._lib.NET_DVR_GetFileByTime_V40(user_id, path, byref(condition))

    def playback_control(self, handle: int, command: int) -> bool:
        return self._lib.NET_DVR_PlayBackControl_V40(handle, command, None, 0, None, None) == 1

    def get_download_pos(self, handle: int) -> int:
        return self._lib.NET_DVR_GetDownloadPos(handle)

    def stop_get_file(self, handle: int) -> bool:
        return self._lib.NET_DVR_StopGetFile(handle) == 1

    def get_last_error(self) -> int:
        return int(self._lib.NET_DVR_GetLastError())


def load_sdk(sdk_dir: str | Path | None = None) -> HCNetSDK:
    """Return the process-wide binding for ``sdk_dir``, loading it on first use."""
    key = str(sdk_dir) if sdk_dir is not None else None
    with _SHARED_LOCK:
        sdk = _SHARED.get(key)
        if sdk is None:
            sdk = HCNetSDK(sdk_dir)
            _SHARED[key] = sdk
        return sdk
