"""Mapping of native result codes to hikctl errors."""

from __future__ import annotations

from typing import TypeVar

from hikctl.core.errors import NativeCallFailed, NetworkError, ProgressQueryFailed
from hikctl.native.base import NativeSdk
from hikctl.native.structs import PROGRESS_FAILED, PROGRESS_NETWORK_ERROR

E = TypeVar("E", bound=NativeCallFailed)


def native_failure(sdk: NativeSdk, error_cls: type[E], **fields: int) -> E:
    """Build ``error_cls`` from the SDK's last error code.

    Must be called right after the failing native call: the last-error slot
    only reflects the most recent failure on the calling thread.
    """
    return error_cls(code=sdk.get_last_error(), **fields)


def check_result(ok: bool, sdk: NativeSdk, error_cls: type[NativeCallFailed], **fields: int) -> None:
    if not ok:
        raise native_failure(sdk, error_cls, **fields)


def classify_position(sdk: NativeSdk, position: int) -> int:
    if 0 <= position <= 100:
        return position
    if position == PROGRESS_FAILED:
        raise native_failure(sdk, ProgressQueryFailed)
    if position == PROGRESS_NETWORK_ERROR:
        raise NetworkError("Download failed: network error reported by device")
    raise ProgressQueryFailed(code=None, position=position)
