"""Domain-specific errors for hikctl."""

from __future__ import annotations


class HikctlError(Exception):
    """Base error for hikctl."""


class NoSessionError(HikctlError):
    """Raised when an operation needs a logged-in session and there is none."""

    def __init__(self, message: str = "Not logged in. Call login() first.") -> None:
        super().__init__(message)


class InvalidArgumentError(HikctlError, ValueError):
    """Raised when an argument cannot be passed to the native SDK."""


class UnknownSessionError(HikctlError):
    """Raised when a session id is not present in the registry."""


class NotStartedError(HikctlError):
    """Raised when progress is queried on a download that is not started."""


class DownloadClosedError(HikctlError):
    """Raised when a stopped download is asked to start again."""


class NetworkError(HikctlError):
    """Raised when the device reports a transfer-level network failure."""


class MalformedResponseError(HikctlError):
    """Raised when a device response has an unexpected size or shape."""


class SdkLoadError(HikctlError):
    """Raised when the native SDK library cannot be loaded."""


class SdkInitError(HikctlError):
    """Raised when the native SDK refuses to initialise."""


class ConfigLoadError(HikctlError):
    """Raised when the configuration file cannot be read."""


class ConfigValidationError(HikctlError):
    """Raised when the configuration does not conform to schema or semantics."""


class NativeCallFailed(HikctlError):
    """Base error for a native call the device rejected."""

    operation = "native call"

    def __init__(self, code: int | None) -> None:
        self.code = code
        super().__init__(self._describe())

    def _describe(self) -> str:
        return f"{self.operation} failed: error code {self.code}"


class LoginFailed(NativeCallFailed):
    operation = "Login"


class LogoutFailed(NativeCallFailed):
    operation = "Logout"


class ConfigQueryFailed(NativeCallFailed):
    operation = "Get IP channel config"

    def __init__(self, code: int | None, bytes_returned: int) -> None:
        self.bytes_returned = bytes_returned
        super().__init__(code)

    def _describe(self) -> str:
        return f"{super()._describe()}, bytes returned: {self.bytes_returned}"


class CaptureFailed(NativeCallFailed):
    operation = "Capture JPEG picture"


class CaptureFileMissingError(CaptureFailed):
    """Raised when the SDK reports success but no image file was written."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(None)

    def _describe(self) -> str:
        return f"Image file not found after capture: {self.path}"


class FileQueryFailed(NativeCallFailed):
    operation = "Get file by time"


class PlaybackControlFailed(NativeCallFailed):
    operation = "Playback control"


class ProgressQueryFailed(NativeCallFailed):
    operation = "Get download progress"

    def __init__(self, code: int | None, position: int | None = None) -> None:
        self.position = position
        super().__init__(code)

    def _describe(self) -> str:
        if self.code is None:
            return f"{self.operation} failed: unexpected position {self.position}"
        return super()._describe()


class StopDownloadFailed(PlaybackControlFailed):
    operation = "Stop download"
