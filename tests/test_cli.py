from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

from typer.testing import CliRunner

from hikctl import cli
from hikctl.core.errors import LoginFailed, NetworkError
from hikctl.core.model import DeviceDescriptor, DeviceProfile, IPChannel, LogicChannel
from hikctl.core.settings import Settings


class FakeJob:
    def __init__(self, path: Path, error=None) -> None:
        self.download_id = path.name
        self.path = path
        self.cancelled = False
        self.monitor = SimpleNamespace(error=error)
        self.download = SimpleNamespace(close=lambda: None)

    def wait(self, timeout=None) -> bool:
        return True

    def cancel(self) -> None:
        self.cancelled = True


class FakeClient:
    instances: list[FakeClient] = []
    login_error: Exception | None = None
    download_error: Exception | None = None

    def __init__(self) -> None:
        self.settings = Settings(
            devices={
                "lobby": DeviceProfile(name="lobby", host="192.168.1.64", port=8000, username="admin", password="x"),
            },
            warnings=("HIK_SDK_PATH overrides sdk.library_path",),
        )
        self.logins: list[tuple] = []
        self.downloads: list[tuple] = []
        self.closed = False
        FakeClient.instances.append(self)

    def __enter__(self) -> FakeClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.closed = True

    def login(self, host, port, username, password) -> str:
        if self.login_error is not None:
            raise self.login_error
        self.logins.append((host, port, username, password))
        return f"{host}_{port}"

    def login_profile(self, name) -> str:
        profile = self.settings.device(name)
        return self.login(profile.host, profile.port, profile.username, profile.password)

    def device_info(self, session_id) -> DeviceDescriptor:
        return DeviceDescriptor(
            serial_number="DS-7608NI0120160101CCWR",
            analog_channel_count=4,
            start_analog_channel=1,
            ip_channel_count_low=8,
            ip_channel_count_high=0,
            start_digital_channel=33,
            disk_count=2,
        )

    def list_channels(self, session_id):
        return [
            LogicChannel(index=0, number=1, enabled=True),
            IPChannel(index=0, number=33, enabled=True, ipv4_address="192.168.1.100"),
            IPChannel(index=1, number=34),
        ]

    def capture(self, session_id, channel, output_dir=None) -> Path:
        return Path(output_dir or ".") / f"channel_{channel}_1700000000.jpg"

    def download(self, session_id, channel, start, end, *, output_dir=None, on_progress=None) -> FakeJob:
        self.downloads.append((channel, start, end))
        on_progress(100)
        return FakeJob(Path("recordings") / "recording_ch1.dav", error=self.download_error)


runner = CliRunner()


def _patch(monkeypatch) -> None:
    FakeClient.instances = []
    FakeClient.login_error = None
    FakeClient.download_error = None
    monkeypatch.setattr(cli, "Client", FakeClient)


def test_devices_command(monkeypatch):
    _patch(monkeypatch)
    result = runner.invoke(cli.app, ["devices"])
    assert result.exit_code == 0
    assert "lobby: admin@192.168.1.64:8000" in result.output
    assert "Warning: HIK_SDK_PATH overrides" in result.output


def test_info_command_with_host(monkeypatch):
    _patch(monkeypatch)
    result = runner.invoke(cli.app, ["info", "--host", "10.0.0.5", "-p", "pw"])
    assert result.exit_code == 0
    assert "Session: 10.0.0.5_8000" in result.output
    assert "Serial: DS-7608NI0120160101CCWR" in result.output
    assert "IP channels: 8 (start 33)" in result.output
    assert FakeClient.instances[0].logins == [("10.0.0.5", 8000, "admin", "pw")]
    assert FakeClient.instances[0].closed


def test_info_requires_target(monkeypatch):
    _patch(monkeypatch)
    result = runner.invoke(cli.app, ["info"])
    assert result.exit_code == 1
    assert "Pass --device NAME or --host ADDRESS" in result.output


def test_channels_command_with_profile(monkeypatch):
    _patch(monkeypatch)
    result = runner.invoke(cli.app, ["channels", "--device", "lobby"])
    assert result.exit_code == 0
    lines = [line for line in result.output.splitlines() if not line.startswith("Warning")]
    assert lines[0].split() == ["logic", "1", "enabled"]
    assert lines[1].split() == ["ip", "33", "enabled", "192.168.1.100"]
    assert lines[2].split() == ["ip", "34", "disabled", "-"]


def test_unknown_profile(monkeypatch):
    _patch(monkeypatch)
    result = runner.invoke(cli.app, ["channels", "--device", "garage"])
    assert result.exit_code == 1
    assert "Unknown device 'garage'" in result.output


def test_login_failure_reports_code(monkeypatch):
    _patch(monkeypatch)
    FakeClient.login_error = LoginFailed(1)
    result = runner.invoke(cli.app, ["capture", "1", "--host", "10.0.0.5"])
    assert result.exit_code == 1
    assert "Error: Login failed: error code 1" in result.output


def test_capture_command(monkeypatch, tmp_path):
    _patch(monkeypatch)
    result = runner.invoke(cli.app, ["capture", "3", "--host", "10.0.0.5", "--out", str(tmp_path)])
    assert result.exit_code == 0
    assert f"Saved {tmp_path / 'channel_3_1700000000.jpg'}" in result.output


def test_download_command(monkeypatch):
    _patch(monkeypatch)
    result = runner.invoke(
        cli.app,
        ["download", "1", "2024-01-15 10:00:00", "2024-01-15 11:00:00", "--host", "10.0.0.5"],
    )
    assert result.exit_code == 0
    assert "progress 100%" in result.output
    assert "Downloading recording_ch1.dav" in result.output
    assert "Saved recordings" in result.output
    channel, start, end = FakeClient.instances[0].downloads[0]
    assert channel == 1
    assert (start.hour, end.hour) == (10, 11)


def test_download_rejects_bad_time(monkeypatch):
    _patch(monkeypatch)
    result = runner.invoke(cli.app, ["download", "1", "yesterday", "2024-01-15 11:00:00", "--host", "h"])
    assert result.exit_code == 1
    assert "Invalid start_time format" in result.output
    assert FakeClient.instances == []


def test_download_reports_monitor_error(monkeypatch):
    _patch(monkeypatch)
    FakeClient.download_error = NetworkError("Network error during download")
    result = runner.invoke(
        cli.app,
        ["download", "1", "2024-01-15 10:00:00", "2024-01-15 11:00:00", "--host", "10.0.0.5"],
    )
    assert result.exit_code == 1
    assert "Error: Network error during download" in result.output
