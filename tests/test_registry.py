from __future__ import annotations

import threading

import pytest

from hikctl.core.errors import UnknownSessionError
from hikctl.core.registry import SessionRegistry, session_key
from hikctl.core.session import DeviceSession


def _session(sdk, handle: int = 1) -> DeviceSession:
    sdk.login_result = handle
    return DeviceSession(sdk).login("10.0.0.5", "admin", "pw", 8000)


def test_session_key_joins_host_and_port() -> None:
    assert session_key("10.0.0.5", 8000) == "10.0.0.5_8000"


def test_register_and_acquire(sdk) -> None:
    registry = SessionRegistry()
    session = _session(sdk)
    key = registry.register("10.0.0.5_8000", session)

    assert key in registry
    assert len(registry) == 1
    assert registry.keys() == ["10.0.0.5_8000"]
    with registry.acquire(key) as acquired:
        assert acquired is session


def test_unknown_key_raises(sdk) -> None:
    registry = SessionRegistry()
    with pytest.raises(UnknownSessionError, match="not found"):
        with registry.acquire("1.2.3.4_8000"):
            pass
    with pytest.raises(UnknownSessionError):
        registry.remove("1.2.3.4_8000")


def test_register_replaces_and_logs_out_previous(sdk) -> None:
    registry = SessionRegistry()
    first = _session(sdk, handle=1)
    second = _session(sdk, handle=2)

    registry.register("k", first)
    registry.register("k", second)

    assert ("logout", 1) in sdk.calls
    assert not first.is_logged_in
    with registry.acquire("k") as acquired:
        assert acquired is second


def test_remove_logs_out(sdk) -> None:
    registry = SessionRegistry()
    session = _session(sdk, handle=3)
    registry.register("k", session)

    registry.remove("k")

    assert "k" not in registry
    assert ("logout", 3) in sdk.calls


def test_close_all_logs_out_everything(sdk) -> None:
    registry = SessionRegistry()
    registry.register("a", _session(sdk, handle=1))
    registry.register("b", _session(sdk, handle=2))

    registry.close_all()

    assert len(registry) == 0
    assert ("logout", 1) in sdk.calls
    assert ("logout", 2) in sdk.calls


def test_acquire_serializes_per_session(sdk) -> None:
    registry = SessionRegistry()
    registry.register("k", _session(sdk))
    holding = threading.Event()
    release = threading.Event()
    order: list[str] = []

    def first() -> None:
        with registry.acquire("k"):
            order.append("first-in")
            holding.set()
            release.wait(5)
            order.append("first-out")

    def second() -> None:
        holding.wait(5)
        with registry.acquire("k"):
            order.append("second-in")

    threads = [threading.Thread(target=first), threading.Thread(target=second)]
    for thread in threads:
        thread.start()
    holding.wait(5)
    release.set()
    for thread in threads:
        thread.join(5)

    assert order == ["first-in", "first-out", "second-in"]


def test_distinct_sessions_do_not_block_each_other(sdk) -> None:
    registry = SessionRegistry()
    registry.register("a", _session(sdk, handle=1))
    registry.register("b", _session(sdk, handle=2))

    with registry.acquire("a"):
        with registry.acquire("b") as other:
            assert other.user_id == 2
