from __future__ import annotations

import logging
import threading

import pytest

import netexporter.__main__ as entry
from netexporter.prober import LatencyProber
from netexporter.resolver import AddressResolver

from .conftest import FakePing, FakeReply, FakeSession


class FakeServer:
    def __init__(self) -> None:
        self._shutdown = threading.Event()
        self.closed = False

    def serve_forever(self) -> None:
        if not self._shutdown.wait(5.0):
            raise AssertionError("server was never shut down")

    def shutdown(self) -> None:
        self._shutdown.set()

    def server_close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def _isolated(monkeypatch):
    for key in ("NETEXPORTER_INTERFACE_NAME", "NETEXPORTER_PROBE_FAILURE_POLICY"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("NETEXPORTER_INTERVAL", "0.01")
    monkeypatch.setattr(entry.signal, "signal", lambda *args: None)
    yield
    logging.getLogger("netexporter").setLevel(logging.NOTSET)


def _fake_collaborators(monkeypatch, ping: FakePing) -> FakeServer:
    server = FakeServer()
    monkeypatch.setattr(
        entry,
        "AddressResolver",
        lambda config, metrics: AddressResolver(
            config, metrics, session=FakeSession(*[b"203.0.113.7\r\n"] * 1000)
        ),
    )
    monkeypatch.setattr(entry, "LatencyProber", lambda config: LatencyProber(config, ping_func=ping))
    monkeypatch.setattr(entry, "make_http_server", lambda app: server)
    return server


def test_probe_exhaustion_exits_non_zero(monkeypatch) -> None:
    server = _fake_collaborators(monkeypatch, FakePing())

    with pytest.raises(SystemExit) as excinfo:
        entry.main(["-ifname", "eth0"])
    assert excinfo.value.code == 1
    assert server.closed


def test_retry_policy_keeps_running_until_shutdown(monkeypatch) -> None:
    server = _fake_collaborators(monkeypatch, FakePing(*[FakeReply(False)] * 1000))
    threading.Timer(0.2, server.shutdown).start()

    entry.main(["-ifname", "eth0", "--probe-failure", "retry"])
    assert server.closed


def test_config_error_exits_non_zero(tmp_path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        entry.main(["--config", str(tmp_path / "missing.yml")])
    assert excinfo.value.code == 1


def test_bind_failure_exits_non_zero(monkeypatch) -> None:
    _fake_collaborators(monkeypatch, FakePing())

    def refuse(app):
        raise OSError("address already in use")

    monkeypatch.setattr(entry, "make_http_server", refuse)
    with pytest.raises(SystemExit) as excinfo:
        entry.main([])
    assert excinfo.value.code == 1
