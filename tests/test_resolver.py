from __future__ import annotations

import pytest
import requests
from prometheus_client import generate_latest

from netexporter.config import ExporterConfig
from netexporter.errors import NetworkError
from netexporter.resolver import AddressResolver, SourceAddressAdapter, build_session

from .conftest import FakeSession, make_response


def test_resolve_trims_line_endings_and_records_address(config, metrics) -> None:
    resolver = AddressResolver(config, metrics, session=FakeSession(b"203.0.113.7\r\n"))

    assert resolver.resolve() == "203.0.113.7"
    assert metrics.registry.get_sample_value(
        "network_address_entries",
        {"interface": "eth0", "ip_address": "203.0.113.7"},
    ) == 1.0


def test_resolve_uses_configured_url_and_timeout(metrics) -> None:
    config = ExporterConfig(echo_url="http://echo.example/ip", http_timeout=2.5)
    session = FakeSession(b"198.51.100.4\n")
    AddressResolver(config, metrics, session=session).resolve()
    assert session.calls == [("http://echo.example/ip", 2.5)]


@pytest.mark.parametrize(
    "outcome",
    [
        requests.ConnectionError("connection refused"),
        requests.Timeout("timed out"),
        requests.exceptions.ChunkedEncodingError("body cut short"),
        make_response(b"bad gateway", status=502),
        b"\r\n",
    ],
)
def test_resolve_failures_raise_network_error(config, metrics, outcome) -> None:
    resolver = AddressResolver(config, metrics, session=FakeSession(outcome))
    with pytest.raises(NetworkError):
        resolver.resolve()
    assert b"network_address_entries{" not in generate_latest(metrics.registry)


def test_close_closes_session(config, metrics) -> None:
    session = FakeSession()
    AddressResolver(config, metrics, session=session).close()
    assert session.closed


def test_build_session_binds_interface_ip() -> None:
    session = build_session("192.0.2.10")
    adapter = session.get_adapter("https://icanhazip.com")
    assert isinstance(adapter, SourceAddressAdapter)
    assert adapter.poolmanager.connection_pool_kw["source_address"] == ("192.0.2.10", 0)


def test_build_session_without_interface_ip_uses_default_adapter() -> None:
    session = build_session("")
    assert not isinstance(session.get_adapter("https://icanhazip.com"), SourceAddressAdapter)
