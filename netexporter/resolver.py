from __future__ import annotations

import logging
import time

import requests
from requests.adapters import HTTPAdapter

from .config import ExporterConfig
from .errors import NetworkError
from .metrics import NetworkMetrics

logger = logging.getLogger("netexporter.resolver")


class SourceAddressAdapter(HTTPAdapter):
    """Transport adapter that binds outgoing connections to a local address."""

    def __init__(self, source_ip: str, **kwargs) -> None:
        self._source_address = (source_ip, 0)
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs["source_address"] = self._source_address
        return super().init_poolmanager(*args, **kwargs)


def build_session(interface_ip: str = "") -> requests.Session:
    session = requests.Session()
    if interface_ip:
        adapter = SourceAddressAdapter(interface_ip)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
    return session


class AddressResolver:
    """Looks up the host's external address through an IP echo service."""

    def __init__(
        self,
        config: ExporterConfig,
        metrics: NetworkMetrics,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._metrics = metrics
        self._session = session if session is not None else build_session(config.interface_ip)

    def resolve(self) -> str:
        """Return the trimmed external address and record it as a metric.

        Raises ``NetworkError`` when the request, the connection or the body
        read fails, when the service answers with an error status, or when
        the body is empty.
        """
        url = self._config.echo_url
        logger.debug("requesting external address | url=%s", url)
        start = time.monotonic()
        try:
            response = self._session.get(url, timeout=self._config.http_timeout)
            response.raise_for_status()
            body = response.content.decode(response.encoding or "utf-8", errors="replace")
        except requests.RequestException as exc:
            elapsed_ms = (time.monotonic() - start) * 1000.0
            raise NetworkError(f"request to {url} failed after {elapsed_ms:.1f} ms: {exc}") from exc

        address = body.rstrip("\r\n")
        if not address:
            raise NetworkError(f"{url} returned an empty body")

        elapsed_ms = (time.monotonic() - start) * 1000.0
        logger.info(
            "external address resolved | interface=%s address=%s http_latency_ms=%.1f",
            self._config.interface_name,
            address,
            elapsed_ms,
        )
        self._metrics.record_address(self._config.interface_name, address)
        return address

    def close(self) -> None:
        self._session.close()
