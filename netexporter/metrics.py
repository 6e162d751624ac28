from __future__ import annotations

import logging
import threading

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

logger = logging.getLogger("netexporter.metrics")

_LABELS = ("interface", "ip_address")


class NetworkMetrics:
    """Address and latency gauges keyed by (interface, ip_address).

    Each interface keeps a single series per gauge: recording a new address
    drops the series of the address it replaces.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self._address = Gauge(
            "network_address_entries",
            "Current network ip address entries",
            labelnames=_LABELS,
            registry=self.registry,
        )
        self._latency = Gauge(
            "network_ping",
            "Current network ip address ping in seconds",
            labelnames=_LABELS,
            registry=self.registry,
        )
        self._lock = threading.Lock()
        self._last_address: dict[str, str] = {}
        self._last_probed: dict[str, str] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Ignore every later write; the exported values stay as they are."""
        with self._lock:
            self._frozen = True

    def record_address(self, interface: str, address: str) -> None:
        with self._lock:
            if self._frozen:
                return
            previous = self._last_address.get(interface)
            if previous is not None and previous != address:
                self._address.remove(interface, previous)
                logger.debug(
                    "dropped stale address series | interface=%s address=%s",
                    interface,
                    previous,
                )
            self._address.labels(interface, address).set(1)
            self._last_address[interface] = address

    def record_latency(self, interface: str, address: str, seconds: float) -> None:
        with self._lock:
            if self._frozen:
                return
            previous = self._last_probed.get(interface)
            if previous is not None and previous != address:
                self._latency.remove(interface, previous)
            self._latency.labels(interface, address).set(seconds)
            self._last_probed[interface] = address

    def render(self) -> tuple[bytes, str]:
        with self._lock:
            payload = generate_latest(self.registry)
        return payload, CONTENT_TYPE_LATEST
