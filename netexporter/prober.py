from __future__ import annotations

import ipaddress
import logging
import time
from typing import Callable

from pythonping import ping

from .config import ExporterConfig
from .errors import ProbeExhaustedError, ProbeInitError, ResolutionError

logger = logging.getLogger("netexporter.prober")


def parse_target(address: str) -> ipaddress.IPv4Address:
    try:
        parsed = ipaddress.ip_address(address.strip())
    except ValueError:
        raise ResolutionError(f"'{address}' is not an ip address") from None
    if parsed.version != 4:
        raise ResolutionError(f"'{address}' is not an ipv4 address")
    return parsed


class LatencyProber:
    """Measures ICMP echo round trips with pythonping.

    Attempts are made one at a time; the round trip of the first reply is the
    result, so a probe succeeds as soon as one attempt does.
    """

    def __init__(self, config: ExporterConfig, ping_func: Callable = ping) -> None:
        self._timeout = config.ping_timeout
        self._attempts = config.ping_attempts
        self._ping = ping_func

    def probe(self, address: str) -> float:
        target = str(parse_target(address))
        for attempt in range(1, self._attempts + 1):
            start = time.monotonic()
            try:
                responses = self._ping(target, count=1, timeout=self._timeout)
            except OSError as exc:
                raise ProbeInitError(f"cannot open icmp socket: {exc}") from exc
            for response in responses:
                if getattr(response, "success", False):
                    rtt = float(response.time_elapsed)
                    logger.debug(
                        "echo reply | address=%s attempt=%d rtt_ms=%.2f",
                        target,
                        attempt,
                        rtt * 1000.0,
                    )
                    return rtt
            logger.debug(
                "echo attempt failed | address=%s attempt=%d duration_ms=%.1f",
                target,
                attempt,
                (time.monotonic() - start) * 1000.0,
            )
        raise ProbeExhaustedError(target, self._attempts)
