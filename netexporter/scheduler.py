"""
Periodic address refresh and latency probing.

Both tasks run on their own thread and wake on the same ticker, so each tick
fires one refresh and one probe. The current address travels between them
through an ``AddressCell``.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from .config import ExporterConfig, ProbeFailurePolicy
from .errors import NetworkError, ProbeExhaustedError, ProbeInitError, ResolutionError
from .metrics import NetworkMetrics
from .prober import LatencyProber
from .resolver import AddressResolver
from .state import AddressCell

logger = logging.getLogger("netexporter.scheduler")


class Ticker:
    """A single repeating clock shared by several waiting threads."""

    def __init__(self, interval: float, stop_event: threading.Event) -> None:
        self.interval = interval
        self._stop = stop_event
        self._cond = threading.Condition()
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._cond:
            return self._generation

    def tick(self) -> None:
        with self._cond:
            self._generation += 1
            self._cond.notify_all()

    def wake_all(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def run(self) -> None:
        while not self._stop.wait(self.interval):
            self.tick()
        self.wake_all()

    def wait_next(self, last_seen: int) -> int | None:
        """Block until a tick newer than ``last_seen``; ``None`` once stopped."""
        with self._cond:
            while self._generation <= last_seen and not self._stop.is_set():
                self._cond.wait()
            if self._stop.is_set():
                return None
            return self._generation


class Scheduler:
    def __init__(
        self,
        config: ExporterConfig,
        resolver: AddressResolver,
        prober: LatencyProber,
        metrics: NetworkMetrics,
        cell: AddressCell | None = None,
        on_fatal: Callable[[], None] | None = None,
    ) -> None:
        self._config = config
        self._resolver = resolver
        self._prober = prober
        self._metrics = metrics
        self.cell = cell if cell is not None else AddressCell()
        self._on_fatal = on_fatal
        self._stop = threading.Event()
        self.ticker = Ticker(config.interval, self._stop)
        self.fatal = threading.Event()
        self.exit_code = 0
        self._threads: list[threading.Thread] = []

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def seed(self) -> None:
        """Resolve the address once before the periodic tasks start."""
        try:
            self.cell.set(self._resolver.resolve())
        except NetworkError as exc:
            logger.warning("initial address resolution failed: %s", exc)

    def refresh_once(self) -> bool:
        if self._stop.is_set():
            return False
        try:
            address = self._resolver.resolve()
        except NetworkError as exc:
            logger.warning(
                "address refresh failed, keeping %s: %s",
                self.cell.get() or "<none>",
                exc,
            )
            return True
        if self._stop.is_set():
            return False
        previous = self.cell.set(address)
        if previous and previous != address:
            logger.info("external address changed | old=%s new=%s", previous, address)
        logger.debug("configured network address | address=%s", address)
        return True

    def probe_once(self) -> bool:
        """Probe the current address; returns whether probing should go on."""
        if self._stop.is_set():
            return False
        address = self.cell.get()
        if not address:
            logger.debug("no address known yet, skipping probe")
            return True
        logger.debug("pinging | address=%s", address)
        retry = self._config.probe_failure_policy is ProbeFailurePolicy.RETRY
        try:
            rtt = self._prober.probe(address)
        except ResolutionError as exc:
            logger.warning("skipping probe: %s", exc)
            return True
        except ProbeInitError as exc:
            logger.error("prober unavailable: %s", exc)
            return retry
        except ProbeExhaustedError as exc:
            logger.error("probe failed: %s", exc)
            if retry:
                return True
            self._fail()
            return False
        if self._stop.is_set():
            return False
        self._metrics.record_latency(self._config.interface_name, address, rtt)
        logger.debug("configured network address ping | address=%s rtt=%.6f", address, rtt)
        return True

    def _fail(self) -> None:
        self._metrics.freeze()
        self.exit_code = 1
        self.fatal.set()
        self.stop()
        if self._on_fatal is not None:
            self._on_fatal()

    def _task_loop(self, name: str, step: Callable[[], bool]) -> None:
        last = self.ticker.generation
        while True:
            current = self.ticker.wait_next(last)
            if current is None:
                break
            last = current
            try:
                if not step():
                    break
            except Exception:
                logger.exception("%s tick failed", name)
        logger.debug("%s stopped", name)

    def start(self) -> None:
        self._threads = [
            threading.Thread(target=self.ticker.run, name="ticker", daemon=True),
            threading.Thread(
                target=self._task_loop,
                args=("address-refresh", self.refresh_once),
                name="address-refresh",
                daemon=True,
            ),
            threading.Thread(
                target=self._task_loop,
                args=("latency-probe", self.probe_once),
                name="latency-probe",
                daemon=True,
            ),
        ]
        for thread in self._threads:
            thread.start()
        logger.info(
            "scheduler started | interval=%.1fs policy=%s",
            self._config.interval,
            self._config.probe_failure_policy.value,
        )

    def stop(self) -> None:
        self._stop.set()
        self.ticker.wake_all()

    def join(self, timeout: float | None = None) -> None:
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join(timeout)
