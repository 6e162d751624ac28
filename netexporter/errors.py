from __future__ import annotations


class ExporterError(RuntimeError):
    """Base class for every error raised by the exporter."""


class NetworkError(ExporterError):
    """The IP echo request, connection or response read did not complete."""


class ResolutionError(ExporterError):
    """The current address could not be parsed into a network address."""


class ProbeInitError(ExporterError):
    """The ICMP prober could not be set up."""


class ProbeExhaustedError(ExporterError):
    """Every echo attempt failed."""

    def __init__(self, address: str, attempts: int) -> None:
        super().__init__(f"no echo reply from {address} after {attempts} attempt(s)")
        self.address = address
        self.attempts = attempts
