from __future__ import annotations

import pytest
import requests
from prometheus_client import CollectorRegistry

from netexporter.config import ExporterConfig
from netexporter.metrics import NetworkMetrics


def make_response(body: bytes, status: int = 200) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = body
    response.encoding = "utf-8"
    response.url = "https://icanhazip.com"
    return response


class FakeSession:
    """Stands in for ``requests.Session``; replays queued bodies or errors."""

    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, float]] = []
        self.closed = False

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, requests.Response):
            return outcome
        return make_response(outcome)

    def close(self) -> None:
        self.closed = True


class FakeReply:
    def __init__(self, success: bool, time_elapsed: float = 0.0) -> None:
        self.success = success
        self.time_elapsed = time_elapsed


class FakePing:
    """Callable with the pythonping ``ping`` signature used by the prober."""

    def __init__(self, *replies) -> None:
        self.replies = list(replies)
        self.calls: list[tuple[str, int, float]] = []

    def __call__(self, target, count=1, timeout=2):
        self.calls.append((target, count, timeout))
        reply = self.replies.pop(0) if self.replies else FakeReply(False)
        if isinstance(reply, Exception):
            raise reply
        return [reply]


@pytest.fixture
def config() -> ExporterConfig:
    return ExporterConfig(interface_name="eth0", interval=0.01, ping_timeout=0.5, ping_attempts=3)


@pytest.fixture
def metrics() -> NetworkMetrics:
    return NetworkMetrics(CollectorRegistry())
