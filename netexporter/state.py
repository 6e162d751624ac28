from __future__ import annotations

import threading


class AddressCell:
    """Lock-guarded holder for the current external address."""

    def __init__(self, initial: str = "") -> None:
        self._value = initial
        self._lock = threading.Lock()

    def get(self) -> str:
        with self._lock:
            return self._value

    def set(self, value: str) -> str:
        """Store ``value`` and return the address it replaced."""
        with self._lock:
            previous, self._value = self._value, value
        return previous
