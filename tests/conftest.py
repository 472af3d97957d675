import threading
import time

import pytest


class FakeClock:
    """Millisecond clock for the throttle. Advances by step on every read."""

    def __init__(self, start: float = 0.0, step: float = 0.0):
        self._now = start
        self._step = step
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            value = self._now
            self._now += self._step
            return value

    def advance(self, ms: float) -> None:
        with self._lock:
            self._now += ms


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.005) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def waiter():
    return wait_until
