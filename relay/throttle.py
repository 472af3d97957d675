"""Fixed-spacing throttle keyed by instrument.

Each instrument may be admitted at most once every interval_ms / max_messages
milliseconds. Only the time of the last admission is kept per key, so a
decision is O(1) and memory grows with the number of distinct instruments.

Not thread-safe: the relay's single worker thread owns all reads and writes.
"""
import logging
import time
from collections import OrderedDict
from typing import Callable

log = logging.getLogger("relay.throttle")


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class SpacingThrottle:
    """Per-instrument admission decisions with a minimum gap between admits.

    With max_instruments set, every admission of a new instrument past the
    cap scans all entries to prune expired ones. If none have expired, the
    least recently admitted instrument is evicted even though its spacing
    has not elapsed, so its next message is admitted early.

    Usage:
        throttle = SpacingThrottle(max_messages=2, interval_ms=1000)
        if throttle.try_admit("AAPL"):
            ...  # forward
    """

    def __init__(
        self,
        max_messages: int,
        interval_ms: float,
        max_instruments: int | None = None,
        clock: Callable[[], float] = monotonic_ms,
    ):
        if max_messages <= 0:
            raise ValueError(f"max_messages must be positive, got {max_messages}")
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        if max_instruments is not None and max_instruments <= 0:
            raise ValueError(f"max_instruments must be positive, got {max_instruments}")

        self.max_messages = max_messages
        self.interval_ms = interval_ms
        self.spacing_ms = interval_ms / max_messages
        self._max_instruments = max_instruments
        self._clock = clock
        # instrument -> last admitted at (clock ms), least recently admitted first
        self._last_admitted: OrderedDict[str, float] = OrderedDict()

    def try_admit(self, instrument: str) -> bool:
        """Admit and record, or refuse without touching state."""
        now = self._clock()
        if not self.should_admit(instrument, now):
            return False
        self.record(instrument, now)
        return True

    def should_admit(self, instrument: str, now: float) -> bool:
        previous = self._last_admitted.get(instrument)
        if previous is None:
            return True
        return now - previous >= self.spacing_ms

    def record(self, instrument: str, now: float) -> None:
        """Mark instrument as admitted at now."""
        self._last_admitted[instrument] = now
        self._last_admitted.move_to_end(instrument)
        if self._max_instruments is not None and len(self._last_admitted) > self._max_instruments:
            self._shrink(now)

    def last_admitted_at(self, instrument: str) -> float | None:
        return self._last_admitted.get(instrument)

    def now(self) -> float:
        return self._clock()

    def prune(self, now: float | None = None) -> int:
        """Drop entries old enough that the next message would be admitted anyway.

        Returns the number of entries removed.
        """
        if now is None:
            now = self._clock()
        expired = [
            sym for sym, at in self._last_admitted.items()
            if now - at >= self.spacing_ms
        ]
        for sym in expired:
            del self._last_admitted[sym]
        return len(expired)

    def _shrink(self, now: float) -> None:
        pruned = self.prune(now)
        evicted = 0
        while len(self._last_admitted) > self._max_instruments:
            self._last_admitted.popitem(last=False)
            evicted += 1
        if evicted:
            log.debug(
                f"Rate state over cap={self._max_instruments}: "
                f"pruned={pruned} evicted={evicted}"
            )

    def __len__(self) -> int:
        return len(self._last_admitted)

    def __contains__(self, instrument: str) -> bool:
        return instrument in self._last_admitted
