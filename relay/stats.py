"""Per-instrument relay counters."""
import threading
from collections import defaultdict

import pandas as pd

COLUMNS = ["admitted", "dropped", "failed"]


class RelayStats:
    """Counts admitted, dropped and failed messages per instrument.

    "failed" is a subset of "admitted": the message passed the throttle but
    the handler raised.

    Written by the relay worker, read from any thread. Thread-safe via a
    single lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: dict[str, dict[str, int]] = defaultdict(
            lambda: dict.fromkeys(COLUMNS, 0)
        )

    def record_admitted(self, instrument: str) -> None:
        self._bump(instrument, "admitted")

    def record_dropped(self, instrument: str) -> None:
        self._bump(instrument, "dropped")

    def record_failed(self, instrument: str) -> None:
        self._bump(instrument, "failed")

    def _bump(self, instrument: str, column: str) -> None:
        with self._lock:
            self._counts[instrument][column] += 1

    def get(self, instrument: str) -> dict[str, int]:
        with self._lock:
            counts = self._counts.get(instrument)
            return dict(counts) if counts else dict.fromkeys(COLUMNS, 0)

    def totals(self) -> dict[str, int]:
        with self._lock:
            return {
                col: sum(c[col] for c in self._counts.values()) for col in COLUMNS
            }

    def snapshot(self) -> dict[str, dict[str, int]]:
        with self._lock:
            return {sym: dict(c) for sym, c in self._counts.items()}

    def to_frame(self) -> pd.DataFrame:
        """One row per instrument, sorted by instrument."""
        snap = self.snapshot()
        if not snap:
            return pd.DataFrame(columns=COLUMNS).rename_axis("instrument")
        df = pd.DataFrame.from_dict(snap, orient="index")[COLUMNS]
        return df.rename_axis("instrument").sort_index()
