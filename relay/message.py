"""Inbound message value."""
import time
from dataclasses import dataclass, field


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Message:
    """A single message tagged with the instrument it is rate-limited on."""

    id: str
    content: str
    instrument: str
    timestamp: int = field(default_factory=_now_ms)  # epoch ms, set once

    def __str__(self) -> str:
        return (
            f"Message(id={self.id!r}, instrument={self.instrument!r}, "
            f"content={self.content!r}, timestamp={self.timestamp})"
        )
