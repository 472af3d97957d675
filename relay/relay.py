"""Message relay with per-instrument throttling.

Producers on any thread call receive_message(). A single daemon worker
drains the buffer in arrival order, asks the SpacingThrottle whether each
message's instrument is due, and either forwards it to the handler or drops
it. The handler is only ever called from the worker, one message at a time.
"""
import logging
import threading
from collections import deque
from typing import Callable

from config import RELAY_INTERVAL_MS, RELAY_MAX_MESSAGES, RELAY_SHUTDOWN_TIMEOUT
from relay.errors import InvalidArgument, QueueingFailure
from relay.message import Message
from relay.stats import RelayStats
from relay.throttle import SpacingThrottle, monotonic_ms

log = logging.getLogger("relay")


class MessageRelay:
    """Buffers inbound messages and forwards them under a per-instrument rate limit.

    Architecture:
      - An unbounded (or capacity-bounded) deque guarded by one lock with two
        conditions: not_empty wakes the worker, not_full wakes producers.
      - One worker thread owns the throttle state, so it needs no lock.
      - shutdown() flips the running flag once and wakes everyone waiting.

    Usage:
        with MessageRelay(handler, max_messages=2, interval_ms=1000) as relay:
            relay.receive_message(Message("1", "hello", "AAPL"))
    """

    def __init__(
        self,
        handler: Callable[[Message], None],
        max_messages: int = RELAY_MAX_MESSAGES,
        interval_ms: float = RELAY_INTERVAL_MS,
        capacity: int | None = None,
        max_instruments: int | None = None,
        clock: Callable[[], float] = monotonic_ms,
        shutdown_timeout: float = RELAY_SHUTDOWN_TIMEOUT,
    ):
        if capacity is not None and capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")

        self._handler = handler
        self._throttle = SpacingThrottle(
            max_messages, interval_ms, max_instruments=max_instruments, clock=clock,
        )
        self.stats = RelayStats()
        self._shutdown_timeout = shutdown_timeout

        self._buffer: deque[Message] = deque()
        self._capacity = capacity
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)
        self._running = True

        self._thread = threading.Thread(
            target=self._run, daemon=True, name="message-relay",
        )
        self._thread.start()

    # --- Producer side ---

    def receive_message(self, message: Message, timeout: float | None = None) -> None:
        """Queue a message for the worker.

        Only blocks when the relay has a capacity and the buffer is full;
        timeout bounds that wait in seconds.

        Raises:
            InvalidArgument: message is None.
            QueueingFailure: the wait for space timed out, or the relay is
                (or became) shut down.
        """
        if message is None:
            raise InvalidArgument("Message cannot be None")

        with self._not_full:
            if not self._running:
                raise QueueingFailure("Relay is shut down")
            if self._capacity is not None:
                ready = self._not_full.wait_for(
                    lambda: not self._running or len(self._buffer) < self._capacity,
                    timeout=timeout,
                )
                if not ready:
                    raise QueueingFailure(
                        f"Timed out after {timeout}s waiting for buffer space "
                        f"(capacity={self._capacity})"
                    )
                if not self._running:
                    raise QueueingFailure("Relay shut down while waiting for buffer space")
            self._buffer.append(message)
            self._not_empty.notify()

    def get_pending_message_count(self) -> int:
        """Messages still buffered. Stale as soon as it is returned."""
        with self._lock:
            return len(self._buffer)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def spacing_ms(self) -> float:
        return self._throttle.spacing_ms

    # --- Lifecycle ---

    def shutdown(self, timeout: float | None = None) -> None:
        """Stop the worker and wait up to timeout seconds for it to exit.

        Buffered messages are not processed. Calling it again is a no-op.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._not_empty.notify_all()
            self._not_full.notify_all()

        if threading.current_thread() is self._thread:
            return
        self._thread.join(timeout=self._shutdown_timeout if timeout is None else timeout)
        if self._thread.is_alive():
            log.warning("Relay worker still busy after shutdown timeout")
        else:
            log.info(f"Relay stopped, {self.get_pending_message_count()} messages left unprocessed")

    def __enter__(self) -> "MessageRelay":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    # --- Worker ---

    def _run(self) -> None:
        log.info(
            f"Relay started: max_messages={self._throttle.max_messages} "
            f"interval_ms={self._throttle.interval_ms} "
            f"spacing_ms={self._throttle.spacing_ms:.1f}"
        )
        while True:
            message = self._take()
            if message is None:
                break
            try:
                self._process(message)
            except Exception:
                if not self._running:
                    break
                log.exception(f"Relay loop error on message {message.id}")

    def _take(self) -> Message | None:
        """Next message in arrival order, or None once stopped."""
        with self._not_empty:
            self._not_empty.wait_for(lambda: self._buffer or not self._running)
            if not self._running:
                return None
            message = self._buffer.popleft()
            self._not_full.notify()
            return message

    def _process(self, message: Message) -> None:
        instrument = message.instrument
        now = self._throttle.now()

        if not self._throttle.should_admit(instrument, now):
            self.stats.record_dropped(instrument)
            log.debug(f"Dropped {message.id} ({instrument})")
            return

        try:
            self._handler(message)
        except Exception:
            self.stats.record_failed(instrument)
            log.exception(f"Handler failed on {message.id} ({instrument})")
        finally:
            self.stats.record_admitted(instrument)
            self._throttle.record(instrument, now)
