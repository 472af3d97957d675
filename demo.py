"""Demo driver: pushes bursts of messages through a relay and prints the outcome."""
import logging
import time
import uuid

from config import (
    LOG_LEVEL, RELAY_INTERVAL_MS, RELAY_MAX_INSTRUMENTS, RELAY_MAX_MESSAGES,
    RELAY_QUEUE_CAPACITY, WEBHOOK_URL,
)
from handlers.webhook import WebhookForwarder
from relay.message import Message
from relay.relay import MessageRelay

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
log = logging.getLogger("demo")

INSTRUMENTS = ["AAPL", "MSFT", "GOOG", "AMZN", "TSLA"]
HANDLER_DELAY_SECONDS = 0.05  # simulated downstream work per message


def print_handler(message: Message) -> None:
    log.info(f"Processing message: {message}")
    time.sleep(HANDLER_DELAY_SECONDS)


def wait_for_drain(relay: MessageRelay, poll_seconds: float = 1.0) -> None:
    while relay.get_pending_message_count() > 0:
        log.info(f"Waiting for messages to be processed. Remaining: {relay.get_pending_message_count()}")
        time.sleep(poll_seconds)


def send(relay: MessageRelay, instrument: str, content: str) -> None:
    relay.receive_message(Message(str(uuid.uuid4()), content, instrument))


def run(relay: MessageRelay) -> None:
    log.info("Sending burst of 100 messages across multiple instruments...")
    for i in range(100):
        send(relay, INSTRUMENTS[i % len(INSTRUMENTS)], f"Test message {i}")

    time.sleep(1.0)
    log.info(f"Pending messages after 1 second: {relay.get_pending_message_count()}")
    wait_for_drain(relay)

    log.info("Sending burst of 50 messages for a single instrument (AAPL)...")
    for i in range(50):
        send(relay, "AAPL", f"AAPL message {i}")
    time.sleep(2.0)

    log.info("Sending 20 messages with mixed instruments and delay...")
    for i in range(20):
        send(relay, INSTRUMENTS[i % len(INSTRUMENTS)], f"Delayed message {i}")
        time.sleep(0.1)
    wait_for_drain(relay)


def main() -> None:
    forwarder = WebhookForwarder(WEBHOOK_URL) if WEBHOOK_URL else None
    relay = MessageRelay(
        forwarder or print_handler,
        max_messages=RELAY_MAX_MESSAGES,
        interval_ms=RELAY_INTERVAL_MS,
        capacity=RELAY_QUEUE_CAPACITY or None,
        max_instruments=RELAY_MAX_INSTRUMENTS or None,
    )
    log.info(f"Admitting at most one message per instrument every {relay.spacing_ms:.1f}ms")
    try:
        run(relay)
    except KeyboardInterrupt:
        log.info("Shutting down...")
    finally:
        relay.shutdown()
        if forwarder is not None:
            forwarder.close()

    log.info(f"Totals: {relay.stats.totals()}")
    print(relay.stats.to_frame().to_string())


if __name__ == "__main__":
    main()
