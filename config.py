"""Configuration constants."""
import os

from dotenv import load_dotenv

load_dotenv()

# Throttle: at most RELAY_MAX_MESSAGES per RELAY_INTERVAL_MS per instrument,
# evenly spaced (one admit every interval / max_messages ms)
RELAY_MAX_MESSAGES = int(os.getenv("RELAY_MAX_MESSAGES", "1"))
RELAY_INTERVAL_MS = float(os.getenv("RELAY_INTERVAL_MS", "1000"))

# Buffer and rate-state limits (0 = unbounded)
RELAY_QUEUE_CAPACITY = int(os.getenv("RELAY_QUEUE_CAPACITY", "0"))
RELAY_MAX_INSTRUMENTS = int(os.getenv("RELAY_MAX_INSTRUMENTS", "0"))

# Seconds shutdown() waits for the worker before giving up
RELAY_SHUTDOWN_TIMEOUT = float(os.getenv("RELAY_SHUTDOWN_TIMEOUT", "5.0"))

# Downstream webhook (empty = print admitted messages instead)
WEBHOOK_URL = os.getenv("WEBHOOK_URL", "")
WEBHOOK_PATH = os.getenv("WEBHOOK_PATH", "/messages")
WEBHOOK_MAX_RETRIES = int(os.getenv("WEBHOOK_MAX_RETRIES", "3"))
WEBHOOK_BACKOFF_BASE = float(os.getenv("WEBHOOK_BACKOFF_BASE", "0.5"))  # seconds
WEBHOOK_TIMEOUT = float(os.getenv("WEBHOOK_TIMEOUT", "10.0"))  # seconds per request

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
