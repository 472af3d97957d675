"""HTTP webhook handler for admitted messages.

Posts each message as JSON to a downstream endpoint. Uses a persistent
aiohttp.ClientSession on a background event loop so the relay's worker can
call it like any synchronous handler.
"""

import asyncio
import logging
import threading
from dataclasses import asdict

import aiohttp

from config import (
    WEBHOOK_BACKOFF_BASE, WEBHOOK_MAX_RETRIES, WEBHOOK_PATH, WEBHOOK_TIMEOUT,
)
from relay.errors import RelayError
from relay.message import Message

log = logging.getLogger("handlers.webhook")

STANDARD_HEADERS = {"Content-Type": "application/json; charset=utf-8"}


class ForwardingError(RelayError):
    """The webhook did not accept a message after all retries."""


class WebhookForwarder:
    """Synchronous handler that POSTs messages to base_url + path.

    Architecture:
      - A daemon thread runs an asyncio event loop.
      - An aiohttp.ClientSession lives on that loop and persists across calls.
      - __call__() bridges into the loop via run_coroutine_threadsafe(),
        blocking until the POST (and any retries) complete.

    429s and connection errors are retried with exponential backoff.
    Any other non-2xx status fails straight away.
    """

    def __init__(
        self,
        base_url: str,
        path: str = WEBHOOK_PATH,
        max_retries: int = WEBHOOK_MAX_RETRIES,
        backoff_base: float = WEBHOOK_BACKOFF_BASE,
        timeout: float = WEBHOOK_TIMEOUT,
        headers: dict[str, str] | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._path = path if path.startswith("/") else f"/{path}"
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._timeout = timeout
        self._headers = {**STANDARD_HEADERS, **(headers or {})}

        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever, daemon=True, name="webhook-forwarder",
        )
        self._thread.start()

        self._session: aiohttp.ClientSession = asyncio.run_coroutine_threadsafe(
            self._create_session(), self._loop,
        ).result()
        self._closed = False

    async def _create_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            base_url=self._base_url,
            headers=self._headers,
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        )

    # --- Public sync API ---

    def __call__(self, message: Message) -> None:
        """Forward one message. Blocks the calling thread until done.

        Raises:
            ForwardingError: the endpoint rejected the message or stayed
                unreachable through every retry, or the forwarder
                is closed.
        """
        if self._closed:
            raise ForwardingError("Webhook forwarder is closed")
        future = asyncio.run_coroutine_threadsafe(self._forward(message), self._loop)
        future.result()

    def close(self) -> None:
        """Close the session and stop the event loop."""
        if self._closed:
            return
        self._closed = True
        try:
            asyncio.run_coroutine_threadsafe(
                self._session.close(), self._loop,
            ).result(timeout=5)
        except Exception as e:
            log.warning(f"Webhook session close failed: {e}")
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5)
        if not self._thread.is_alive():
            self._loop.close()

    def __enter__(self) -> "WebhookForwarder":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # --- HTTP with retry ---

    async def _forward(self, message: Message) -> None:
        payload = asdict(message)
        for attempt in range(self._max_retries + 1):
            try:
                async with self._session.post(self._path, json=payload) as resp:
                    if 200 <= resp.status < 300:
                        return

                    text = await resp.text()
                    if resp.status == 429 and attempt < self._max_retries:
                        backoff = self._backoff_base * (2 ** attempt)
                        log.warning(
                            f"429 on {message.id} (attempt {attempt + 1}), "
                            f"retry in {backoff:.1f}s"
                        )
                        await asyncio.sleep(backoff)
                        continue

                    raise ForwardingError(
                        f"Webhook rejected {message.id}: {resp.status} {text}"
                    )
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                log.error(f"Webhook {message.id} exception: {e}")
                if attempt < self._max_retries:
                    backoff = self._backoff_base * (2 ** attempt)
                    await asyncio.sleep(backoff)
                    continue
                raise ForwardingError(
                    f"Webhook unreachable for {message.id} after "
                    f"{attempt + 1} attempts: {e}"
                ) from e
