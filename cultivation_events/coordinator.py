"""Request coordination for the chat-completion backend.

Many callers may ask for content at once, but the backend is slow and rate
sensitive, so at most one call is physically in flight:

  - Identical requests (same messages) submitted within the coalescing window
    share one future, so they cost a single network call.
  - Everything else goes into a FIFO queue drained by one background task.
    The ``_draining`` flag is checked and set synchronously in ``submit()``
    before the task is created, and cleared only when the queue is empty, so
    a second drain loop can never start while the first is suspended on the
    network.

The queue and the cache are only touched from the event loop thread; there
is no locking.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from cultivation_events.llm import LLM, NetworkError
from cultivation_events.models import ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 1.0  # seconds
SWEEP_FACTOR = 10


@dataclass
class QueuedRequest:
    messages: list[ChatMessage]
    temperature: float
    max_tokens: int | None
    future: asyncio.Future[str]


@dataclass
class CacheEntry:
    fingerprint: str
    created_at: float
    future: asyncio.Future[str]


def fingerprint(messages: list[ChatMessage]) -> str:
    """Deterministic key for a message list."""
    raw = json.dumps(
        [m.model_dump() for m in messages],
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=True,
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class RequestCoordinator:
    """Single-flight cache plus a serial FIFO queue in front of a transport.

    Args:
        transport: Callable matching the LLM protocol (usually HttpLLM).
        window:    Coalescing window in seconds. Entries older than
                   ``SWEEP_FACTOR * window`` are purged on the next submit.
        clock:     Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        transport: LLM,
        window: float = DEFAULT_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self._window = window
        self._clock = clock
        self._queue: deque[QueuedRequest] = deque()
        self._cache: dict[str, CacheEntry] = {}
        self._draining = False
        self._drain_task: asyncio.Task[None] | None = None
        self._in_flight: QueuedRequest | None = None

    @property
    def queue_depth(self) -> int:
        return len(self._queue)

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    @property
    def draining(self) -> bool:
        return self._draining

    async def submit(
        self,
        messages: list[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        """Return the completion text for ``messages``.

        Raises whatever the transport raised for this request.
        """
        key = fingerprint(messages)
        now = self._clock()
        self._sweep(now)

        entry = self._cache.get(key)
        if entry is not None and now - entry.created_at < self._window:
            logger.debug("coalesced request fingerprint=%s", key[:12])
            return await asyncio.shield(entry.future)

        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self._cache[key] = CacheEntry(fingerprint=key, created_at=now, future=future)
        self._queue.append(QueuedRequest(messages, temperature, max_tokens, future))
        logger.debug("queued request fingerprint=%s depth=%d", key[:12], len(self._queue))

        if not self._draining:
            self._draining = True
            self._drain_task = asyncio.create_task(self._drain())

        return await asyncio.shield(future)

    async def _drain(self) -> None:
        try:
            while self._queue:
                request = self._queue.popleft()
                self._in_flight = request
                try:
                    result = await self._transport(
                        request.messages, request.temperature, request.max_tokens
                    )
                except Exception as e:
                    logger.warning("LLM request failed: %s", e)
                    if not request.future.done():
                        request.future.set_exception(e)
                else:
                    if not request.future.done():
                        request.future.set_result(result)
        finally:
            self._in_flight = None
            self._draining = False

    def _sweep(self, now: float) -> None:
        horizon = self._window * SWEEP_FACTOR
        expired = [k for k, e in self._cache.items() if now - e.created_at > horizon]
        for key in expired:
            entry = self._cache.pop(key)
            # nobody awaits an expired future any more; mark its error as seen
            if entry.future.done() and not entry.future.cancelled():
                entry.future.exception()
        if expired:
            logger.debug("swept %d expired cache entries", len(expired))

    async def aclose(self) -> None:
        """Stop draining and reject everything still queued."""
        task, self._drain_task = self._drain_task, None
        pending = [self._in_flight] if self._in_flight is not None else []
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        pending.extend(self._queue)
        self._queue.clear()
        for request in pending:
            if not request.future.done():
                request.future.set_exception(NetworkError("Request coordinator closed"))
        self._cache.clear()
