import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Any, AsyncIterator, Awaitable, Callable

from ..config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    kind: str
    auth_date: date
    user_id: str


class Subscription:
    """
    One listener on the feed; an endless async iterator of ChangeEvents.
    Registered on creation so nothing published afterwards is missed.
    """

    def __init__(self, feed: "ChangeFeed", queue_size: int):
        self._feed = feed
        self._loop = asyncio.get_running_loop()
        self._queue: "asyncio.Queue[ChangeEvent]" = asyncio.Queue(maxsize=queue_size)
        self.closed = False
        feed._add(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        if self.closed:
            raise StopAsyncIteration
        return await self._queue.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._feed._remove(self)

    def _deliver(self, event: ChangeEvent) -> None:
        # listeners only need to know "something changed": drop the oldest when behind
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(event)

    def _offer(self, event: ChangeEvent) -> None:
        try:
            self._loop.call_soon_threadsafe(self._deliver, event)
        except RuntimeError:
            # event loop already closed
            self.close()


class ChangeFeed:
    """In-process fan-out of row-store insert notifications."""

    def __init__(self, queue_size: int = 16):
        self.queue_size = queue_size
        self._subscribers = set()
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscription:
        return Subscription(self, self.queue_size)

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            targets = list(self._subscribers)
        logger.debug("Publishing %s on %s to %d subscribers", event.kind, event.table, len(targets))
        for sub in targets:
            sub._offer(event)

    def _add(self, sub: Subscription) -> None:
        with self._lock:
            self._subscribers.add(sub)
        logger.info("Change feed subscriber added (%d active)", self.subscriber_count)

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            self._subscribers.discard(sub)
        logger.info("Change feed subscriber removed (%d active)", self.subscriber_count)


async def leaderboard_updates(
    feed: ChangeFeed,
    fetch: Callable[[], Awaitable[Any]],
) -> AsyncIterator[Any]:
    """
    Current leaderboard first, then a freshly fetched one after every change.
    Each notification triggers a full re-fetch + recompute, no incremental patching
    (a day's board is at most a few dozen rows).
    """
    async with feed.subscribe() as updates:
        yield await fetch()
        async for _event in updates:
            yield await fetch()


feed = ChangeFeed(settings.FEED_QUEUE_SIZE)
