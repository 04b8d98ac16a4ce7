"""
Live collection subscriptions.

A ``Subscription`` is an async iterator of full collection snapshots. The
first ``__anext__`` returns the current contents straight away; every later
one waits until a writer publishes a change on that collection and then
returns a fresh snapshot. Changes that land while a snapshot is loading are
not lost: they leave the flag set, so the next call reloads immediately.

Usage::

    async with store.subscribe_collection("employee_status") as sub:
        async for snapshot in sub:
            ...
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChangeFeed:
    """In-process fan-out of "collection changed" signals."""

    def __init__(self) -> None:
        self._watchers: dict[str, set[asyncio.Event]] = defaultdict(set)

    def register(self, collection: str) -> asyncio.Event:
        flag = asyncio.Event()
        self._watchers[collection].add(flag)
        return flag

    def unregister(self, collection: str, flag: asyncio.Event) -> None:
        self._watchers[collection].discard(flag)

    def publish(self, collection: str) -> None:
        for flag in self._watchers.get(collection, ()):
            flag.set()

    def watcher_count(self, collection: str) -> int:
        return len(self._watchers.get(collection, ()))


class Subscription(Generic[T]):
    def __init__(
        self,
        collection: str,
        feed: ChangeFeed,
        loader: Callable[[], Awaitable[list[T]]],
    ) -> None:
        self.collection = collection
        self._feed = feed
        self._loader = loader
        self._flag = feed.register(collection)
        self._flag.set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> list[T]:
        if self._closed:
            raise StopAsyncIteration
        await self._flag.wait()
        if self._closed:
            raise StopAsyncIteration
        self._flag.clear()
        return await self._loader()

    def restart(self) -> None:
        """Re-open if closed and make the next iteration return a snapshot immediately."""
        if self._closed:
            self._flag = self._feed.register(self.collection)
            self._closed = False
            logger.debug("Subscription to %s restarted", self.collection)
        self._flag.set()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._feed.unregister(self.collection, self._flag)
        # wake a consumer blocked in __anext__ so it can stop
        self._flag.set()

    async def __aenter__(self) -> "Subscription[T]":
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        self.close()
