"""Store interface and the in-process change feed."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Union

from noteboard.models.schema import ChangeEvent, Note, NoteDraft

logger = logging.getLogger(__name__)

_CLOSED = object()


class ChangeSubscription:
    """Async iterator over the change events delivered to one subscriber.

    Iteration ends when the subscription or its feed is closed; a feed
    failure is raised from the iterator.
    """

    def __init__(self, feed: "ChangeFeed"):
        self._feed = feed
        self._queue: "asyncio.Queue[Union[ChangeEvent, BaseException, object]]" = asyncio.Queue()
        self._closed = False

    def __aiter__(self) -> "ChangeSubscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, item: Union[ChangeEvent, BaseException]) -> None:
        if not self._closed:
            self._queue.put_nowait(item)

    def close(self) -> None:
        if self._closed:
            return
        self._feed.unsubscribe(self)
        self._queue.put_nowait(_CLOSED)
        self._closed = True


class ChangeFeed:
    """Fans change events out to every open subscription.

    Delivery order per subscriber is publish order; nothing is promised
    about how that order relates to a caller's own request completing.
    """

    def __init__(self):
        self._subscribers: List[ChangeSubscription] = []

    def subscribe(self) -> ChangeSubscription:
        subscription = ChangeSubscription(self)
        self._subscribers.append(subscription)
        logger.debug(f"Change feed subscriber added ({len(self._subscribers)} open)")
        return subscription

    def unsubscribe(self, subscription: ChangeSubscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    def publish(self, event: ChangeEvent) -> None:
        for subscription in list(self._subscribers):
            subscription.deliver(event)

    def fail(self, error: BaseException) -> None:
        """Terminate every subscription with ``error``."""
        subscribers, self._subscribers = self._subscribers, []
        for subscription in subscribers:
            subscription.deliver(error)

    def close(self) -> None:
        for subscription in list(self._subscribers):
            subscription.close()

    def __len__(self) -> int:
        return len(self._subscribers)


class NoteStore(ABC):
    """Async CRUD over the ``notes`` collection plus a change feed.

    Implementations raise ``ConnectivityError`` when the store cannot be
    reached and ``TransportError`` when a call fails; they never retry.
    """

    @abstractmethod
    async def probe(self) -> None:
        """Check that the store is reachable."""

    @abstractmethod
    async def list_recent(self, limit: int) -> List[Note]:
        """Return up to ``limit`` notes, newest first."""

    @abstractmethod
    async def create(self, draft: NoteDraft) -> Note:
        """Persist a new note and return it with its assigned id."""

    @abstractmethod
    async def update_position(self, note_id: str, x: float, y: float) -> Note:
        """Move a stored note."""

    @abstractmethod
    async def delete(self, note_id: str) -> None:
        """Remove a note; deleting an unknown id is not an error."""

    @abstractmethod
    async def subscribe(self) -> ChangeSubscription:
        """Open a change-feed subscription."""

    async def close(self) -> None:
        """Release resources held by the store."""
