"""Broadcasting of graph events to live subscribers, with replay history."""

from __future__ import annotations

import asyncio
import threading
import time
import weakref
from collections import deque
from typing import Any, Optional

from memory_graph.events import (
    Entity,
    EntityCreated,
    EntityDeleted,
    EntityUpdated,
    GraphEvent,
    Relation,
    RelationCreated,
    RelationDeleted,
    WsMessage,
)

EVENT_HISTORY_SIZE = 1000


class SequenceCounter:
    """A thread-safe monotonically increasing counter."""

    def __init__(self, value: int = 0) -> None:
        self._value = value
        self._lock = threading.Lock()

    def fetch_add(self, amount: int = 1) -> int:
        """Add ``amount`` and return the value held before."""
        with self._lock:
            previous = self._value
            self._value += amount
            return previous

    def load(self) -> int:
        with self._lock:
            return self._value


class Lagged(Exception):
    """A subscriber fell behind and messages were dropped."""

    def __init__(self, count: int) -> None:
        super().__init__(f"missed {count} messages")
        self.count = count


class ChannelClosed(Exception):
    """The channel is closed and no messages remain."""


def _wake(future: asyncio.Future) -> None:
    if not future.done():
        future.set_result(None)


class BroadcastChannel:
    """A bounded multi-subscriber channel; slow subscribers lose old messages."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._lock = threading.Lock()
        self._buffer: deque[Any] = deque(maxlen=capacity)
        self._head = 0
        self._sent = 0
        self._closed = False
        self._subscribers: "weakref.WeakSet[Subscription]" = weakref.WeakSet()
        self._waiters: list[tuple[asyncio.AbstractEventLoop, asyncio.Future]] = []

    def send(self, message: Any) -> int:
        """Queue a message for all subscribers; return how many there are."""
        with self._lock:
            if self._closed:
                raise ChannelClosed("channel is closed")
            if len(self._buffer) == self.capacity:
                self._head += 1
            self._buffer.append(message)
            self._sent += 1
            receivers = len(self._subscribers)
        self._wake_waiters()
        return receivers

    def subscribe(self) -> "Subscription":
        with self._lock:
            subscription = Subscription(self, self._sent)
            self._subscribers.add(subscription)
            return subscription

    def close(self) -> None:
        with self._lock:
            self._closed = True
        self._wake_waiters()

    def _wake_waiters(self) -> None:
        with self._lock:
            waiters = list(self._waiters)
        for loop, future in waiters:
            if not loop.is_closed():
                loop.call_soon_threadsafe(_wake, future)

    def _add_waiter(self, loop: asyncio.AbstractEventLoop, future: asyncio.Future) -> None:
        with self._lock:
            self._waiters.append((loop, future))

    def _remove_waiter(self, future: asyncio.Future) -> None:
        with self._lock:
            self._waiters = [(lp, f) for lp, f in self._waiters if f is not future]

    def _take(self, position: int) -> tuple[Optional[Any], int]:
        with self._lock:
            if position < self._head:
                missed = self._head - position
                raise Lagged(missed)
            if position >= self._sent:
                if self._closed:
                    raise ChannelClosed("channel is closed")
                return None, position
            return self._buffer[position - self._head], position + 1


class Subscription:
    """One subscriber's view of a broadcast channel."""

    def __init__(self, channel: BroadcastChannel, position: int) -> None:
        self._channel = channel
        self._position = position

    def try_recv(self) -> Optional[Any]:
        """Return the next message, or None if none is waiting."""
        try:
            message, self._position = self._channel._take(self._position)
        except Lagged:
            with self._channel._lock:
                missed = self._channel._head - self._position
                self._position = self._channel._head
            raise Lagged(missed) from None
        return message

    async def recv(self) -> Any:
        """Wait for the next message."""
        loop = asyncio.get_running_loop()
        while True:
            future = loop.create_future()
            self._channel._add_waiter(loop, future)
            try:
                message = self.try_recv()
                if message is not None:
                    return message
                await future
            finally:
                self._channel._remove_waiter(future)


class EventBroadcaster:
    """Stamps graph events, sends them to subscribers and keeps recent history."""

    def __init__(self, capacity: int) -> None:
        self._channel = BroadcastChannel(capacity)
        self._counter = SequenceCounter()
        self._history: deque[WsMessage] = deque(maxlen=EVENT_HISTORY_SIZE)
        self._lock = threading.Lock()

    def broadcast(self, event: GraphEvent) -> None:
        with self._lock:
            seq = self._counter.fetch_add(1)
            message = WsMessage(event=event, sequence_id=seq, timestamp=int(time.time()))
            self._history.append(message)
        self._channel.send(message)

    def current_sequence_id(self) -> int:
        return self._counter.load()

    def subscribe(self) -> Subscription:
        return self._channel.subscribe()

    def sender(self) -> BroadcastChannel:
        return self._channel

    def get_events_since(self, since_sequence_id: int) -> Optional[list[WsMessage]]:
        """Events newer than the given id, or None if that id has left history."""
        with self._lock:
            if not self._history:
                return []
            if since_sequence_id < self._history[0].sequence_id:
                return None
            return [m for m in self._history if m.sequence_id > since_sequence_id]

    def oldest_sequence_id(self) -> Optional[int]:
        with self._lock:
            return self._history[0].sequence_id if self._history else None

    def history_len(self) -> int:
        with self._lock:
            return len(self._history)


_broadcaster: Optional[EventBroadcaster] = None
_broadcaster_lock = threading.Lock()


def init_broadcaster(capacity: int) -> EventBroadcaster:
    """Create the process-wide broadcaster once and return it."""
    global _broadcaster
    with _broadcaster_lock:
        if _broadcaster is None:
            _broadcaster = EventBroadcaster(capacity)
        return _broadcaster


def get_broadcaster() -> Optional[EventBroadcaster]:
    return _broadcaster


def broadcast_event(event: GraphEvent) -> None:
    """Broadcast through the global broadcaster, if it exists."""
    broadcaster = _broadcaster
    if broadcaster is not None:
        broadcaster.broadcast(event)


def entity_created(entity: Entity, user: Optional[str] = None) -> None:
    broadcast_event(EntityCreated(payload=entity, user=user))


def entity_updated(name: str, new_observations: list[str], user: Optional[str] = None) -> None:
    broadcast_event(EntityUpdated(name=name, new_observations=list(new_observations), user=user))


def entity_deleted(name: str, user: Optional[str] = None) -> None:
    broadcast_event(EntityDeleted(name=name, user=user))


def relation_created(relation: Relation, user: Optional[str] = None) -> None:
    broadcast_event(RelationCreated(payload=relation, user=user))


def relation_deleted(from_: str, to: str, relation_type: str, user: Optional[str] = None) -> None:
    broadcast_event(RelationDeleted(from_=from_, to=to, relation_type=relation_type, user=user))