"""Debouncing of high-frequency graph events into batches."""

from __future__ import annotations

import asyncio
import time
from typing import Optional

from memory_graph.broadcaster import BroadcastChannel, SequenceCounter
from memory_graph.events import BatchUpdate, GraphEvent, WsMessage


class EventBatcher:
    """Collects graph events and sends them as one message per flush."""

    def __init__(
        self,
        tx: BroadcastChannel,
        sequence_counter: SequenceCounter,
        flush_interval_ms: int = 50,
        max_batch_size: int = 100,
    ) -> None:
        self.tx = tx
        self.sequence_counter = sequence_counter
        self.flush_interval = flush_interval_ms / 1000
        self.max_batch_size = max_batch_size
        self._buffer: list[GraphEvent] = []

    def push(self, event: GraphEvent) -> None:
        """Buffer an event, flushing when the batch is full."""
        self._buffer.append(event)
        if len(self._buffer) >= self.max_batch_size:
            self.flush()

    def flush(self) -> None:
        """Send buffered events; a single event is sent unwrapped."""
        if not self._buffer:
            return
        seq = self.sequence_counter.fetch_add(1)
        if len(self._buffer) == 1:
            event: GraphEvent = self._buffer.pop()
        else:
            event = BatchUpdate(events=self._buffer)
            self._buffer = []
        self.tx.send(WsMessage(event=event, sequence_id=seq, timestamp=int(time.time())))

    async def run(self, queue: "asyncio.Queue[Optional[GraphEvent]]") -> None:
        """Batch events from ``queue`` until a ``None`` arrives, flushing on a timer."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            timeout = next_tick - loop.time()
            if timeout <= 0:
                self.flush()
                next_tick = loop.time() + self.flush_interval
                continue
            try:
                event = await asyncio.wait_for(queue.get(), timeout)
            except asyncio.TimeoutError:
                continue
            if event is None:
                self.flush()
                return
            self.push(event)