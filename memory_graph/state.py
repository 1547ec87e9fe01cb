"""Shared application state for real-time connections."""

from __future__ import annotations

import copy
import threading
import time
from typing import Iterable, Optional

from memory_graph.broadcaster import BroadcastChannel, SequenceCounter, Subscription
from memory_graph.events import Entity, GraphEvent, Relation, WsMessage

CHANNEL_CAPACITY = 1024


class GraphStore:
    """A thread-safe in-memory set of entities and relations."""

    def __init__(
        self,
        entities: Optional[Iterable[Entity]] = None,
        relations: Optional[Iterable[Relation]] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._entities: list[Entity] = list(entities or [])
        self._relations: list[Relation] = list(relations or [])

    def snapshot(self) -> tuple[list[Entity], list[Relation]]:
        """Return independent copies of all entities and relations."""
        with self._lock:
            return copy.deepcopy(self._entities), copy.deepcopy(self._relations)

    def add_entities(self, entities: Iterable[Entity]) -> list[Entity]:
        """Add entities whose names are new; return those that were added."""
        added: list[Entity] = []
        with self._lock:
            names = {entity.name for entity in self._entities}
            for entity in entities:
                if entity.name in names:
                    continue
                names.add(entity.name)
                self._entities.append(entity)
                added.append(entity)
        return added

    def add_relations(self, relations: Iterable[Relation]) -> list[Relation]:
        """Add relations not already present; return those that were added."""
        added: list[Relation] = []
        with self._lock:
            keys = {(r.from_, r.to, r.relation_type) for r in self._relations}
            for relation in relations:
                key = (relation.from_, relation.to, relation.relation_type)
                if key in keys:
                    continue
                keys.add(key)
                self._relations.append(relation)
                added.append(relation)
        return added


class AppState:
    """The graph shared by all transports plus the live event channel."""

    def __init__(self, kb: Optional[GraphStore] = None, capacity: int = CHANNEL_CAPACITY) -> None:
        self.kb = kb if kb is not None else GraphStore()
        self.event_tx = BroadcastChannel(capacity)
        self.sequence_counter = SequenceCounter()

    def broadcast(self, event: GraphEvent) -> None:
        """Stamp an event with the next sequence id and send it to all subscribers."""
        seq = self.sequence_counter.fetch_add(1)
        self.event_tx.send(WsMessage(event=event, sequence_id=seq, timestamp=int(time.time())))

    def current_sequence_id(self) -> int:
        return self.sequence_counter.load()

    def subscribe(self) -> Subscription:
        return self.event_tx.subscribe()