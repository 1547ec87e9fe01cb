"""Graph snapshot, statistics and event replay endpoints."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from memory_graph.broadcaster import EventBroadcaster, get_broadcaster
from memory_graph.events import Entity, Relation, WsMessage
from memory_graph.rest.common import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    ApiError,
    ApiResponse,
    parse_count,
    parse_flag,
)
from memory_graph.state import AppState

_GLOBAL: Any = object()


@dataclass
class GraphParams:
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    include_relations: bool = True

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> "GraphParams":
        return cls(
            limit=parse_count(query, "limit", DEFAULT_LIMIT),
            offset=parse_count(query, "offset", 0),
            include_relations=parse_flag(query, "include_relations", True),
        )


@dataclass
class GraphResponse:
    entities: list[Entity] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "relations": [r.to_dict() for r in self.relations],
        }


def get_graph(
    state: AppState, params: Optional[GraphParams] = None
) -> ApiResponse[GraphResponse]:
    """One page of entities plus the relations that touch them."""
    params = params or GraphParams()
    all_entities, all_relations = state.kb.snapshot()
    total_entities = len(all_entities)

    limit = min(params.limit, MAX_LIMIT)
    entities = all_entities[params.offset : params.offset + limit]

    if params.include_relations:
        names = {e.name for e in entities}
        relations = [r for r in all_relations if r.from_ in names or r.to in names]
    else:
        relations = []

    return ApiResponse(
        GraphResponse(entities, relations), state.current_sequence_id(), total=total_entities
    )


@dataclass
class EntityTypeCount:
    entity_type: str
    count: int

    def to_dict(self) -> dict:
        return {"entity_type": self.entity_type, "count": self.count}


@dataclass
class RelationTypeCount:
    relation_type: str
    count: int

    def to_dict(self) -> dict:
        return {"relation_type": self.relation_type, "count": self.count}


@dataclass
class GraphStats:
    entity_count: int
    relation_count: int
    entity_types: list[EntityTypeCount] = field(default_factory=list)
    relation_types: list[RelationTypeCount] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "entity_count": self.entity_count,
            "relation_count": self.relation_count,
            "entity_types": [t.to_dict() for t in self.entity_types],
            "relation_types": [t.to_dict() for t in self.relation_types],
        }


def get_stats(state: AppState) -> ApiResponse[GraphStats]:
    """Counts of entities and relations, overall and per type."""
    entities, relations = state.kb.snapshot()
    entity_counts = Counter(e.entity_type for e in entities)
    relation_counts = Counter(r.relation_type for r in relations)
    stats = GraphStats(
        entity_count=len(entities),
        relation_count=len(relations),
        entity_types=[EntityTypeCount(t, c) for t, c in entity_counts.items()],
        relation_types=[RelationTypeCount(t, c) for t, c in relation_counts.items()],
    )
    return ApiResponse(stats, state.current_sequence_id())


@dataclass
class EventReplayParams:
    since: int

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> "EventReplayParams":
        if "since" not in query:
            raise ApiError.bad_request(
                "Failed to deserialize query string: missing field `since`"
            )
        return cls(since=parse_count(query, "since", 0))


@dataclass
class EventReplayResponse:
    events: list[WsMessage]
    needs_full_refresh: bool
    oldest_available: Optional[int]
    current_sequence_id: int

    def to_dict(self) -> dict:
        return {
            "events": [m.to_dict() for m in self.events],
            "needs_full_refresh": self.needs_full_refresh,
            "oldest_available": self.oldest_available,
            "current_sequence_id": self.current_sequence_id,
        }


def get_events_replay(
    state: AppState,
    params: EventReplayParams,
    broadcaster: Optional[EventBroadcaster] = _GLOBAL,
) -> ApiResponse[EventReplayResponse]:
    """Events missed since ``params.since``, or a request for a full refresh.

    Without an explicit ``broadcaster`` the process-wide one is used; passing
    ``None`` means no broadcaster is running.
    """
    if broadcaster is _GLOBAL:
        broadcaster = get_broadcaster()
    current = state.current_sequence_id()

    if broadcaster is None:
        events: list[WsMessage] = []
        needs_full_refresh = False
        oldest: Optional[int] = None
    else:
        oldest = broadcaster.oldest_sequence_id()
        since = broadcaster.get_events_since(params.since)
        if since is None:
            events, needs_full_refresh = [], True
        else:
            events, needs_full_refresh = since, False

    response = EventReplayResponse(events, needs_full_refresh, oldest, current)
    return ApiResponse(response, current)