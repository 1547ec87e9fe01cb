"""Entity listing and lookup endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from operator import attrgetter
from typing import Mapping, Optional
from urllib.parse import unquote

from memory_graph.events import Entity, Relation
from memory_graph.rest.common import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    ApiError,
    ApiResponse,
    eq_ignore_ascii_case,
    parse_count,
)
from memory_graph.state import AppState

_SORT_KEYS = {
    "created_at": attrgetter("created_at"),
    "updated_at": attrgetter("updated_at"),
}


@dataclass
class ListEntitiesParams:
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    entity_type: Optional[str] = None
    sort: str = "name"
    order: str = "asc"

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> "ListEntitiesParams":
        return cls(
            limit=parse_count(query, "limit", DEFAULT_LIMIT),
            offset=parse_count(query, "offset", 0),
            entity_type=query.get("type"),
            sort=query.get("sort", "name"),
            order=query.get("order", "asc"),
        )


def list_entities(
    state: AppState, params: Optional[ListEntitiesParams] = None
) -> ApiResponse[list[Entity]]:
    """Entities filtered by type, sorted, and cut to one page."""
    params = params or ListEntitiesParams()
    entities, _ = state.kb.snapshot()
    if params.entity_type is not None:
        entities = [e for e in entities if eq_ignore_ascii_case(e.entity_type, params.entity_type)]
    total = len(entities)
    key = _SORT_KEYS.get(params.sort, attrgetter("name"))
    entities.sort(key=key, reverse=params.order == "desc")
    limit = min(params.limit, MAX_LIMIT)
    page = entities[params.offset : params.offset + limit]
    return ApiResponse(page, state.current_sequence_id(), total=total)


@dataclass
class EntityDetail:
    """An entity with the relations leaving and entering it."""

    entity: Entity
    outgoing_relations: list[Relation] = field(default_factory=list)
    incoming_relations: list[Relation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            **self.entity.to_dict(),
            "outgoing_relations": [r.to_dict() for r in self.outgoing_relations],
            "incoming_relations": [r.to_dict() for r in self.incoming_relations],
        }


def _decode(name: str) -> str:
    try:
        return unquote(name, errors="strict")
    except UnicodeDecodeError:
        return name


def get_entity(state: AppState, name: str) -> ApiResponse[EntityDetail]:
    """Look up one entity by its (percent-encoded) name."""
    decoded = _decode(name)
    entities, relations = state.kb.snapshot()
    entity = next((e for e in entities if e.name == decoded), None)
    if entity is None:
        raise ApiError.not_found(f"Entity '{decoded}' not found")
    detail = EntityDetail(
        entity=entity,
        outgoing_relations=[r for r in relations if r.from_ == decoded],
        incoming_relations=[r for r in relations if r.to == decoded],
    )
    return ApiResponse(detail, state.current_sequence_id())