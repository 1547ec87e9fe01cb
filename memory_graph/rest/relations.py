"""Relation listing endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from memory_graph.events import Relation
from memory_graph.rest.common import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    ApiResponse,
    eq_ignore_ascii_case,
    parse_count,
)
from memory_graph.state import AppState


@dataclass
class ListRelationsParams:
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    relation_type: Optional[str] = None
    from_: Optional[str] = None
    to: Optional[str] = None

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> "ListRelationsParams":
        return cls(
            limit=parse_count(query, "limit", DEFAULT_LIMIT),
            offset=parse_count(query, "offset", 0),
            relation_type=query.get("type"),
            from_=query.get("from"),
            to=query.get("to"),
        )


def _matches(relation: Relation, params: ListRelationsParams) -> bool:
    checks = (
        (params.relation_type, relation.relation_type),
        (params.from_, relation.from_),
        (params.to, relation.to),
    )
    return all(
        wanted is None or eq_ignore_ascii_case(actual, wanted) for wanted, actual in checks
    )


def list_relations(
    state: AppState, params: Optional[ListRelationsParams] = None
) -> ApiResponse[list[Relation]]:
    """Filtered relations sorted by source, target and type, one page of them."""
    params = params or ListRelationsParams()
    _, relations = state.kb.snapshot()
    selected = [r for r in relations if _matches(r, params)]
    total = len(selected)
    selected.sort(key=lambda r: (r.from_, r.to, r.relation_type))
    limit = min(params.limit, MAX_LIMIT)
    page = selected[params.offset : params.offset + limit]
    return ApiResponse(page, state.current_sequence_id(), total=total)