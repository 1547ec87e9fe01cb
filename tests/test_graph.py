import pytest

from memory_graph.broadcaster import EventBroadcaster
from memory_graph.events import Entity, EntityDeleted, Relation
from memory_graph.rest.common import ApiError
from memory_graph.rest.graph import (
    EventReplayParams,
    GraphParams,
    get_events_replay,
    get_graph,
    get_stats,
)
from memory_graph.state import AppState, GraphStore


def _state(n_entities=3, relations=()):
    entities = [Entity(f"E{i}", "Person" if i % 2 == 0 else "Module") for i in range(n_entities)]
    return AppState(GraphStore(entities, list(relations)))


def test_get_graph_defaults_include_all():
    rels = [Relation("E0", "E1", "knows"), Relation("E1", "E2", "uses")]
    state = _state(3, rels)
    resp = get_graph(state)
    assert [e.name for e in resp.data.entities] == ["E0", "E1", "E2"]
    assert len(resp.data.relations) == 2
    assert resp.total == 3
    assert resp.sequence_id == state.current_sequence_id()


def test_get_graph_pagination_filters_relations():
    rels = [Relation("E0", "E1", "knows"), Relation("E3", "E4", "uses")]
    state = _state(5, rels)
    resp = get_graph(state, GraphParams(limit=2, offset=0))
    assert [e.name for e in resp.data.entities] == ["E0", "E1"]
    assert [(r.from_, r.to) for r in resp.data.relations] == [("E0", "E1")]
    assert resp.total == 5


def test_get_graph_relation_touching_one_side_included():
    rels = [Relation("E0", "E4", "knows")]
    state = _state(5, rels)
    resp = get_graph(state, GraphParams(limit=1, offset=4))
    assert [e.name for e in resp.data.entities] == ["E4"]
    assert len(resp.data.relations) == 1


def test_get_graph_without_relations():
    state = _state(2, [Relation("E0", "E1", "knows")])
    resp = get_graph(state, GraphParams(include_relations=False))
    assert resp.data.relations == []
    assert resp.to_dict()["data"]["relations"] == []


def test_get_graph_offset_beyond_range():
    state = _state(3)
    resp = get_graph(state, GraphParams(limit=10, offset=50))
    assert resp.data.entities == []
    assert resp.total == 3


def test_get_graph_limit_capped():
    state = _state(1200)
    resp = get_graph(state, GraphParams(limit=5000))
    assert len(resp.data.entities) == 1000


def test_graph_params_from_query():
    params = GraphParams.from_query({"limit": "5", "offset": "2", "include_relations": "false"})
    assert params == GraphParams(limit=5, offset=2, include_relations=False)
    assert GraphParams.from_query({}) == GraphParams()


def test_graph_params_bad_value():
    with pytest.raises(ApiError) as info:
        GraphParams.from_query({"limit": "abc"})
    assert info.value.status == 400


def test_get_stats_counts():
    rels = [Relation("E0", "E1", "knows"), Relation("E1", "E2", "knows"), Relation("E0", "E2", "uses")]
    state = _state(3, rels)
    stats = get_stats(state).data
    assert stats.entity_count == 3
    assert stats.relation_count == 3
    assert {t.entity_type: t.count for t in stats.entity_types} == {"Person": 2, "Module": 1}
    assert {t.relation_type: t.count for t in stats.relation_types} == {"knows": 2, "uses": 1}
    d = stats.to_dict()
    assert sum(t["count"] for t in d["entity_types"]) == d["entity_count"]


def test_get_stats_empty():
    stats = get_stats(AppState()).data
    assert stats.entity_count == 0
    assert stats.entity_types == []


def _broadcaster_with(n):
    b = EventBroadcaster(100)
    for i in range(n):
        b.broadcast(EntityDeleted(name=f"Entity{i}"))
    return b


def test_replay_events_since():
    state = _state(1)
    b = _broadcaster_with(5)
    resp = get_events_replay(state, EventReplayParams(since=2), b)
    assert [m.sequence_id for m in resp.data.events] == [3, 4]
    assert resp.data.needs_full_refresh is False
    assert resp.data.oldest_available == 0


def test_replay_too_old_needs_refresh():
    b = _broadcaster_with(1005)
    resp = get_events_replay(_state(1), EventReplayParams(since=0), b)
    assert resp.data.needs_full_refresh is True
    assert resp.data.events == []
    assert resp.data.oldest_available == 5


def test_replay_without_broadcaster():
    state = _state(1)
    state.broadcast(EntityDeleted(name="x"))
    resp = get_events_replay(state, EventReplayParams(since=0), None)
    d = resp.to_dict()["data"]
    assert d["events"] == []
    assert d["needs_full_refresh"] is False
    assert d["oldest_available"] is None
    assert d["current_sequence_id"] == 1


def test_replay_params_from_query():
    assert EventReplayParams.from_query({"since": "7"}).since == 7
    with pytest.raises(ApiError) as info:
        EventReplayParams.from_query({})
    assert info.value.code == "BAD_REQUEST"