import pytest

from memory_graph.events import EntityDeleted, Relation
from memory_graph.rest.common import ApiError
from memory_graph.rest.relations import ListRelationsParams, list_relations
from memory_graph.state import AppState, GraphStore


@pytest.fixture
def state():
    relations = [
        Relation("Carol", "Alice", "knows"),
        Relation("Alice", "Bob", "uses"),
        Relation("Alice", "Bob", "knows"),
        Relation("Bob", "Carol", "KNOWS"),
    ]
    return AppState(GraphStore([], relations))


def _triples(response):
    return [(r.from_, r.to, r.relation_type) for r in response.data]


def test_list_all_sorted(state):
    response = list_relations(state)
    assert _triples(response) == [
        ("Alice", "Bob", "knows"),
        ("Alice", "Bob", "uses"),
        ("Bob", "Carol", "KNOWS"),
        ("Carol", "Alice", "knows"),
    ]
    assert response.total == len(response.data)


def test_filter_by_type_ignores_case(state):
    response = list_relations(state, ListRelationsParams(relation_type="Knows"))
    assert [r.relation_type.lower() for r in response.data] == ["knows"] * len(response.data)
    assert response.total == 3


def test_filter_by_from_and_to(state):
    response = list_relations(state, ListRelationsParams(from_="alice", to="BOB"))
    assert _triples(response) == [("Alice", "Bob", "knows"), ("Alice", "Bob", "uses")]


def test_pagination_keeps_total(state):
    response = list_relations(state, ListRelationsParams(limit=1, offset=1))
    assert _triples(response) == [("Alice", "Bob", "uses")]
    assert response.total == 4


def test_offset_beyond_range(state):
    response = list_relations(state, ListRelationsParams(offset=50))
    assert response.data == []
    assert response.total == 4


def test_sequence_id_reported(state):
    state.broadcast(EntityDeleted(name="x"))
    response = list_relations(state)
    assert response.sequence_id == state.current_sequence_id()
    assert response.to_dict()["sequence_id"] == 1


def test_from_query_parses_fields():
    params = ListRelationsParams.from_query(
        {"type": "knows", "from": "Alice", "to": "Bob", "limit": "2", "offset": "1"}
    )
    assert params == ListRelationsParams(
        limit=2, offset=1, relation_type="knows", from_="Alice", to="Bob"
    )


def test_from_query_defaults():
    params = ListRelationsParams.from_query({})
    assert params.limit == 100
    assert params.offset == 0
    assert params.relation_type is None


def test_from_query_rejects_bad_number():
    with pytest.raises(ApiError) as info:
        ListRelationsParams.from_query({"offset": "minus"})
    assert info.value.code == "BAD_REQUEST"