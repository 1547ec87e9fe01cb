import json

import pytest

from memory_graph.events import (
    BatchUpdate,
    Entity,
    EntityCreated,
    EntityDeleted,
    EntityUpdated,
    Ping,
    PongMessage,
    Relation,
    RelationCreated,
    RelationDeleted,
    Subscribe,
    SubscribeFilter,
    Unsubscribe,
    WelcomeMessage,
    WsMessage,
    event_from_dict,
    event_to_dict,
    parse_client_message,
)


def test_graph_event_serialization():
    event = EntityCreated(
        payload=Entity(name="Test", entity_type="Feature", observations=["obs1"]),
        user="test_user",
    )
    text = json.dumps(event_to_dict(event))
    assert "entity_created" in text
    assert "Test" in text
    assert event_to_dict(event)["user"] == "test_user"


def test_ws_message_serialization():
    msg = WsMessage(event=EntityDeleted(name="OldEntity"), sequence_id=42, timestamp=1234567890)
    data = json.loads(msg.to_json())
    assert data["sequence_id"] == 42
    assert data["type"] == "entity_deleted"
    assert data["name"] == "OldEntity"
    assert "user" not in data


def test_client_message_parsing():
    assert parse_client_message('{"type":"ping"}') == Ping()


def test_subscribe_defaults_and_filter():
    msg = parse_client_message('{"type":"subscribe"}')
    assert msg == Subscribe(channel="", filter=None)
    msg = parse_client_message(
        '{"type":"subscribe","channel":"graph","filter":{"entity_types":["Person"]}}'
    )
    assert msg == Subscribe("graph", SubscribeFilter(entity_types=["Person"]))


def test_unsubscribe_parsing():
    assert parse_client_message('{"type":"unsubscribe","channel":"x"}') == Unsubscribe("x")


@pytest.mark.parametrize("text", ['{"type":"shout"}', "[1]", '{"type":"subscribe","channel":5}'])
def test_invalid_client_messages(text):
    with pytest.raises(ValueError):
        parse_client_message(text)


def test_event_round_trips():
    events = [
        EntityCreated(Entity("A", "Person", ["x"], created_at=5), None),
        EntityUpdated("A", ["new"], "bob"),
        EntityDeleted("A"),
        RelationCreated(Relation("A", "B", "knows"), "carol"),
        RelationDeleted("A", "B", "knows"),
        BatchUpdate([EntityDeleted("X"), EntityDeleted("Y")]),
    ]
    for event in events:
        assert event_from_dict(event_to_dict(event)) == event


def test_relation_deleted_keys():
    data = event_to_dict(RelationDeleted("A", "B", "knows", "u"))
    assert data == {
        "type": "relation_deleted",
        "from": "A",
        "to": "B",
        "relation_type": "knows",
        "user": "u",
    }


def test_ws_message_round_trip():
    msg = WsMessage(BatchUpdate([EntityDeleted("E1")]), 7, 100)
    assert WsMessage.from_dict(json.loads(msg.to_json())) == msg


def test_ws_message_missing_field():
    with pytest.raises(ValueError):
        WsMessage.from_dict({"type": "entity_deleted", "name": "x", "timestamp": 1})


def test_unknown_event_type():
    with pytest.raises(ValueError):
        event_from_dict({"type": "nothing"})


def test_entity_accepts_snake_case_keys():
    entity = Entity.from_dict({"name": "Alice", "entity_type": "Person", "observations": []})
    assert entity.entity_type == "Person"
    assert entity.to_dict()["entityType"] == "Person"


def test_welcome_and_pong():
    assert WelcomeMessage(3).to_dict() == {"type": "connected", "current_sequence_id": 3}
    assert PongMessage().to_dict() == {"type": "pong"}