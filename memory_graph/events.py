"""Graph events and the messages exchanged with real-time clients."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass
class Entity:
    """A named node of the knowledge graph."""

    name: str
    entity_type: str
    observations: list[str] = field(default_factory=list)
    created_by: str = ""
    updated_by: str = ""
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "entityType": self.entity_type,
            "observations": list(self.observations),
            "createdBy": self.created_by,
            "updatedBy": self.updated_by,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Entity":
        try:
            return cls(
                name=data["name"],
                entity_type=_pick(data, "entityType", "entity_type", default=""),
                observations=list(data.get("observations", [])),
                created_by=_pick(data, "createdBy", "created_by", default=""),
                updated_by=_pick(data, "updatedBy", "updated_by", default=""),
                created_at=_pick(data, "createdAt", "created_at", default=0),
                updated_at=_pick(data, "updatedAt", "updated_at", default=0),
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid entity: {exc}") from exc


@dataclass
class Relation:
    """A directed, typed edge between two entities."""

    from_: str
    to: str
    relation_type: str
    created_by: str = ""
    created_at: int = 0
    valid_from: Optional[int] = None
    valid_to: Optional[int] = None

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "from": self.from_,
            "to": self.to,
            "relationType": self.relation_type,
            "createdBy": self.created_by,
            "createdAt": self.created_at,
        }
        if self.valid_from is not None:
            result["validFrom"] = self.valid_from
        if self.valid_to is not None:
            result["validTo"] = self.valid_to
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "Relation":
        try:
            return cls(
                from_=data["from"],
                to=data["to"],
                relation_type=_pick(data, "relationType", "relation_type", default=""),
                created_by=_pick(data, "createdBy", "created_by", default=""),
                created_at=_pick(data, "createdAt", "created_at", default=0),
                valid_from=_pick(data, "validFrom", "valid_from"),
                valid_to=_pick(data, "validTo", "valid_to"),
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid relation: {exc}") from exc


@dataclass
class EntityCreated:
    payload: Entity
    user: Optional[str] = None


@dataclass
class EntityUpdated:
    name: str
    new_observations: list[str]
    user: Optional[str] = None


@dataclass
class EntityDeleted:
    name: str
    user: Optional[str] = None


@dataclass
class RelationCreated:
    payload: Relation
    user: Optional[str] = None


@dataclass
class RelationDeleted:
    from_: str
    to: str
    relation_type: str
    user: Optional[str] = None


@dataclass
class BatchUpdate:
    events: list["GraphEvent"] = field(default_factory=list)


GraphEvent = Union[
    EntityCreated, EntityUpdated, EntityDeleted, RelationCreated, RelationDeleted, BatchUpdate
]


def event_to_dict(event: GraphEvent) -> dict:
    """Serialize a graph event to a dict tagged with its ``type``."""
    user: Optional[str] = None
    match event:
        case EntityCreated(payload=payload, user=user):
            result = {"type": "entity_created", "payload": payload.to_dict()}
        case EntityUpdated(name=name, new_observations=observations, user=user):
            result = {
                "type": "entity_updated",
                "name": name,
                "new_observations": list(observations),
            }
        case EntityDeleted(name=name, user=user):
            result = {"type": "entity_deleted", "name": name}
        case RelationCreated(payload=payload, user=user):
            result = {"type": "relation_created", "payload": payload.to_dict()}
        case RelationDeleted(from_=from_, to=to, relation_type=relation_type, user=user):
            result = {
                "type": "relation_deleted",
                "from": from_,
                "to": to,
                "relation_type": relation_type,
            }
        case BatchUpdate(events=events):
            result = {"type": "batch_update", "events": [event_to_dict(e) for e in events]}
        case _:
            raise TypeError(f"not a graph event: {event!r}")
    if user is not None:
        result["user"] = user
    return result


def event_from_dict(data: dict) -> GraphEvent:
    """Build a graph event from its tagged dict form."""
    if not isinstance(data, dict):
        raise ValueError("graph event must be an object")
    kind = data.get("type")
    user = data.get("user")
    try:
        if kind == "entity_created":
            return EntityCreated(Entity.from_dict(data["payload"]), user)
        if kind == "entity_updated":
            return EntityUpdated(data["name"], list(data["new_observations"]), user)
        if kind == "entity_deleted":
            return EntityDeleted(data["name"], user)
        if kind == "relation_created":
            return RelationCreated(Relation.from_dict(data["payload"]), user)
        if kind == "relation_deleted":
            return RelationDeleted(data["from"], data["to"], data["relation_type"], user)
        if kind == "batch_update":
            return BatchUpdate([event_from_dict(e) for e in data["events"]])
    except (KeyError, TypeError) as exc:
        raise ValueError(f"invalid {kind} event: {exc}") from exc
    raise ValueError(f"unknown event type: {kind!r}")


@dataclass
class WsMessage:
    """A graph event stamped with a sequence id and a Unix timestamp."""

    event: GraphEvent
    sequence_id: int
    timestamp: int

    def to_dict(self) -> dict:
        result = event_to_dict(self.event)
        result["sequence_id"] = self.sequence_id
        result["timestamp"] = self.timestamp
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "WsMessage":
        if not isinstance(data, dict):
            raise ValueError("message must be an object")
        rest = dict(data)
        try:
            sequence_id = rest.pop("sequence_id")
            timestamp = rest.pop("timestamp")
        except KeyError as exc:
            raise ValueError(f"missing field {exc}") from exc
        return cls(event_from_dict(rest), sequence_id, timestamp)


@dataclass
class SubscribeFilter:
    entity_types: Optional[list[str]] = None
    entity_names: Optional[list[str]] = None


@dataclass
class Subscribe:
    channel: str = ""
    filter: Optional[SubscribeFilter] = None


@dataclass
class Unsubscribe:
    channel: str = ""


@dataclass(frozen=True)
class Ping:
    pass


ClientMessage = Union[Subscribe, Unsubscribe, Ping]


def _optional_str_list(data: dict, key: str) -> Optional[list[str]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{key} must be a list of strings")
    return value


def _channel(data: dict) -> str:
    channel = data.get("channel", "")
    if not isinstance(channel, str):
        raise ValueError("channel must be a string")
    return channel


def parse_client_message(text: str) -> ClientMessage:
    """Parse a JSON message sent by a client."""
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("client message must be an object")
    kind = data.get("type")
    if kind == "ping":
        return Ping()
    if kind == "subscribe":
        raw_filter = data.get("filter")
        subscribe_filter = None
        if raw_filter is not None:
            if not isinstance(raw_filter, dict):
                raise ValueError("filter must be an object")
            subscribe_filter = SubscribeFilter(
                _optional_str_list(raw_filter, "entity_types"),
                _optional_str_list(raw_filter, "entity_names"),
            )
        return Subscribe(_channel(data), subscribe_filter)
    if kind == "unsubscribe":
        return Unsubscribe(_channel(data))
    raise ValueError(f"unknown client message type: {kind!r}")


@dataclass
class WelcomeMessage:
    """Sent to a client right after it connects."""

    current_sequence_id: int
    msg_type: str = "connected"

    def to_dict(self) -> dict:
        return {"type": self.msg_type, "current_sequence_id": self.current_sequence_id}


@dataclass
class PongMessage:
    """Reply to a client ping."""

    msg_type: str = "pong"

    def to_dict(self) -> dict:
        return {"type": self.msg_type}