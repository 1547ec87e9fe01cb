# memory_graph

Building blocks for serving a knowledge graph of entities and relations to
live clients. The package uses only the standard library.

- `memory_graph.events`: the `Entity` and `Relation` records and the graph
  events `EntityCreated`, `EntityUpdated`, `EntityDeleted`, `RelationCreated`,
  `RelationDeleted` and `BatchUpdate`. `event_to_dict` and `event_from_dict`
  convert events to and from tagged dicts. `WsMessage` wraps an event with a
  `sequence_id` and a Unix `timestamp`. The module also parses client messages
  (`parse_client_message` returns `Subscribe`, `Unsubscribe` or `Ping`) and
  defines `WelcomeMessage` and `PongMessage`.
- `memory_graph.broadcaster`: `SequenceCounter`, a bounded multi-subscriber
  `BroadcastChannel` with `Subscription.try_recv` and the async
  `Subscription.recv`, and `EventBroadcaster`, which keeps the last 1000
  messages for replay. A subscriber that falls behind gets a `Lagged` error.
  Reading from a closed channel that has nothing left raises `ChannelClosed`.
- `memory_graph.batcher`: `EventBatcher` gathers events into one message.
- `memory_graph.state`: `GraphStore`, a thread-safe in-memory list of entities
  and relations, and `AppState`, which holds the store, an event channel and a
  sequence counter.
- `memory_graph.session`: `SessionManager` tracks client sessions and turns
  API keys into user names. The module also defines the server-sent event
  payloads `SseResponse`, `SseGraphEvent`, `SsePing`, `SseWelcome` and
  `SseError`.
- `memory_graph.rest`: handlers that do not depend on any web framework. They
  list, page, filter and sort the graph, report statistics and replay events.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Broadcasting events

```python
from memory_graph.broadcaster import init_broadcaster, entity_deleted

broadcaster = init_broadcaster(1024)
subscription = broadcaster.subscribe()

entity_deleted("OldEntity", "alice")

message = subscription.try_recv()
print(message.sequence_id, message.to_json())
```

`init_broadcaster` creates one broadcaster for the whole process and returns
the same one on every later call. The helpers `entity_created`,
`entity_updated`, `entity_deleted`, `relation_created` and `relation_deleted`
go through `broadcast_event`, which does nothing until `init_broadcaster` has
been called.

## Replaying missed events

```python
events = broadcaster.get_events_since(last_seen_sequence_id)
if events is None:
    ...  # that id is no longer in history: fetch a full snapshot instead
```

`get_events_since` returns the messages whose sequence id is greater than the
one given. It returns an empty list when the history is empty.

## Batching

```python
import asyncio
from memory_graph.batcher import EventBatcher
from memory_graph.broadcaster import BroadcastChannel, SequenceCounter

channel = BroadcastChannel(100)
batcher = EventBatcher(channel, SequenceCounter())  # 50 ms, 100 events
queue = asyncio.Queue()
task = asyncio.create_task(batcher.run(queue))
```

`push` flushes as soon as `max_batch_size` events are buffered. `run` also
flushes once per flush interval. A flush of a single event sends that event
as it is. A flush of several events wraps them in a `BatchUpdate`. Putting
`None` on the queue makes `run` flush whatever is left and return.

## Sessions

```python
from memory_graph.session import SessionManager

SessionManager.validate_api_key("alice:placeholder")  # "alice"
SessionManager.validate_api_key("placeholder")        # "api-user-placehol"
SessionManager.validate_api_key("")                   # None
```

## REST views

Each handler takes an `AppState`, and in most cases a parameter object. It
returns an `ApiResponse`, and `to_dict()` turns that into the JSON body. A
failure is raised as `ApiError`, which carries `status`, `code` and
`to_dict()`:

```python
from memory_graph.events import Entity
from memory_graph.rest.common import ApiError
from memory_graph.rest.entities import ListEntitiesParams, get_entity, list_entities
from memory_graph.state import AppState, GraphStore

state = AppState(GraphStore([Entity("Alice", "Person")]))
params = ListEntitiesParams.from_query({"limit": "10", "sort": "name", "order": "desc"})
body = list_entities(state, params).to_dict()

try:
    get_entity(state, "Nobody")
except ApiError as err:
    print(err.status, err.to_dict())  # 404 {'error': ..., 'code': 'NOT_FOUND'}
```

- `rest.entities`: `list_entities` and `get_entity`. `get_entity` percent-decodes
  the name it is given and returns the entity together with its outgoing and
  incoming relations.
- `rest.relations`: `list_relations`. It filters by type, `from` and `to`,
  ignoring ASCII case, and sorts by source, then target, then type.
- `rest.graph`: `get_graph` returns a page of entities and the relations that
  touch them. `get_stats` returns counts overall and per type.
  `get_events_replay` uses the process-wide broadcaster unless one is passed
  in.

Each `from_query` reads a mapping of query-string values. A bad number or
flag raises `ApiError.bad_request`. Limits are capped at 1000. Every response
carries the current `sequence_id`. Paged responses also carry `total`.

## What this package does not do

There is no HTTP, WebSocket or SSE server here, and no command to start one.
The handlers and payloads are meant to be wired into a server of your
choosing. The package does not handle MCP JSON-RPC requests, it has no tools,
no login or token authentication and no graph search. The graph lives only
in memory in `GraphStore`, and nothing saves it to disk.