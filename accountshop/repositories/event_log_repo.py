# accountshop/repositories/event_log_repo.py
from pydantic import TypeAdapter

from accountshop.core.kv_store import KeyValueStore
from accountshop.schemas.analytics import ViewEvent

EVENT_LOG_KEY = "page_views"

_events_adapter = TypeAdapter(list[ViewEvent])


class EventLogRepository:
    """
    Bounded, append-only log of view events kept in a single
    key-value slot as a JSON array.

    - Oldest events are evicted first once `capacity` is exceeded.
    - No business logic: the aggregator decides what to count.
    """

    def __init__(self, store: KeyValueStore, capacity: int = 1000):
        self.store = store
        self.capacity = capacity

    def load(self) -> list[ViewEvent]:
        raw = self.store.get(EVENT_LOG_KEY)
        if not raw:
            return []
        return _events_adapter.validate_json(raw)

    def save(self, events: list[ViewEvent]) -> None:
        self.store.set(EVENT_LOG_KEY, _events_adapter.dump_json(events).decode())

    def append(self, event: ViewEvent) -> list[ViewEvent]:
        events = self.load()
        events.append(event)
        if len(events) > self.capacity:
            del events[: len(events) - self.capacity]
        self.save(events)
        return events

    def clear(self) -> None:
        self.store.delete(EVENT_LOG_KEY)
