# accountshop/services/change_feed.py
import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    """Full contents of the collection at one point in time."""

    version: int
    documents: tuple[T, ...]


class Subscription:
    def __init__(self, feed: "ChangeFeed", on_snapshot, on_error):
        self._feed = feed
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._feed._remove(self)


class ChangeFeed(Generic[T]):
    """
    In-process collection-level live subscription.

    - publish_from() reads the authoritative collection and pushes it to
      every subscriber while holding the feed lock, so delivery order
      matches store order.
    - Subscribers never see partial updates: each notification carries the
      whole collection.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscription] = []
        self._lock = threading.RLock()
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def subscribe(
        self,
        on_snapshot: Callable[[Snapshot[T]], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Subscription:
        sub = Subscription(self, on_snapshot, on_error)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

    def publish_from(self, loader: Callable[[], Sequence[T]]) -> Snapshot[T] | None:
        """
        Load the current collection and deliver it.

        A failing loader is reported to subscribers via `fail()` and
        returns None; it never propagates to the mutating caller.
        """
        with self._lock:
            try:
                documents = tuple(loader())
            except Exception as exc:
                logger.error("Change feed could not load snapshot", exc_info=True)
                self.fail(exc)
                return None
            self._version += 1
            snapshot = Snapshot(version=self._version, documents=documents)
            for sub in list(self._subscribers):
                self._deliver(sub, snapshot)
            return snapshot

    def fail(self, exc: Exception) -> None:
        with self._lock:
            for sub in list(self._subscribers):
                if sub.on_error is None:
                    continue
                try:
                    sub.on_error(exc)
                except Exception:
                    logger.exception("Change feed error handler failed")

    def _deliver(self, sub: Subscription, snapshot: Snapshot[T]) -> None:
        try:
            sub.on_snapshot(snapshot)
        except Exception as exc:
            logger.exception("Change feed subscriber failed on version %d", snapshot.version)
            if sub.on_error is not None:
                try:
                    sub.on_error(exc)
                except Exception:
                    logger.exception("Change feed error handler failed")
