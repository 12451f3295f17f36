# accountshop/services/catalog_sync.py
import enum
import logging
from collections.abc import Callable, Iterable

from accountshop.schemas.product import ProductFilters, ProductRead
from accountshop.services.change_feed import ChangeFeed, Snapshot, Subscription

logger = logging.getLogger(__name__)

# sort key -> (attribute, descending)
SORT_KEYS: dict[str, tuple[str, bool]] = {
    "newest": ("created_at", True),
    "oldest": ("created_at", False),
    "price_asc": ("price", False),
    "price_desc": ("price", True),
    "followers_asc": ("followers", False),
    "followers_desc": ("followers", True),
}


def filter_and_sort(
    products: Iterable[ProductRead],
    filters: ProductFilters,
) -> list[ProductRead]:
    """
    Client-side equivalent of the store query.

    Same predicates as ProductRepository.query(): status equality,
    price <= max_price, followers >= min_followers, then the requested
    sort with newest-first as tie-break.
    """
    items = list(products)
    if filters.status != "all":
        items = [p for p in items if p.status == filters.status]
    if filters.max_price is not None:
        items = [p for p in items if p.price <= filters.max_price]
    if filters.min_followers is not None:
        items = [p for p in items if p.followers >= filters.min_followers]

    attr, descending = SORT_KEYS[filters.sort]
    # stable sorts: tie-break first, then primary key
    items.sort(key=lambda p: p.created_at, reverse=True)
    items.sort(key=lambda p: getattr(p, attr), reverse=descending)
    return items


class SyncState(str, enum.Enum):
    INITIAL = "initial"
    LOADING = "loading"
    LIVE = "live"
    FILTERING = "filtering"
    ERROR = "error"
    CLOSED = "closed"


class CatalogSynchronizer:
    """
    Keeps one catalog view consistent with the store in real time.

    Lifecycle per page load:
      INITIAL -> LOADING -> LIVE (or ERROR)
      LIVE -> FILTERING -> LIVE on explicit filter changes
      any -> CLOSED on close()

    The mirror is a disposable cache: every change-feed snapshot replaces
    it entirely and the current filters are re-applied locally.
    Nothing is retried automatically.
    """

    def __init__(
        self,
        feed: ChangeFeed[ProductRead],
        fetch: Callable[[ProductFilters], list[ProductRead]],
        filters: ProductFilters | None = None,
        on_render: Callable[[list[ProductRead]], None] | None = None,
        notify: Callable[[str], None] | None = None,
    ):
        self.feed = feed
        self.fetch = fetch
        self.filters = filters or ProductFilters()
        self.on_render = on_render
        self.notify = notify

        self.state = SyncState.INITIAL
        self.mirror: list[ProductRead] = []
        self.view: list[ProductRead] = []
        self.notifications: list[str] = []
        self._subscription: Subscription | None = None
        self._last_version = 0

    # ----- Helpers -----

    def _notify(self, message: str) -> None:
        self.notifications.append(message)
        if self.notify is not None:
            self.notify(message)

    def _render(self, products: list[ProductRead]) -> None:
        self.view = products
        if self.on_render is not None:
            self.on_render(products)

    # ----- Lifecycle -----

    def load(self) -> None:
        """Initial bulk fetch with current filters, then go live."""
        self.state = SyncState.LOADING
        # Ignore snapshots emitted before our fetch started.
        self._last_version = self.feed.version
        try:
            products = self.fetch(self.filters)
        except Exception:
            logger.exception("Initial catalog load failed")
            self.state = SyncState.ERROR
            self._render([])
            self._notify("Could not load accounts")
            return

        self._render(products)
        self._subscription = self.feed.subscribe(self._on_snapshot, self._on_feed_error)
        self.state = SyncState.LIVE

    def apply_filters(self, filters: ProductFilters) -> None:
        """Re-query the store with a new predicate set."""
        if self.state is SyncState.CLOSED:
            return
        previous = self.state
        self.filters = filters
        self.state = SyncState.FILTERING
        try:
            products = self.fetch(filters)
        except Exception:
            logger.exception("Filter query failed")
            self.state = previous
            self._notify("Could not apply filters")
            return

        self._render(products)
        if self._subscription is None:
            # re-filtering after a failed load is the manual retry path
            self._subscription = self.feed.subscribe(self._on_snapshot, self._on_feed_error)
        self.state = SyncState.LIVE
        self._notify(f"Filters applied ({len(products)} accounts)")

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self.state = SyncState.CLOSED

    # ----- Change feed callbacks -----

    def _on_snapshot(self, snapshot: Snapshot[ProductRead]) -> None:
        if snapshot.version <= self._last_version:
            return
        self._last_version = snapshot.version
        self.mirror = list(snapshot.documents)
        self._render(filter_and_sort(self.mirror, self.filters))

    def _on_feed_error(self, exc: Exception) -> None:
        logger.error("Live catalog updates failed: %s", exc)
        self._notify("Live updates interrupted")
