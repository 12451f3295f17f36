# accountshop/services/analytics_service.py
import functools
import logging
from collections import Counter
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from accountshop.repositories.event_log_repo import EventLogRepository
from accountshop.schemas.analytics import DailyVisits, ViewEvent, VisitStats

logger = logging.getLogger(__name__)

TREND_DAYS = 7
WEEK = timedelta(days=7)
MONTH = timedelta(days=30)


def best_effort(default_factory: Callable[[], object]):
    """
    Failure boundary for analytics calls.

    Any exception is logged and replaced by `default_factory()`;
    analytics must never break browsing or purchase flows.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception:
                logger.warning("Analytics call %s failed", func.__name__, exc_info=True)
                return default_factory()

        return wrapper

    return decorator


class VisitAggregator:
    """
    Rolling visit statistics derived from the event log.

    Nothing is cached: every read re-scans the (bounded) log.
    """

    def __init__(
        self,
        log: EventLogRepository,
        tz: str = "UTC",
        retention_days: int = 30,
        clock: Callable[[], datetime] | None = None,
    ):
        self.log = log
        self.tz = ZoneInfo(tz)
        self.retention = timedelta(days=retention_days)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ----- Helpers -----

    def _now(self) -> datetime:
        return self.clock()

    def local_date(self, ts: datetime) -> date:
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(self.tz).date()

    def today(self) -> date:
        return self.local_date(self._now())

    def last_7_days(self) -> list[date]:
        """Day keys for the trend chart, oldest first, ending today."""
        today = self.today()
        return [today - timedelta(days=i) for i in range(TREND_DAYS - 1, -1, -1)]

    @staticmethod
    def _aware(ts: datetime) -> datetime:
        return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)

    # ----- Writes -----

    @best_effort(lambda: None)
    def record_view(self, subject_id: str | None = None) -> None:
        now = self._now()
        event = ViewEvent(
            timestamp=now,
            date=self.local_date(now),
            subject_id=subject_id,
            kind="product_view" if subject_id else "page_view",
        )
        self.log.append(event)

    @best_effort(lambda: None)
    def purge_older_than_30_days(self) -> None:
        """Retention sweep, run once at startup."""
        cutoff = self._now() - self.retention
        events = self.log.load()
        recent = [e for e in events if self._aware(e.timestamp) >= cutoff]
        self.log.save(recent)
        logger.info("Analytics retention sweep removed %d events", len(events) - len(recent))

    @best_effort(lambda: False)
    def clear_all(self) -> bool:
        self.log.clear()
        logger.info("Analytics event log cleared")
        return True

    # ----- Reads -----

    @best_effort(VisitStats)
    def compute_stats(self) -> VisitStats:
        events = self.log.load()
        now = self._now()
        today = self.local_date(now)
        week_ago = now - WEEK
        month_ago = now - MONTH

        return VisitStats(
            today=sum(1 for e in events if e.date == today),
            this_week=sum(1 for e in events if self._aware(e.timestamp) >= week_ago),
            this_month=sum(1 for e in events if self._aware(e.timestamp) >= month_ago),
            total=len(events),
            unique_days=len({e.date for e in events}),
            events=events,
        )

    def bucket_last_7_days(self, events: list[ViewEvent]) -> list[int]:
        """
        Count events per day for the last 7 days (oldest first).
        Events outside the window are ignored.
        """
        days = self.last_7_days()
        window = set(days)
        buckets = Counter(e.date for e in events if e.date in window)
        return [buckets.get(day, 0) for day in days]

    def trend(self, events: list[ViewEvent]) -> list[DailyVisits]:
        days = self.last_7_days()
        counts = self.bucket_last_7_days(events)
        return [DailyVisits(date=day, count=count) for day, count in zip(days, counts)]

    @best_effort(lambda: 0)
    def views_for_subject(self, subject_id: str) -> int:
        return sum(1 for e in self.log.load() if e.subject_id == subject_id)
