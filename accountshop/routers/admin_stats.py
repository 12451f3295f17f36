# accountshop/routers/admin_stats.py
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from sqlmodel import Session

from accountshop.core.auth import SessionGuard, require_admin_session
from accountshop.core.context import (
    AppContext,
    get_context,
    get_stats_service,
    get_visit_aggregator,
)
from accountshop.core.sse import sse_event
from accountshop.database import get_session
from accountshop.schemas.stats import AdminDashboardStats
from accountshop.services.analytics_service import VisitAggregator
from accountshop.services.stats_service import StatsService

router = APIRouter(
    prefix="/admin/stats",
    tags=["Admin Stats"],
    dependencies=[Depends(require_admin_session)],
)


@router.get("", response_model=AdminDashboardStats)
def get_admin_dashboard_stats(
    session: Session = Depends(get_session),
    service: StatsService = Depends(get_stats_service),
):
    """
    Aggregated statistics for the admin dashboard:
    account counts by status, revenue from sold accounts,
    visit counters and the 7-day visit trend.
    """
    return service.get_admin_dashboard_stats(session)


@router.get("/stream")
async def stream_admin_dashboard_stats(
    request: Request,
    guard: SessionGuard = Depends(require_admin_session),
    context: AppContext = Depends(get_context),
):
    """
    Dashboard refreshed every STATS_REFRESH_SECONDS as Server-Sent Events.

    The session is re-checked before every frame. Once it has expired or
    ended, a final `expired` event closes the stream.
    """
    interval = context.settings.STATS_REFRESH_SECONDS

    def snapshot() -> AdminDashboardStats:
        with Session(context.engine) as session:
            return context.stats.get_admin_dashboard_stats(session)

    async def events():
        while not await request.is_disconnected():
            if not guard.validate_session():
                yield sse_event({"remaining_seconds": 0, "countdown": "00:00"}, event="expired")
                return
            stats = await run_in_threadpool(snapshot)
            yield sse_event(stats, event="stats")
            await context.sleep(interval)

    return StreamingResponse(events(), media_type="text/event-stream")


@router.delete("/visits")
def clear_visits(visits: VisitAggregator = Depends(get_visit_aggregator)) -> dict[str, bool]:
    """
    Wipe the analytics event log.
    """
    return {"cleared": visits.clear_all()}
