# accountshop/routers/analytics.py
from fastapi import APIRouter, Depends, status

from accountshop.core.context import get_visit_aggregator
from accountshop.schemas.analytics import PageViewCreate
from accountshop.services.analytics_service import VisitAggregator

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.post("/page-view", status_code=status.HTTP_202_ACCEPTED)
def track_page_view(
    payload: PageViewCreate | None = None,
    visits: VisitAggregator = Depends(get_visit_aggregator),
) -> dict[str, str]:
    """
    Record a storefront page view (or a product view when subject_id
    is given). Always accepted: analytics failures are swallowed.
    """
    visits.record_view(payload.subject_id if payload else None)
    return {"status": "accepted"}
