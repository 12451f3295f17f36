# accountshop/services/stats_service.py
from sqlmodel import Session

from accountshop.core.formatting import format_price
from accountshop.repositories.product_repo import ProductRepository
from accountshop.schemas.stats import (
    AdminDashboardStats,
    StatusBreakdown,
    VisitSummary,
)
from accountshop.services.analytics_service import VisitAggregator


class StatsService:
    """
    Orchestrates aggregated admin dashboard statistics.
    """

    def __init__(self, repo: ProductRepository, visits: VisitAggregator):
        self.repo = repo
        self.visits = visits

    def get_admin_dashboard_stats(self, session: Session) -> AdminDashboardStats:
        products = self.repo.list_all(session)

        by_status = StatusBreakdown()
        revenue = 0.0
        for p in products:
            if p.status == "available":
                by_status.available += 1
            elif p.status == "reserved":
                by_status.reserved += 1
            elif p.status == "sold":
                by_status.sold += 1
                revenue += float(p.price or 0)

        stats = self.visits.compute_stats()

        return AdminDashboardStats(
            total_accounts=len(products),
            by_status=by_status,
            total_revenue=revenue,
            total_revenue_display=format_price(revenue),
            visits=VisitSummary(
                today=stats.today,
                this_week=stats.this_week,
                this_month=stats.this_month,
                total=stats.total,
                unique_days=stats.unique_days,
            ),
            visits_last_7_days=self.visits.trend(stats.events),
        )
