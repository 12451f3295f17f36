# accountshop/schemas/stats.py
from pydantic import ConfigDict
from sqlmodel import SQLModel

from accountshop.schemas.analytics import DailyVisits


class StatusBreakdown(SQLModel):
    """
    Account count per lifecycle status.
    """
    model_config = ConfigDict(extra="forbid")

    available: int = 0
    reserved: int = 0
    sold: int = 0


class VisitSummary(SQLModel):
    model_config = ConfigDict(extra="forbid")

    today: int
    this_week: int
    this_month: int
    total: int
    unique_days: int


class AdminDashboardStats(SQLModel):
    """
    Full payload for admin dashboard.
    """
    model_config = ConfigDict(extra="forbid")

    total_accounts: int
    by_status: StatusBreakdown
    total_revenue: float
    total_revenue_display: str
    visits: VisitSummary
    visits_last_7_days: list[DailyVisits]
