# accountshop/schemas/analytics.py
from datetime import date, datetime
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

ViewKind = Literal["page_view", "product_view"]


class ViewEvent(SQLModel):
    """
    One page or product view. Never mutated once logged.
    """

    timestamp: datetime
    date: date
    subject_id: str | None = None
    kind: ViewKind = "page_view"


class VisitStats(SQLModel):
    """
    Rolling visit counters, recomputed from the event log on every call.
    """

    today: int = 0
    this_week: int = 0
    this_month: int = 0
    total: int = 0
    unique_days: int = 0
    events: list[ViewEvent] = Field(default_factory=list)


class DailyVisits(SQLModel):
    date: date
    count: int


class PageViewCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    subject_id: str | None = None
