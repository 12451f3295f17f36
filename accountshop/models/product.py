# accountshop/models/product.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Text
from sqlmodel import SQLModel, Field


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(SQLModel, table=True):
    """
    A social-media account listed for sale.

    Columns:
      - id, title, price, followers, status, description,
        whatsapp_number, stats, main_image, images,
        created_at, updated_at, views
    """

    __tablename__ = "products"

    id: str = Field(
        default_factory=_new_id,
        primary_key=True,
        index=True,
        max_length=32,
    )

    title: str = Field(
        max_length=100,
        index=True,
        description="Display name of the account",
    )

    price: float = Field(
        default=0,
        ge=0,
        index=True,
        description="Asking price (MT)",
    )

    followers: int = Field(
        default=0,
        ge=0,
        index=True,
        description="Follower count at listing time",
    )

    status: str = Field(
        default="available",
        max_length=16,
        index=True,
        description="available | reserved | sold",
    )

    description: str = Field(default="", sa_column=Column(Text))

    whatsapp_number: str = Field(
        default="",
        max_length=32,
        description="Contact number for this listing; empty means shop default",
    )

    # {"likes": int, "videos": int, "bio": str}
    stats: dict = Field(default_factory=dict, sa_column=Column(JSON))

    main_image: str | None = Field(
        default=None,
        sa_column=Column(Text),
        description="Banner as data URL (base64 strategy) or public URL",
    )

    images: list[str] = Field(default_factory=list, sa_column=Column(JSON))

    views: int = Field(default=0, ge=0)

    created_at: datetime = Field(
        default_factory=_utcnow,
        index=True,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=_utcnow,
        description="Last mutation timestamp (UTC)",
    )
