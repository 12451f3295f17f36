# accountshop/schemas/product.py
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

ProductStatus = Literal["available", "reserved", "sold"]
StatusFilter = Literal["all", "available", "reserved", "sold"]
SortOrder = Literal[
    "newest",
    "oldest",
    "price_asc",
    "price_desc",
    "followers_asc",
    "followers_desc",
]

MAX_PRICE = 1_000_000
MAX_FOLLOWERS = 100_000_000
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 1000
MAX_BIO_LENGTH = 500


class ProductStats(SQLModel):
    """
    Engagement numbers shown on the detail view.
    """

    model_config = ConfigDict(extra="forbid")

    likes: int = Field(default=0, ge=0)
    videos: int = Field(default=0, ge=0)
    bio: str = Field(default="", max_length=MAX_BIO_LENGTH)


class ProductCreate(SQLModel):
    """
    Payload for listing a new account (admin form).

    - status defaults to "available".
    - images are attached afterwards through the image endpoints.
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=2, max_length=MAX_TITLE_LENGTH)
    price: float = Field(ge=0, le=MAX_PRICE)
    followers: int = Field(ge=0, le=MAX_FOLLOWERS)
    status: ProductStatus = "available"
    description: str = Field(default="", max_length=MAX_DESCRIPTION_LENGTH)
    whatsapp_number: str = ""
    stats: ProductStats = Field(default_factory=ProductStats)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("title must have at least 2 characters")
        return v

    @field_validator("description", "whatsapp_number")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class ProductUpdate(SQLModel):
    """
    Partial update payload (merge semantics).
    All fields are optional.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=2, max_length=MAX_TITLE_LENGTH)
    price: float | None = Field(default=None, ge=0, le=MAX_PRICE)
    followers: int | None = Field(default=None, ge=0, le=MAX_FOLLOWERS)
    status: ProductStatus | None = None
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    whatsapp_number: str | None = None
    stats: ProductStats | None = None
    views: int | None = Field(default=None, ge=0)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2:
            raise ValueError("title must have at least 2 characters")
        return v


class ProductRead(SQLModel):
    """
    Product representation for clients and change-feed snapshots.
    """

    id: str
    title: str
    price: float
    followers: int
    status: ProductStatus
    description: str = ""
    whatsapp_number: str = ""
    stats: ProductStats = Field(default_factory=ProductStats)
    main_image: str | None = None
    images: list[str] = Field(default_factory=list)
    views: int = 0
    created_at: datetime
    updated_at: datetime


class ProductFilters(SQLModel):
    """
    Catalog filter state: status, sort order, price ceiling, follower floor.
    """

    model_config = ConfigDict(extra="forbid")

    status: StatusFilter = "all"
    sort: SortOrder = "newest"
    max_price: float | None = Field(default=None, ge=0)
    min_followers: int | None = Field(default=None, ge=0)


class CropBox(SQLModel):
    """
    Crop rectangle in source-image pixels (banner crop step).
    """

    model_config = ConfigDict(extra="forbid")

    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class PurchaseLink(SQLModel):
    product_id: str
    url: str
    message: str
