from datetime import datetime, timedelta, timezone

from accountshop.schemas.product import ProductRead


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)

    async def sleep(self, seconds: float) -> None:
        self.advance(seconds=seconds)


def make_product(
    product_id: str,
    status: str = "available",
    price: float = 100,
    followers: int = 1000,
    created_at: datetime | None = None,
) -> ProductRead:
    created = created_at or datetime(2024, 5, 1, tzinfo=timezone.utc)
    return ProductRead(
        id=product_id,
        title=f"Account {product_id}",
        price=price,
        followers=followers,
        status=status,
        created_at=created,
        updated_at=created,
    )
