# accountshop/repositories/product_repo.py
from sqlmodel import Session, select

from accountshop.models.product import Product
from accountshop.schemas.product import ProductFilters

# sort key -> (column, descending)
_ORDERING = {
    "newest": (Product.created_at, True),
    "oldest": (Product.created_at, False),
    "price_asc": (Product.price, False),
    "price_desc": (Product.price, True),
    "followers_asc": (Product.followers, False),
    "followers_desc": (Product.followers, True),
}


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations (CRUD + predicate queries).
    - No FastAPI, no business logic.
    """

    def get_by_id(self, session: Session, product_id: str) -> Product | None:
        return session.get(Product, product_id)

    def list_all(self, session: Session) -> list[Product]:
        """Whole collection, newest first (change-feed order)."""
        stmt = select(Product).order_by(Product.created_at.desc())
        return list(session.exec(stmt).all())

    def query(self, session: Session, filters: ProductFilters) -> list[Product]:
        """
        Predicate query pushed down to the database:
          - status equality (unless "all")
          - price <= max_price
          - followers >= min_followers
          - one sort key, newest first as tie-break
        """
        stmt = select(Product)
        if filters.status != "all":
            stmt = stmt.where(Product.status == filters.status)
        if filters.max_price is not None:
            stmt = stmt.where(Product.price <= filters.max_price)
        if filters.min_followers is not None:
            stmt = stmt.where(Product.followers >= filters.min_followers)

        column, descending = _ORDERING[filters.sort]
        stmt = stmt.order_by(column.desc() if descending else column.asc())
        if column is not Product.created_at:
            stmt = stmt.order_by(Product.created_at.desc())
        return list(session.exec(stmt).all())

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def delete(self, session: Session, product: Product) -> None:
        session.delete(product)
        session.commit()
