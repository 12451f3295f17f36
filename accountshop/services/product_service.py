# accountshop/services/product_service.py
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable
from urllib.parse import quote

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from accountshop.core.formatting import format_price
from accountshop.core.storage_utils import (
    delete_public_url,
    generate_filename,
    upload_to_storage,
)
from accountshop.models.product import Product
from accountshop.repositories.product_repo import ProductRepository
from accountshop.schemas.product import (
    MAX_BIO_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_FOLLOWERS,
    MAX_PRICE,
    MAX_TITLE_LENGTH,
    CropBox,
    ProductCreate,
    ProductFilters,
    ProductRead,
    ProductStatus,
    ProductUpdate,
    PurchaseLink,
)
from accountshop.services.change_feed import ChangeFeed
from accountshop.services.image_service import ImageService, to_data_url

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class ProductService:
    """
    Business logic for account listings.

    Responsibilities:
      - backing-store reads (point + predicate queries)
      - admin mutations (create / merge update / delete / status changes)
      - image pipeline orchestration (base64 or Supabase bucket)
      - publishing a fresh snapshot on the change feed after each mutation
      - mapping store failures to short readable errors (no retries)
    """

    def __init__(
        self,
        repo: ProductRepository,
        feed: ChangeFeed[ProductRead],
        images: ImageService,
        storage_strategy: str = "base64",
        max_images: int = 4,
        whatsapp_number: str = "",
    ):
        self.repo = repo
        self.feed = feed
        self.images = images
        self.storage_strategy = storage_strategy
        self.max_images = max_images
        self.whatsapp_number = whatsapp_number

    # ----- Helpers -----

    @contextmanager
    def _store_call(self, session: Session, message: str):
        """Wrap a store round trip; failures become a 503 with `message`."""
        try:
            yield
        except SQLAlchemyError:
            session.rollback()
            logger.exception(message)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=message,
            )

    def _publish(self, session: Session) -> None:
        self.feed.publish_from(lambda: self.snapshot(session))

    @staticmethod
    def _sanitize(product: Product) -> None:
        product.title = product.title.strip()[:MAX_TITLE_LENGTH]
        product.description = (product.description or "").strip()[:MAX_DESCRIPTION_LENGTH]
        product.price = _clamp(float(product.price or 0), 0, MAX_PRICE)
        product.followers = int(_clamp(int(product.followers or 0), 0, MAX_FOLLOWERS))
        product.views = max(0, int(product.views or 0))
        stats = dict(product.stats or {})
        product.stats = {
            "likes": max(0, int(stats.get("likes") or 0)),
            "videos": max(0, int(stats.get("videos") or 0)),
            "bio": str(stats.get("bio") or "").strip()[:MAX_BIO_LENGTH],
        }

    def _store_image(self, product_id: str, prefix: str, data: bytes, content_type: str) -> str:
        """
        Persist one processed image and return the value kept on the listing.

        - "base64": data URL embedded in the document
        - "bucket": Supabase Storage public URL
        """
        if self.storage_strategy == "bucket":
            ext = self.images.validate_image(content_type, len(data))
            path = f"{product_id}/{generate_filename(prefix, ext)}"
            return upload_to_storage(path, data, content_type)
        return to_data_url(data, content_type)

    def _discard_images(self, urls: Iterable[str | None]) -> None:
        if self.storage_strategy != "bucket":
            return
        for url in urls:
            if not url:
                continue
            try:
                delete_public_url(url)
            except Exception:
                # best-effort cleanup
                logger.warning("Could not delete stored image %s", url, exc_info=True)

    # ----- Reads -----

    def snapshot(self, session: Session) -> list[ProductRead]:
        return [ProductRead.model_validate(p) for p in self.repo.list_all(session)]

    def list_products(
        self,
        session: Session,
        filters: ProductFilters | None = None,
    ) -> list[ProductRead]:
        with self._store_call(session, "Could not load accounts"):
            rows = self.repo.query(session, filters or ProductFilters())
        return [ProductRead.model_validate(p) for p in rows]

    def get_product(self, session: Session, product_id: str) -> Product:
        with self._store_call(session, "Could not load account"):
            product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Account not found",
            )
        return product

    # ----- Mutations -----

    def create_product(self, session: Session, payload: ProductCreate) -> Product:
        """
        Create a listing. Status defaults to "available", views start at 0;
        id and created_at are assigned by the store layer.
        """
        product = Product(
            title=payload.title,
            price=payload.price,
            followers=payload.followers,
            status=payload.status,
            description=payload.description,
            whatsapp_number=payload.whatsapp_number,
            stats=payload.stats.model_dump(),
            views=0,
        )
        self._sanitize(product)
        with self._store_call(session, "Could not create account"):
            created = self.repo.create(session, product)
        logger.info("Created account %s (%s)", created.id, created.title)
        self._publish(session)
        return created

    def update_product(
        self,
        session: Session,
        product_id: str,
        payload: ProductUpdate,
    ) -> Product:
        """Merge update: only fields present in the payload change."""
        product = self.get_product(session, product_id)

        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in changes.items():
            setattr(product, field, value)

        self._sanitize(product)
        product.updated_at = datetime.now(timezone.utc)
        with self._store_call(session, "Could not update account"):
            updated = self.repo.update(session, product)
        self._publish(session)
        return updated

    def set_status(self, session: Session, product_id: str, new_status: ProductStatus) -> Product:
        return self.update_product(session, product_id, ProductUpdate(status=new_status))

    def mark_as_sold(self, session: Session, product_id: str) -> Product:
        return self.set_status(session, product_id, "sold")

    def mark_as_available(self, session: Session, product_id: str) -> Product:
        return self.set_status(session, product_id, "available")

    def reserve_product(self, session: Session, product_id: str) -> Product:
        return self.set_status(session, product_id, "reserved")

    def delete_product(self, session: Session, product_id: str) -> None:
        """Hard delete; stored images are cleaned up best-effort."""
        product = self.get_product(session, product_id)
        stored = [product.main_image, *(product.images or [])]
        with self._store_call(session, "Could not delete account"):
            self.repo.delete(session, product)
        self._discard_images(stored)
        logger.info("Deleted account %s", product_id)
        self._publish(session)

    # ----- Images -----

    def set_main_image(
        self,
        session: Session,
        product_id: str,
        content_type: str,
        file_bytes: bytes,
        crop: CropBox | None = None,
    ) -> Product:
        """
        Upload or replace the banner.

        - Validates type + size, applies the optional crop, compresses.
        - Rejects the change if the listing would exceed the size ceiling.
        """
        product = self.get_product(session, product_id)
        data, new_type = self.images.prepare(content_type, file_bytes, crop)

        new_main = self._store_image(product.id, "banner", data, new_type)
        old_main = product.main_image
        try:
            self.images.validate_document_size(new_main, list(product.images or []))
            product.main_image = new_main
            product.updated_at = datetime.now(timezone.utc)
            with self._store_call(session, "Could not save banner"):
                updated = self.repo.update(session, product)
        except Exception:
            self._discard_images([new_main])
            raise
        self._discard_images([old_main])
        self._publish(session)
        return updated

    def replace_gallery(
        self,
        session: Session,
        product_id: str,
        files: Iterable[tuple[str, bytes]],
    ) -> Product:
        """
        Replace the secondary photos with a new ordered set.

        Args:
            files: iterable of (content_type, file_bytes)
        """
        files = list(files)
        if len(files) > self.max_images:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"At most {self.max_images} images allowed",
            )

        product = self.get_product(session, product_id)
        old_images = list(product.images or [])
        new_images: list[str] = []
        try:
            for idx, (content_type, file_bytes) in enumerate(files):
                data, new_type = self.images.prepare(content_type, file_bytes)
                new_images.append(self._store_image(product.id, f"photo{idx}", data, new_type))

            self.images.validate_document_size(product.main_image, new_images)

            product.images = new_images
            product.updated_at = datetime.now(timezone.utc)
            with self._store_call(session, "Could not save photos"):
                updated = self.repo.update(session, product)
        except Exception:
            # nothing references the new uploads yet
            self._discard_images(new_images)
            raise
        self._discard_images(old_images)
        self._publish(session)
        return updated

    # ----- Purchase -----

    def purchase_link(self, product: Product) -> PurchaseLink:
        """WhatsApp deep link with a prefilled purchase message."""
        if product.status != "available":
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This account is not available for purchase",
            )
        message = (
            f"Hello, I'm interested in the account *{product.title}* "
            f"(ID: {product.id}), price {format_price(product.price)}. "
            "My name: ___. How do I proceed with payment?"
        )
        number = product.whatsapp_number or self.whatsapp_number
        return PurchaseLink(
            product_id=product.id,
            url=f"https://wa.me/{number}?text={quote(message)}",
            message=message,
        )
