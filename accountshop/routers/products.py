# accountshop/routers/products.py
import asyncio

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from sqlmodel import Session

from accountshop.core.auth import require_admin_session
from accountshop.core.context import (
    AppContext,
    get_context,
    get_product_service,
    get_visit_aggregator,
)
from accountshop.core.sse import KEEPALIVE_SECONDS, sse_comment, sse_event
from accountshop.database import get_session
from accountshop.schemas.product import (
    CropBox,
    ProductCreate,
    ProductFilters,
    ProductRead,
    ProductUpdate,
    PurchaseLink,
    SortOrder,
    StatusFilter,
)
from accountshop.services.analytics_service import VisitAggregator
from accountshop.services.catalog_sync import CatalogSynchronizer
from accountshop.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])


def catalog_filters(
    status: StatusFilter = "all",
    sort: SortOrder = "newest",
    max_price: float | None = Query(default=None, ge=0),
    min_followers: int | None = Query(default=None, ge=0),
) -> ProductFilters:
    return ProductFilters(
        status=status,
        sort=sort,
        max_price=max_price,
        min_followers=min_followers,
    )


# -------- Public endpoints --------


@router.get("", response_model=list[ProductRead])
def list_products(
    filters: ProductFilters = Depends(catalog_filters),
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    List accounts.

    - Public endpoint.
    - Filters are applied by the database (status, price ceiling,
      follower floor, one of six sort orders; newest first by default).
    """
    return service.list_products(session, filters)


@router.get("/stream")
async def stream_catalog(
    request: Request,
    filters: ProductFilters = Depends(catalog_filters),
    context: AppContext = Depends(get_context),
):
    """
    Live catalog as Server-Sent Events.

    Each connection is one catalog page load: an initial filtered fetch,
    then a fresh `catalog` event for every change in the collection.
    `notice` events carry short user-facing messages.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[tuple[str, object]] = asyncio.Queue()

    def push(event: str, data: object) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, (event, data))

    def fetch(f: ProductFilters) -> list[ProductRead]:
        with Session(context.engine) as session:
            return context.products.list_products(session, f)

    sync = CatalogSynchronizer(
        context.feed,
        fetch,
        filters=filters,
        on_render=lambda products: push("catalog", products),
        notify=lambda message: push("notice", {"message": message}),
    )

    async def events():
        await run_in_threadpool(sync.load)
        try:
            while not await request.is_disconnected():
                try:
                    event, data = await asyncio.wait_for(queue.get(), KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield sse_comment()
                    continue
                yield sse_event(data, event=event)
        finally:
            sync.close()

    return StreamingResponse(events(), media_type="text/event-stream")


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: str,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
    visits: VisitAggregator = Depends(get_visit_aggregator),
):
    """
    Get a single account by id (detail view).

    - Public endpoint.
    - Records a product view for analytics.
    - `views` is the larger of the stored counter and the recorded views.
    """
    product = service.get_product(session, product_id)
    visits.record_view(product.id)
    read = ProductRead.model_validate(product)
    return read.model_copy(
        update={"views": max(read.views, visits.views_for_subject(product.id))}
    )


@router.get("/{product_id}/purchase-link", response_model=PurchaseLink)
def get_purchase_link(
    product_id: str,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    WhatsApp link to buy an available account (409 otherwise).
    """
    product = service.get_product(session, product_id)
    return service.purchase_link(product)


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin_session)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    List a new account (admin only).
    """
    return service.create_product(session, payload)


@router.patch(
    "/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin_session)],
)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    Update an existing account (admin only, merge semantics).
    """
    return service.update_product(session, product_id, payload)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin_session)],
)
def delete_product(
    product_id: str,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    Delete an account and its stored images (admin only).
    """
    service.delete_product(session, product_id)
    return None


@router.post(
    "/{product_id}/sold",
    response_model=ProductRead,
    dependencies=[Depends(require_admin_session)],
)
def mark_as_sold(
    product_id: str,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    return service.mark_as_sold(session, product_id)


@router.post(
    "/{product_id}/available",
    response_model=ProductRead,
    dependencies=[Depends(require_admin_session)],
)
def mark_as_available(
    product_id: str,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    return service.mark_as_available(session, product_id)


@router.post(
    "/{product_id}/reserve",
    response_model=ProductRead,
    dependencies=[Depends(require_admin_session)],
)
def reserve_product(
    product_id: str,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    return service.reserve_product(session, product_id)


@router.post(
    "/{product_id}/main-image",
    response_model=ProductRead,
    dependencies=[Depends(require_admin_session)],
    summary="Upload or replace the banner image",
)
def upload_main_image(
    product_id: str,
    file: UploadFile = File(...),
    crop_x: int | None = Form(default=None, ge=0),
    crop_y: int | None = Form(default=None, ge=0),
    crop_width: int | None = Form(default=None, gt=0),
    crop_height: int | None = Form(default=None, gt=0),
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    Upload a new banner for the account.

    - Accepts JPEG, PNG, WEBP, GIF (max 5MB).
    - Optional crop rectangle (all four fields) yields an 800x450 banner.
    - The image is compressed before it is stored.
    """
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )

    crop_fields = (crop_x, crop_y, crop_width, crop_height)
    crop = None
    if any(v is not None for v in crop_fields):
        if any(v is None for v in crop_fields):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Crop requires crop_x, crop_y, crop_width and crop_height",
            )
        crop = CropBox(x=crop_x, y=crop_y, width=crop_width, height=crop_height)

    file_bytes = file.file.read()
    return service.set_main_image(
        session=session,
        product_id=product_id,
        content_type=file.content_type,
        file_bytes=file_bytes,
        crop=crop,
    )


@router.post(
    "/{product_id}/gallery",
    response_model=ProductRead,
    dependencies=[Depends(require_admin_session)],
    summary="Replace the secondary photos of an account",
)
def upload_gallery_images(
    product_id: str,
    files: list[UploadFile] = File(...),
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    Replace the account's secondary photos (up to 4, in upload order).
    """
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files uploaded",
        )

    payload: list[tuple[str, bytes]] = []
    for f in files:
        if not f.content_type:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing content-type for one of the uploaded files",
            )
        payload.append((f.content_type, f.file.read()))

    return service.replace_gallery(
        session=session,
        product_id=product_id,
        files=payload,
    )
