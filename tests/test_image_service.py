import io

import pytest
from fastapi import HTTPException
from PIL import Image

from accountshop.repositories.product_repo import ProductRepository
from accountshop.schemas.product import CropBox, ProductCreate
from accountshop.services import product_service
from accountshop.services.change_feed import ChangeFeed
from accountshop.services.image_service import ImageService, base64_size, to_data_url
from accountshop.services.product_service import ProductService


def png_bytes(width=120, height=80, color=(200, 40, 40)):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def images():
    return ImageService(max_image_bytes=1024 * 1024, max_document_bytes=900 * 1024)


def test_rejects_unsupported_type(images):
    with pytest.raises(HTTPException) as exc:
        images.validate_image("application/pdf", 10)
    assert exc.value.status_code == 400


def test_rejects_oversized_image(images):
    with pytest.raises(HTTPException) as exc:
        images.validate_image("image/png", 2 * 1024 * 1024)
    assert exc.value.status_code == 413


def test_validate_returns_extension(images):
    assert images.validate_image("image/webp", 100) == "webp"


def test_base64_size_ignores_data_url_prefix():
    assert base64_size(to_data_url(b"abc", "image/png")) == 3
    assert base64_size("QUJD") == 3
    assert base64_size(None) == 0


def test_document_ceiling(images):
    big = "data:image/jpeg;base64," + "A" * (500 * 1024)
    images.validate_document_size(big, [])
    with pytest.raises(HTTPException) as exc:
        images.validate_document_size(big, [big])
    assert exc.value.status_code == 413


def test_crop_banner_is_800_by_450(images):
    data = images.crop_banner(png_bytes(1600, 1000), CropBox(x=0, y=50, width=1600, height=900))
    img = Image.open(io.BytesIO(data))
    assert img.size == (800, 450)
    assert img.format == "JPEG"


def test_crop_outside_image_is_rejected(images):
    with pytest.raises(HTTPException) as exc:
        images.crop_banner(png_bytes(100, 100), CropBox(x=200, y=0, width=50, height=50))
    assert exc.value.status_code == 400


def test_small_image_is_reencoded_as_jpeg(images):
    data, content_type = images.compress(png_bytes(1200, 800))
    assert content_type == "image/jpeg"
    img = Image.open(io.BytesIO(data))
    assert img.width <= 600 and img.height <= 400


def test_unreadable_image_keeps_original(images):
    data, content_type = images.compress(b"not an image")
    assert data == b"not an image"
    assert content_type == ""


def test_prepare_keeps_declared_type_when_optimisation_fails(images):
    data, content_type = images.prepare("image/gif", b"GIF89a-broken")
    assert content_type == "image/gif"
    assert data == b"GIF89a-broken"


def test_upload_main_image_with_crop(admin_client):
    created = admin_client.post(
        "/api/v1/products",
        json={"title": "Travel vlogs", "price": 250, "followers": 3000},
    ).json()

    response = admin_client.post(
        f"/api/v1/products/{created['id']}/main-image",
        files={"file": ("banner.png", png_bytes(1600, 900), "image/png")},
        data={"crop_x": "0", "crop_y": "0", "crop_width": "1600", "crop_height": "900"},
    )
    assert response.status_code == 200, response.text
    assert response.json()["main_image"].startswith("data:image/jpeg;base64,")


def test_upload_main_image_partial_crop_is_rejected(admin_client):
    created = admin_client.post(
        "/api/v1/products",
        json={"title": "Travel vlogs", "price": 250, "followers": 3000},
    ).json()

    response = admin_client.post(
        f"/api/v1/products/{created['id']}/main-image",
        files={"file": ("banner.png", png_bytes(), "image/png")},
        data={"crop_x": "0"},
    )
    assert response.status_code == 400


def test_gallery_limit(admin_client):
    created = admin_client.post(
        "/api/v1/products",
        json={"title": "Travel vlogs", "price": 250, "followers": 3000},
    ).json()

    files = [("files", (f"p{i}.png", png_bytes(), "image/png")) for i in range(5)]
    response = admin_client.post(f"/api/v1/products/{created['id']}/gallery", files=files)
    assert response.status_code == 400

    response = admin_client.post(
        f"/api/v1/products/{created['id']}/gallery", files=files[:2]
    )
    assert response.status_code == 200
    assert len(response.json()["images"]) == 2


@pytest.fixture()
def bucket(monkeypatch):
    calls = {"uploaded": [], "deleted": []}

    def fake_upload(path, data, content_type):
        url = f"https://demo.supabase.co/storage/v1/object/public/accounts/{path}"
        calls["uploaded"].append(url)
        return url

    monkeypatch.setattr(product_service, "upload_to_storage", fake_upload)
    monkeypatch.setattr(product_service, "delete_public_url", calls["deleted"].append)
    return calls


def bucket_service(max_document_bytes):
    return ProductService(
        ProductRepository(),
        ChangeFeed(),
        ImageService(max_document_bytes=max_document_bytes),
        storage_strategy="bucket",
    )


def test_rejected_gallery_removes_its_uploads(session, bucket):
    service = bucket_service(max_document_bytes=10)
    product = service.create_product(
        session, ProductCreate(title="Travel vlogs", price=250, followers=3000)
    )

    with pytest.raises(HTTPException) as exc:
        service.replace_gallery(
            session, product.id, [("image/png", png_bytes()), ("image/png", png_bytes())]
        )

    assert exc.value.status_code == 413
    assert len(bucket["uploaded"]) == 2
    assert bucket["deleted"] == bucket["uploaded"]
    assert service.get_product(session, product.id).images == []


def test_rejected_banner_removes_its_upload(session, bucket):
    service = bucket_service(max_document_bytes=10)
    product = service.create_product(
        session, ProductCreate(title="Travel vlogs", price=250, followers=3000)
    )

    with pytest.raises(HTTPException):
        service.set_main_image(session, product.id, "image/png", png_bytes())

    assert len(bucket["uploaded"]) == 1
    assert bucket["deleted"] == bucket["uploaded"]
    assert service.get_product(session, product.id).main_image is None


def test_accepted_gallery_replaces_previous_uploads(session, bucket):
    service = bucket_service(max_document_bytes=900 * 1024)
    product = service.create_product(
        session, ProductCreate(title="Travel vlogs", price=250, followers=3000)
    )

    service.replace_gallery(session, product.id, [("image/png", png_bytes())])
    first = list(bucket["uploaded"])
    service.replace_gallery(session, product.id, [("image/png", png_bytes())])

    assert bucket["deleted"] == first
    assert service.get_product(session, product.id).images == bucket["uploaded"][1:]
