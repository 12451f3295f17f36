# accountshop/services/image_service.py
import base64
import io
import logging

from fastapi import HTTPException, status
from PIL import Image, UnidentifiedImageError

from accountshop.schemas.product import CropBox

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

SMALL_IMAGE_BYTES = 200 * 1024
TARGET_MAX_BYTES = 250 * 1024

BANNER_SIZE = (800, 450)  # 16:9
BANNER_QUALITY = 85


def to_data_url(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode()}"


def base64_size(payload: str | None) -> float:
    """
    Decoded size in bytes of a base64 payload (data URL prefix ignored).
    """
    if not payload:
        return 0
    encoded = payload.split(",", 1)[1] if "," in payload else payload
    return len(encoded) * 3 / 4


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=quality, optimize=True)
    return buf.getvalue()


def _open_rgb(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


class ImageService:
    """
    Image pipeline for listing photos.

    Responsibilities:
      - validate type and size
      - banner crop (16:9) and JPEG compression
      - keep the embedded payload under the document size ceiling
    """

    def __init__(
        self,
        max_image_bytes: int = 5 * 1024 * 1024,
        max_document_bytes: int = 900 * 1024,
    ):
        self.max_image_bytes = max_image_bytes
        self.max_document_bytes = max_document_bytes

    def validate_image(self, content_type: str, size: int) -> str:
        if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Unsupported image type. Allowed: JPEG, PNG, WEBP, GIF.",
            )

        if size > self.max_image_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"Image too large (max {self.max_image_bytes / 1024 / 1024:.1f}MB).",
            )

        return ALLOWED_IMAGE_CONTENT_TYPES[content_type]

    # ----- Transformations -----

    def crop_banner(self, data: bytes, box: CropBox) -> bytes:
        """Crop to `box` and resize to the 800x450 banner format."""
        try:
            img = _open_rgb(data)
        except (UnidentifiedImageError, OSError):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Could not read image for cropping",
            )
        right = min(img.width, box.x + box.width)
        lower = min(img.height, box.y + box.height)
        if right <= box.x or lower <= box.y:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Crop area is outside the image",
            )
        cropped = img.crop((box.x, box.y, right, lower))
        cropped = cropped.resize(BANNER_SIZE, Image.Resampling.LANCZOS)
        return _encode_jpeg(cropped, BANNER_QUALITY)

    def simple_compress(self, data: bytes) -> bytes:
        """Small files: fit within 600x400 at quality 50."""
        img = _open_rgb(data)
        img.thumbnail((600, 400), Image.Resampling.LANCZOS)
        return _encode_jpeg(img, 50)

    def smart_compress(self, data: bytes, target_bytes: int = TARGET_MAX_BYTES) -> bytes:
        """
        Large files: scale down by source width, then lower quality
        until the result fits `target_bytes` or quality hits 0.3.
        """
        img = _open_rgb(data)
        target_width = 800
        if img.width > 2000:
            target_width = 600
        if img.width > 3000:
            target_width = 400
        new_height = round(img.height * target_width / img.width)
        img = img.resize((target_width, new_height), Image.Resampling.LANCZOS)

        quality = 0.8
        while True:
            encoded = _encode_jpeg(img, int(quality * 100))
            logger.debug("Compression attempt q=%.2f -> %.1fKB", quality, len(encoded) / 1024)
            if len(encoded) <= target_bytes or quality <= 0.3:
                return encoded
            quality = max(0.3, quality * 0.8)

    def compress(self, data: bytes) -> tuple[bytes, str]:
        """
        Best-effort optimisation.

        Returns (bytes, content_type). Falls back to the original bytes
        if the image cannot be re-encoded.
        """
        try:
            if len(data) < SMALL_IMAGE_BYTES:
                return self.simple_compress(data), "image/jpeg"
            return self.smart_compress(data), "image/jpeg"
        except (UnidentifiedImageError, OSError, ValueError):
            logger.warning("Image optimisation failed, keeping original", exc_info=True)
            return data, ""

    def prepare(
        self,
        content_type: str,
        data: bytes,
        crop: CropBox | None = None,
    ) -> tuple[bytes, str]:
        """Validate, optionally crop, then compress an uploaded image."""
        self.validate_image(content_type, len(data))
        if crop is not None:
            data = self.crop_banner(data, crop)
            content_type = "image/jpeg"
        optimized, new_type = self.compress(data)
        return optimized, new_type or content_type

    # ----- Document ceiling -----

    def validate_document_size(self, main_image: str | None, images: list[str]) -> float:
        total = base64_size(main_image) + sum(base64_size(i) for i in images)
        if total > self.max_document_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=(
                    f"Listing too large ({total / 1024:.1f}KB). "
                    "Reduce the number of images."
                ),
            )
        logger.info("Listing document size: %.1fKB", total / 1024)
        return total
