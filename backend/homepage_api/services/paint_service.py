"""
Homepage Backend — Paint Image Service
======================================

What:  Getter/setter for the single shared "paint" image.
How:   Uploads are decoded with Pillow (format sniffed from the bytes, not
       from a filename or header), checked against the configured canvas
       size, re-encoded as PNG and swapped into place atomically.
Who:   Called by the /paint route handlers.

Validation order (cheapest first):
    1. Empty / oversized body      → ValidationError (400)
    2. Format sniff + header parse → ValidationError (400) if not an image
    3. Dimensions                  → ValidationError (400) unless exactly WxH
    4. Full decode                 → ValidationError (400) on truncated data
    5. PNG encode + write          → FileStorageError (500) on OS errors

Write strategy:
    The PNG is written to a uniquely named sibling file and moved over the
    target with os.replace, so readers never observe a half-written image
    and concurrent uploads end with one complete winner.
"""

import io
import logging
import os
import uuid
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from PIL import Image, UnidentifiedImageError

from homepage_api.config import settings
from homepage_api.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class PaintService:
    """
    Manages the paint image on disk.

    Args:
        paint_path: Override the configured location (used in tests).
        width / height: Override the required dimensions.
    """

    def __init__(
        self,
        paint_path: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ):
        self.paint_path = Path(paint_path or settings.paint_path).resolve()
        self.width = width or settings.paint_width
        self.height = height or settings.paint_height

    def get_paint_path(self) -> Path:
        """
        Path of the current paint image.

        Raises:
            NotFoundError: nothing has been uploaded yet
        """
        if not self.paint_path.is_file():
            raise NotFoundError(resource="paint")
        return self.paint_path

    def validate_size(self, content: bytes) -> None:
        """Rejects empty bodies and bodies over settings.max_upload_size."""
        if not content:
            raise ValidationError(message="Upload is empty.", field="upload")

        if len(content) > settings.max_upload_size:
            max_mb = settings.max_upload_size / (1024 * 1024)
            raise ValidationError(
                message=f"Upload exceeds maximum of {max_mb:.0f}MB.",
                field="upload",
                context={"max_size_mb": max_mb, "actual_size": len(content)},
            )

    def decode_image(self, content: bytes) -> Image.Image:
        """
        Decode the upload and enforce the canvas size.

        Returns:
            A fully loaded Pillow image.

        Raises:
            ValidationError: not a decodable image, or wrong dimensions
        """
        try:
            image = Image.open(io.BytesIO(content))
        except Image.DecompressionBombError as e:
            # Raised from the header alone, before the dimensions can be compared
            raise ValidationError(
                message=(
                    f"Paint must be exactly {self.width}x{self.height} pixels; "
                    "upload dimensions are far larger."
                ),
                field="upload",
                context={"error": str(e)},
            )
        except (UnidentifiedImageError, OSError) as e:
            raise ValidationError(
                message="Upload is not a recognizable image.",
                field="upload",
                context={"error": str(e)},
            )

        if image.size != (self.width, self.height):
            raise ValidationError(
                message=(
                    f"Paint must be exactly {self.width}x{self.height} pixels, "
                    f"got {image.width}x{image.height}."
                ),
                field="upload",
                context={"width": image.width, "height": image.height},
            )

        try:
            image.load()
        except (OSError, SyntaxError) as e:
            # Pillow raises SyntaxError for some malformed PNG chunks
            raise ValidationError(
                message="Upload could not be decoded.",
                field="upload",
                context={"format": image.format, "error": str(e)},
            )

        return image

    @staticmethod
    def encode_png(image: Image.Image) -> bytes:
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    async def store_png(self, data: bytes) -> None:
        """
        Atomically replace the paint file with `data`.

        Raises:
            FileStorageError: directory creation, write, or rename failed
        """
        tmp_path = self.paint_path.with_name(f".{self.paint_path.name}.{uuid.uuid4().hex}.tmp")

        try:
            self.paint_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(data)
            os.replace(tmp_path, self.paint_path)
        except OSError as e:
            logger.error("Failed to store paint at %s: %s", self.paint_path, str(e))
            tmp_path.unlink(missing_ok=True)
            raise FileStorageError(
                message="Failed to save paint image. Please try again.",
                context={"path": str(self.paint_path), "os_error": str(e)},
            )

    async def update_paint(self, content: bytes) -> Tuple[int, int]:
        """
        Complete validation and storage pipeline for a paint upload.

        Returns:
            (width, height) of the stored image.
        """
        self.validate_size(content)
        image = self.decode_image(content)
        source_format = image.format

        await self.store_png(self.encode_png(image))

        logger.info(
            "Paint updated from %s upload (%d bytes, %dx%d)",
            source_format,
            len(content),
            image.width,
            image.height,
        )
        return image.width, image.height


paint_service = PaintService()
