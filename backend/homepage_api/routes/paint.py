"""
Homepage Backend — Paint Route Handlers
=======================================

What:  GET /paint/ serves the shared drawing; PATCH /paint/ replaces it.
How:   The upload is the raw request body, or the first file part when the
       client sends multipart/form-data. Validation and storage live in
       PaintService.
"""

import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import FileResponse
from starlette.datastructures import UploadFile

from homepage_api.exceptions import ValidationError
from homepage_api.schemas.common import ErrorResponse
from homepage_api.services.paint_service import paint_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/paint", tags=["Paint"])


async def read_upload(request: Request) -> bytes:
    """Bytes of the uploaded image, from a raw body or a multipart form."""
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data"):
        return await request.body()

    form = await request.form()
    try:
        for _, value in form.multi_items():
            if isinstance(value, UploadFile):
                return await value.read()
    finally:
        await form.close()

    raise ValidationError(message="Multipart upload contained no file.", field="upload")


@router.get(
    "/",
    response_class=FileResponse,
    responses={
        200: {"description": "The current paint image", "content": {"image/png": {}}},
        404: {"description": "No paint uploaded yet", "model": ErrorResponse},
    },
    summary="Get the paint image",
)
async def get_paint() -> FileResponse:
    return FileResponse(
        path=paint_service.get_paint_path(),
        media_type="image/png",
        headers={"Cache-Control": "no-cache"},
    )


@router.patch(
    "/",
    status_code=201,
    responses={
        201: {"description": "Paint replaced"},
        400: {"description": "Not an image, or not 1920x1080", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Replace the paint image",
    description=(
        "Accepts any image format Pillow can decode, as the raw body or as a "
        "multipart file. The image must be exactly 1920x1080; it is stored as PNG."
    ),
)
async def update_paint(request: Request) -> Response:
    content = await read_upload(request)
    await paint_service.update_paint(content)
    return Response(status_code=201)
