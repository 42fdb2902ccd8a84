"""
Pixdrop Backend — Image Route Handlers
=======================================

What:  GET, POST and DELETE under /image.
How:   Thin handlers: extract path params and body, call ImageService, shape
       the response. Errors propagate to the global exception handlers.

Routes:
    GET    /image/{id}                       → 200 image/jpeg | 400 | 404
    POST   /image/{api_key}                  → 200 {id, width, height, delete_token}
                                               | 400 | 401 | 500
    DELETE /image/{api_key}/{delete_token}   → 200 empty | 400 | 401 | 404 | 500

GET and POST share the one-segment pattern; they are told apart by method.

A path segment that is not a UUID (image ID or delete token) is answered with
400 by the RequestValidationError handler, before any lookup or key check.
Apart from that, GET only ever fails with 404 and DELETE with 401, 404 or 500.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from pixdrop.dependencies import get_image_service
from pixdrop.schemas.image import ErrorResponse, PostImageParams, PostImageResult
from pixdrop.services.image_service import ImageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/image", tags=["Image"])


@router.get(
    "/{id}",
    response_class=Response,
    responses={
        200: {"content": {"image/jpeg": {}}, "description": "The stored JPEG"},
        400: {"description": "ID is not a UUID", "model": ErrorResponse},
        404: {"description": "No image with this ID", "model": ErrorResponse},
    },
    summary="Retrieve an image",
)
async def get_image(
    id: UUID,
    service: ImageService = Depends(get_image_service),
) -> Response:
    """Public: anyone holding the image ID can fetch it."""
    content = await service.read(id)
    return Response(content=content, media_type="image/jpeg")


@router.post(
    "/{api_key}",
    response_model=PostImageResult,
    responses={
        400: {"description": "Invalid base64 or not an image", "model": ErrorResponse},
        401: {"description": "Wrong API key", "model": ErrorResponse},
        500: {"description": "Processing or storage failure", "model": ErrorResponse},
    },
    summary="Upload an image",
    description=(
        "Decode a base64 image of any common format, fit it into 1280x720 "
        "(landscape) or 720x1280 (portrait), and store it as JPEG. The response "
        "carries the delete token; it is not retrievable later."
    ),
)
async def post_image(
    api_key: str,
    params: PostImageParams,
    service: ImageService = Depends(get_image_service),
) -> PostImageResult:
    result = await service.ingest(api_key, params.data)
    return PostImageResult(
        id=result.id,
        width=result.width,
        height=result.height,
        delete_token=result.delete_token,
    )


@router.delete(
    "/{api_key}/{delete_token}",
    response_class=Response,
    responses={
        200: {"description": "Image deleted"},
        400: {"description": "Delete token is not a UUID", "model": ErrorResponse},
        401: {"description": "Wrong API key", "model": ErrorResponse},
        404: {"description": "Unknown or already used delete token", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Delete an image with its delete token",
)
async def delete_image(
    api_key: str,
    delete_token: UUID,
    service: ImageService = Depends(get_image_service),
) -> Response:
    await service.delete(api_key, delete_token)
    return Response(status_code=200)
