"""
Pixdrop Backend — Health Check Route
=====================================

What:  Health check endpoint for monitoring and container probes.
How:   The only dependency is the data directory; the service is healthy when
       both image/ and delete_token/ exist and are writable.

    healthy:   HTTP 200
    unhealthy: HTTP 503 (uploads and deletes would fail)
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from pixdrop import __version__
from pixdrop.dependencies import get_image_service
from pixdrop.schemas.image import HealthResponse
from pixdrop.services.image_service import ImageService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Storage unavailable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(service: ImageService = Depends(get_image_service)):
    writable = service.store.is_writable()
    if not writable:
        logger.warning("Health check: data directory %s not writable", service.store.data_root)

    body = HealthResponse(
        status="healthy" if writable else "unhealthy",
        version=__version__,
        storage="writable" if writable else "unavailable",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if not writable:
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
