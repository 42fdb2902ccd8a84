"""
Pixdrop Backend — Dependency Wiring
====================================

What:  Builds the process-wide ImageService from settings.
How:   The secret, bounds and data root are read from `settings` once and passed
       into constructors; lru_cache keeps a single instance per process.
Who:   Routes receive it through FastAPI's Depends(get_image_service); tests
       replace it with app.dependency_overrides.
"""

from functools import lru_cache

from pixdrop.config import Settings, settings
from pixdrop.services.authorizer import ApiKeyAuthorizer
from pixdrop.services.image_service import ImageService
from pixdrop.services.normalizer import ImageNormalizer
from pixdrop.services.storage import ImageStore


def build_image_service(config: Settings) -> ImageService:
    return ImageService(
        store=ImageStore(config.data_root),
        authorizer=ApiKeyAuthorizer(
            config.backend_api_key,
            allow_empty=config.allow_empty_api_key,
        ),
        normalizer=ImageNormalizer(
            max_long=config.max_long_side,
            max_short=config.max_short_side,
            jpeg_quality=config.jpeg_quality,
            max_pixels=config.max_image_pixels,
        ),
        max_upload_bytes=config.max_upload_bytes,
    )


@lru_cache
def get_image_service() -> ImageService:
    return build_image_service(settings)
