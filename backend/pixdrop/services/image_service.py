"""
Pixdrop Backend — Image Service (Workflow Orchestrator)
========================================================

What:  The three request workflows: ingest (upload), delete, read (retrieve).
How:   Composes ApiKeyAuthorizer, ImageNormalizer, the identifier generator
       and ImageStore, all injected through the constructor.
Who:   Called by the route handlers in routes/images.py.

Ingestion Flow (POST /image/{api_key}):
    ┌───────────┐  ┌────────┐  ┌───────────┐  ┌─────────┐  ┌──────┐  ┌───────┐
    │ authorize │─▶│ base64 │─▶│ normalize │─▶│ new IDs │─▶│ link │─▶│ write │
    └───────────┘  └────────┘  └───────────┘  └─────────┘  └──────┘  └───────┘
        401           400         400 / 500                   500       500

Deletion Flow (DELETE /image/{api_key}/{delete_token}):
    authorize (401) → resolve token (404) → remove image (404/500) → remove link (404/500)

Partial states (no compensation is run, by intent):
    - Upload: the link is created first, so a failed image write leaves a
      token whose target never appears (a partially written file is removed
      by the store). Resolving it later gives 404.
    - Delete: if the image is removed but the link removal fails, the link
      dangles and also resolves to 404. If the image removal fails, the link
      is left untouched and the delete can be retried.
    - Two concurrent deletes with the same token: one wins, the other gets 404.

The service holds no mutable state; any number of requests may run it at once.
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Callable, Tuple
from uuid import UUID

from fastapi.concurrency import run_in_threadpool

from pixdrop.exceptions import FileStorageError, ValidationError
from pixdrop.services.authorizer import ApiKeyAuthorizer
from pixdrop.services.identifiers import new_upload_ids
from pixdrop.services.normalizer import ImageNormalizer
from pixdrop.services.storage import ImageStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadResult:
    """What the uploader gets back; the delete token is shown exactly once."""

    id: UUID
    width: int
    height: int
    delete_token: UUID


class ImageService:
    """
    Business logic for image ingestion, retrieval and capability-based deletion.

    Error Handling Strategy:
        Each step raises a project exception (see exceptions.py) and the
        workflow stops at the first one. Nothing is retried.
    """

    def __init__(
        self,
        store: ImageStore,
        authorizer: ApiKeyAuthorizer,
        normalizer: ImageNormalizer,
        max_upload_bytes: int = 20_971_520,
        id_factory: Callable[[], Tuple[UUID, UUID]] = new_upload_ids,
    ):
        self.store = store
        self.authorizer = authorizer
        self.normalizer = normalizer
        self.max_upload_bytes = max_upload_bytes
        self._new_ids = id_factory

    def decode_payload(self, data: str) -> bytes:
        """
        Strict standard-alphabet base64 (padding required).

        Raises:
            ValidationError: malformed base64, empty or oversized payload.
        """
        # base64 of the size limit is 4/3 larger; reject before decoding
        if len(data) > (self.max_upload_bytes * 4) // 3 + 4:
            raise ValidationError(
                message=f"Image exceeds the maximum upload size of {self.max_upload_bytes} bytes",
                field="data",
                context={"encoded_length": len(data)},
            )
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(
                message="Image data is not valid base64",
                field="data",
                context={"error": str(e)},
            ) from e

        if not raw:
            raise ValidationError(message="Image data is empty", field="data")
        if len(raw) > self.max_upload_bytes:
            raise ValidationError(
                message=f"Image exceeds the maximum upload size of {self.max_upload_bytes} bytes",
                field="data",
                context={"size": len(raw)},
            )
        return raw

    async def ingest(self, api_key: str, data: str) -> UploadResult:
        """
        Upload workflow: authorize → decode → normalize → IDs → link → write.

        Returns:
            UploadResult with the new image ID, final dimensions and delete token.

        Raises:
            UnauthorizedError:    wrong API key (nothing is decoded or stored)
            ValidationError:      bad base64 / not an image / too large
            ImageProcessingError: resize or encode failed
            FileStorageError:     link or write failed
        """
        self.authorizer.authorize(api_key)

        raw = self.decode_payload(data)
        # Decoding and resampling are CPU-bound; keep them off the event loop
        image = await run_in_threadpool(self.normalizer.normalize, raw)

        image_id, delete_token = self._new_ids()

        # Link before write: an image never exists without its delete token
        await self.store.link_delete_token(delete_token, image_id)
        try:
            path = await self.store.write_image(image_id, image.data)
        except FileStorageError:
            logger.warning(
                "Image %s not written; delete token %s left dangling",
                image_id,
                delete_token,
            )
            raise

        logger.info("post image at %s (%dx%d)", path, image.width, image.height)
        return UploadResult(
            id=image_id,
            width=image.width,
            height=image.height,
            delete_token=delete_token,
        )

    async def delete(self, api_key: str, delete_token: UUID) -> UUID:
        """
        Deletion workflow: authorize → resolve → remove image → remove link.

        Returns:
            The ID of the image that was deleted.

        Raises:
            UnauthorizedError: wrong API key (nothing is resolved or removed)
            NotFoundError:     token unknown, already used, or its image is gone
            FileStorageError:  a removal failed (see module docstring for the
                               state left behind)
        """
        self.authorizer.authorize(api_key)

        image_id = await self.store.resolve_delete_token(delete_token)
        await self.store.remove_image(image_id)
        await self.store.remove_delete_token(delete_token)

        logger.info("deleted image %s with delete token", image_id)
        return image_id

    async def read(self, image_id: UUID) -> bytes:
        """
        Retrieval: bytes of the stored JPEG. No authorization, images are public.

        Raises:
            NotFoundError: no such image, including one deleted mid-request.
        """
        return await self.store.read_image(image_id)
