"""
Pixdrop Backend — Image Store (Storage Layout)
===============================================

What:  Owns every filesystem side effect: writing images, creating, resolving
       and removing delete-token links, removing images.
Why:   Keeps path arithmetic and OS error translation in one place. No other
       module touches data_root.
How:   Async file I/O via aiofiles so storage calls are the suspension points
       of a request; every OSError is translated into a project exception.

Directory Structure:
    data/
    ├── image/
    │   └── 3f2a...-9c1e.jpeg            ← JPEG bytes, named by image ID
    └── delete_token/
        └── b71d...-04aa  →  ../../data/image/3f2a...-9c1e.jpeg

    A delete token is nothing but a symlink. Its target is relative to the
    token's own directory and climbs two levels to the parent of data_root,
    so the data directory can be moved or mounted elsewhere as a unit.
    Possessing the token name is the only way to find the link; possessing
    the image ID does not reveal it.

Consistency:
    There is no lock and no cross-directory transaction. Single create,
    symlink and unlink calls are atomic on POSIX filesystems; the two-step
    upload (link, then write) and two-step delete (remove image, then link)
    are not, and their partial states are described on ImageService.
"""

import errno
import logging
import os
import re
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

import aiofiles
import aiofiles.os

from pixdrop.exceptions import FileStorageError, NotFoundError

logger = logging.getLogger(__name__)

IMAGE_EXTENSION = ".jpeg"

_IMAGE_NAME_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
    + re.escape(IMAGE_EXTENSION)
    + r"$"
)


class ImageStore:
    """
    Filesystem-backed image and delete-token namespaces.

    Path functions are pure; everything else performs I/O. The directories are
    created once at startup by ensure_directories() and assumed to exist after.
    """

    def __init__(self, data_root: Union[str, Path]):
        self.data_root = Path(data_root)
        self.image_dir = self.data_root / "image"
        self.delete_token_dir = self.data_root / "delete_token"
        # "." or "./data" still need a real directory name in link targets
        self._root_name = Path(os.path.abspath(self.data_root)).name

    # ── Paths (no I/O) ────────────────────────────────────────────────────

    def image_path(self, image_id: UUID) -> Path:
        return self.image_dir / f"{image_id}{IMAGE_EXTENSION}"

    def delete_token_path(self, delete_token: UUID) -> Path:
        return self.delete_token_dir / str(delete_token)

    def link_target(self, image_id: UUID) -> Path:
        """
        Relative link target for a delete token pointing at image_id.

        Two levels up from delete_token/ is the parent of data_root, then
        back down through data_root's own name.
        """
        return Path("..", "..", self._root_name, "image", f"{image_id}{IMAGE_EXTENSION}")

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def ensure_directories(self) -> None:
        """Create image/ and delete_token/ if missing. Idempotent."""
        for directory in (self.image_dir, self.delete_token_dir):
            directory.mkdir(parents=True, exist_ok=True)
        logger.info("ImageStore ready at data_root=%s", self.data_root.resolve())

    def is_writable(self) -> bool:
        """Both directories exist and accept new entries (used by /health)."""
        return all(
            d.is_dir() and os.access(d, os.W_OK | os.X_OK)
            for d in (self.image_dir, self.delete_token_dir)
        )

    # ── Images ────────────────────────────────────────────────────────────

    async def write_image(self, image_id: UUID, content: bytes) -> Path:
        """
        Create the image file. Exclusive create: an existing file is never
        touched, let alone partially overwritten. If the write fails after the
        file was created, the partial file is removed again.

        Raises:
            FileStorageError: file exists, disk full, permission denied, ...
        """
        path = self.image_path(image_id)
        created = False
        try:
            async with aiofiles.open(path, "xb") as f:
                created = True
                await f.write(content)
        except OSError as e:
            logger.warning("Failed to store image at %s: %s", path, str(e))
            if created:
                await self._discard_partial_image(path)
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            ) from e

        logger.debug("Image written: %s (%d bytes)", path.name, len(content))
        return path

    async def image_exists(self, image_id: UUID) -> bool:
        return await aiofiles.os.path.isfile(self.image_path(image_id))

    async def read_image(self, image_id: UUID) -> bytes:
        """
        Bytes of an existing image, read in one open so a concurrent delete
        yields either the whole file or NotFoundError.

        Raises:
            NotFoundError:    no image with this ID.
            FileStorageError: the file exists but could not be read.
        """
        path = self.image_path(image_id)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except (FileNotFoundError, IsADirectoryError) as e:
            raise NotFoundError(resource="image", resource_id=str(image_id)) from e
        except OSError as e:
            logger.warning("Failed to read image %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to read image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            ) from e

    async def _discard_partial_image(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove partial image %s: %s", path, str(e))

    async def remove_image(self, image_id: UUID) -> None:
        """
        Raises:
            NotFoundError:    the image is already gone (e.g. a concurrent delete won).
            FileStorageError: the file exists but could not be removed.
        """
        path = self.image_path(image_id)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError as e:
            raise NotFoundError(resource="image", resource_id=str(image_id)) from e
        except OSError as e:
            logger.warning("Failed to remove image %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to delete image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            ) from e

    # ── Delete tokens ─────────────────────────────────────────────────────

    async def link_delete_token(self, delete_token: UUID, image_id: UUID) -> Path:
        """
        Create the token symlink pointing at image_id's (future) file.

        Raises:
            FileStorageError: the token already exists or the link could not be made.
        """
        link_path = self.delete_token_path(delete_token)
        target = self.link_target(image_id)
        try:
            await aiofiles.os.symlink(target, link_path)
        except OSError as e:
            logger.warning("Failed to create delete token %s: %s", link_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(link_path), "target": str(target), "os_error": str(e)},
            ) from e
        return link_path

    async def resolve_delete_token(self, delete_token: UUID) -> UUID:
        """
        Follow a delete token to the image it authorizes.

        The link must exist, point inside image_dir at a well-formed image name,
        and that image must still exist. Anything else reads as "no such token".

        Raises:
            NotFoundError: unknown, consumed, broken or foreign token.
        """
        link_path = self.delete_token_path(delete_token)
        not_found = NotFoundError(resource="delete token", resource_id=str(delete_token))

        try:
            target = await aiofiles.os.readlink(link_path)
        except OSError as e:
            # ENOENT: never issued or already used. EINVAL: not a symlink.
            if e.errno not in (errno.ENOENT, errno.EINVAL):
                logger.warning("Unexpected error reading delete token %s: %s", link_path, e)
            raise not_found from e

        resolved = self._resolve_within_image_dir(link_path.parent, target)
        if resolved is None:
            logger.warning("Delete token %s points outside the image store: %s", delete_token, target)
            raise not_found

        if not await aiofiles.os.path.isfile(resolved):
            # Dangling link: the image was removed or never written
            raise not_found

        return UUID(resolved.name[: -len(IMAGE_EXTENSION)])

    async def remove_delete_token(self, delete_token: UUID) -> None:
        """
        Raises:
            NotFoundError:    the link is already gone.
            FileStorageError: the link exists but could not be removed.
        """
        link_path = self.delete_token_path(delete_token)
        try:
            await aiofiles.os.unlink(link_path)
        except FileNotFoundError as e:
            raise NotFoundError(resource="delete token", resource_id=str(delete_token)) from e
        except OSError as e:
            logger.warning("Failed to remove delete token %s: %s", link_path, str(e))
            raise FileStorageError(
                message="Failed to delete image. Please try again.",
                context={"path": str(link_path), "os_error": str(e)},
            ) from e

    def _resolve_within_image_dir(self, base: Path, target: str) -> Optional[Path]:
        """Join a link target onto its directory; None unless it lands in image_dir."""
        candidate = Path(os.path.abspath(os.path.join(base, target)))
        if candidate.parent != Path(os.path.abspath(self.image_dir)):
            return None
        if not _IMAGE_NAME_RE.match(candidate.name):
            return None
        return candidate
