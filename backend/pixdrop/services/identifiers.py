"""
Pixdrop Backend — Identifier Generator
=======================================

What:  Produces the random 128-bit identifiers used for images and delete tokens.
How:   uuid4 draws its 122 random bits from os.urandom (the OS CSPRNG).
Who:   Called by ImageService once for the image ID and once for the delete token.

No uniqueness check is made: with 122 random bits a collision is negligible
at any realistic number of uploads. The two identifiers of one upload come
from independent calls, so an image ID reveals nothing about its delete token.
"""

import uuid
from typing import Tuple


def new_id() -> uuid.UUID:
    """Return a fresh random identifier."""
    return uuid.uuid4()


def new_upload_ids() -> Tuple[uuid.UUID, uuid.UUID]:
    """Return (image_id, delete_token) drawn independently."""
    return new_id(), new_id()
