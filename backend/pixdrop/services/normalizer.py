"""
Pixdrop Backend — Image Normalizer
===================================

What:  Turns arbitrary encoded image bytes into a bounded-resolution RGB JPEG.
Why:   Stored images have a predictable size and format regardless of what
       the client uploaded (PNG with alpha, huge camera JPEG, GIF, WebP...).
How:   Pillow detects the format from the content, decodes, and the
       orientation policy picks the target box:

           landscape (width > height):   width ≤ max_long,  height ≤ max_short
           portrait / square:            width ≤ max_short, height ≤ max_long

       Each dimension is clamped to min(natural, bound), never upscaled.
       ImageOps.fit then scales-to-cover and center-crops to exactly that box
       with Lanczos resampling, so the output aspect ratio can differ from the
       input (content is cropped, not letterboxed). Alpha is discarded and the
       result is encoded as JPEG.
Who:   Called by ImageService.ingest() inside a worker thread.

Same input bytes and settings always produce the same output dimensions.
"""

import io
import logging
from dataclasses import dataclass
from typing import Tuple

from PIL import Image, ImageFile, ImageOps, UnidentifiedImageError

from pixdrop.exceptions import ImageDecodeError, ImageProcessingError

logger = logging.getLogger(__name__)

# Truncated uploads are rejected rather than padded with grey
ImageFile.LOAD_TRUNCATED_IMAGES = False

MAX_IMAGE_BIG = 1280
MAX_IMAGE_SMALL = 720


@dataclass(frozen=True)
class NormalizedImage:
    """Encoded JPEG bytes plus the final pixel dimensions."""

    data: bytes
    width: int
    height: int


def target_dimensions(
    width: int,
    height: int,
    max_long: int = MAX_IMAGE_BIG,
    max_short: int = MAX_IMAGE_SMALL,
) -> Tuple[int, int]:
    """
    Apply the orientation policy to natural dimensions.

    >>> target_dimensions(2000, 1000)
    (1280, 720)
    >>> target_dimensions(1000, 2000)
    (720, 1280)
    >>> target_dimensions(500, 300)
    (500, 300)
    """
    if width > height:
        # Landscape
        return min(width, max_long), min(height, max_short)
    # Portrait or square
    return min(width, max_short), min(height, max_long)


class ImageNormalizer:
    """
    Decode → bound → fill → flatten → encode.

    Instances are immutable and hold no per-call state, so one normalizer
    is shared by every request.
    """

    def __init__(
        self,
        max_long: int = MAX_IMAGE_BIG,
        max_short: int = MAX_IMAGE_SMALL,
        jpeg_quality: int = 75,
        max_pixels: int = 50_000_000,
    ):
        self.max_long = max_long
        self.max_short = max_short
        self.jpeg_quality = jpeg_quality
        self.max_pixels = max_pixels

    def decode(self, data: bytes) -> Image.Image:
        """
        Decode bytes of unknown format into a fully loaded Pillow image.

        Raises:
            ImageDecodeError: unrecognized format, corrupt/truncated data,
                              or more pixels than max_pixels.
        """
        if not data:
            raise ImageDecodeError(message="The uploaded image is empty")

        try:
            # open() only parses the header; pixel data is read by load()
            image = Image.open(io.BytesIO(data))
            width, height = image.size
            if width * height > self.max_pixels:
                raise ImageDecodeError(
                    message="Image dimensions are too large",
                    context={"size": (width, height), "max_pixels": self.max_pixels},
                )
            image.load()
        except UnidentifiedImageError as e:
            raise ImageDecodeError(
                message="Unrecognized image format",
                context={"error": str(e)},
            ) from e
        except Image.DecompressionBombError as e:
            raise ImageDecodeError(
                message="Image dimensions are too large",
                context={"error": str(e), "max_pixels": self.max_pixels},
            ) from e
        except (OSError, SyntaxError, ValueError) as e:
            # Pillow reports truncated or malformed data through these
            raise ImageDecodeError(
                message="The image data is corrupt or truncated",
                context={"error": str(e)},
            ) from e

        return image

    def target_size(self, width: int, height: int) -> Tuple[int, int]:
        return target_dimensions(width, height, self.max_long, self.max_short)

    def normalize(self, data: bytes) -> NormalizedImage:
        """
        Run the full pipeline on raw upload bytes.

        Raises:
            ImageDecodeError:     input is not a decodable image (→ 400)
            ImageProcessingError: resize, conversion or JPEG encoding failed (→ 500)
        """
        image = self.decode(data)
        natural = image.size
        width, height = self.target_size(*natural)

        try:
            # Palette and 16-bit modes resample poorly (or not at all) in place
            if image.mode not in ("RGB", "RGBA"):
                has_alpha = "A" in image.getbands() or "transparency" in image.info
                image = image.convert("RGBA" if has_alpha else "RGB")

            image = ImageOps.fit(
                image,
                (width, height),
                method=Image.Resampling.LANCZOS,
                centering=(0.5, 0.5),
            )
            # JPEG has no alpha channel
            image = image.convert("RGB")

            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=self.jpeg_quality)
        except (OSError, ValueError) as e:
            logger.warning("Image normalization failed: %s", str(e))
            raise ImageProcessingError(
                context={"error": str(e), "size": natural, "mode": image.mode},
            ) from e

        logger.debug(
            "Normalized image %dx%d -> %dx%d (%d bytes)",
            natural[0],
            natural[1],
            image.width,
            image.height,
            buffer.tell(),
        )
        return NormalizedImage(data=buffer.getvalue(), width=image.width, height=image.height)
