"""
Image rasterization for the BITMAP command.

Converts images to the 1-bit raster layout TSPL expects: rows of packed
bytes, MSB is the leftmost pixel, 0 = black (burn) and 1 = white.
"""

from io import BytesIO
from pathlib import Path
from typing import Union

from PIL import Image

from .errors import ImageError

# Image size limits to prevent memory exhaustion from malicious/malformed images
MAX_IMAGE_DIMENSION = 10000  # Maximum width or height in pixels
MAX_IMAGE_PIXELS = 10_000_000  # Maximum total pixels (10 megapixels)

ImageSource = Union[str, Path, bytes, Image.Image]


class LabelImage:
    """A monochrome image ready to be sent with BITMAP."""

    def __init__(self, image: Image.Image, threshold: int = 128):
        """
        Args:
            image: Source image, any mode
            threshold: Grayscale threshold for black/white conversion (0-255)
        """
        if image.mode != "1":
            image = image.convert("L").point(
                lambda x: 0 if x < threshold else 255, mode="1"
            )
        self.image = image

    @classmethod
    def load(cls, source: ImageSource, threshold: int = 128) -> "LabelImage":
        """
        Load an image from a path, encoded bytes or a PIL Image.

        Raises:
            ImageError: If the image cannot be loaded or exceeds size limits
        """
        try:
            if isinstance(source, Image.Image):
                img = source
            elif isinstance(source, (str, Path)):
                path = Path(source)
                if not path.exists():
                    raise ImageError(f"Image file not found: {path}")
                img = Image.open(path)
            elif isinstance(source, bytes):
                img = Image.open(BytesIO(source))
            else:
                raise ImageError(f"Unsupported image type: {type(source)}")
        except ImageError:
            raise
        except Exception as e:
            raise ImageError(f"Failed to load image: {e}") from e

        if img.width > MAX_IMAGE_DIMENSION or img.height > MAX_IMAGE_DIMENSION:
            raise ImageError(
                f"Image dimensions ({img.width}x{img.height}) exceed maximum "
                f"({MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION})"
            )
        if img.width * img.height > MAX_IMAGE_PIXELS:
            raise ImageError(
                f"Image pixel count ({img.width * img.height:,}) exceeds "
                f"maximum ({MAX_IMAGE_PIXELS:,})"
            )

        return cls(img, threshold=threshold)

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        """Height in dots."""
        return self.image.height

    @property
    def width_bytes(self) -> int:
        """Row width in bytes (8 pixels per byte, rounded up)."""
        return (self.image.width + 7) // 8

    def to_raster_format(self) -> bytes:
        """
        Pack the image into TSPL raster bytes.

        Partial bytes at the end of a row are padded with white.
        """
        data = bytearray()

        for row in range(self.height):
            row_byte = 0
            bit_pos = 7

            for col in range(self.width):
                # PIL 1-bit: 0=black, 255=white; TSPL: 0=black, 1=white
                if self.image.getpixel((col, row)) != 0:
                    row_byte |= (1 << bit_pos)

                bit_pos -= 1
                if bit_pos < 0:
                    data.append(row_byte)
                    row_byte = 0
                    bit_pos = 7

            if bit_pos != 7:
                row_byte |= (1 << (bit_pos + 1)) - 1
                data.append(row_byte)

        return bytes(data)
