"""
Image Processor Module.

This module handles image preparation for OCR:
    - Decoding image bytes
    - RGB conversion (transparent areas composited on white)
    - Luminance whitening (binarization-lite)

Whitening computes per-pixel luminance with the Rec. 709 weights

    L = 0.2126 R + 0.7152 G + 0.0722 B

and forces every pixel with L above the threshold to pure white. Darker
pixels are left unchanged. This boosts contrast of faint backgrounds
without the cost of adaptive thresholding.

Author: ML Engineering Team
"""

import io
from typing import Optional

import numpy as np
from PIL import Image

from config import get_config
from order_extraction.utils.logger import get_logger
from order_extraction.utils.exceptions import CorruptedFileError

# Initialize module logger
logger = get_logger(__name__)

LUMINANCE_WEIGHTS = np.array([0.2126, 0.7152, 0.0722])


class ImageProcessor:
    """
    Processor for raster images.

    Attributes:
        whiten_threshold: Luminance (0-255) above which pixels become white

    Example:
        >>> processor = ImageProcessor()
        >>> image = processor.whiten(processor.decode(png_bytes))
    """

    def __init__(self, whiten_threshold: Optional[int] = None) -> None:
        """
        Initialize the image processor with configuration.

        Args:
            whiten_threshold: Override for ``input.image.whiten_threshold``.
        """
        if whiten_threshold is None:
            whiten_threshold = get_config("input.image.whiten_threshold", 160)
        self.whiten_threshold = whiten_threshold

        logger.debug(f"ImageProcessor initialized (whiten_threshold={self.whiten_threshold})")

    def decode(self, content: bytes, source: str = "image") -> Image.Image:
        """
        Decode image bytes into an RGB PIL Image.

        Args:
            content: Encoded image bytes (PNG, JPEG, TIFF ...).
            source: Name used in error messages.

        Returns:
            RGB image.

        Raises:
            CorruptedFileError: If the bytes are not a readable image.
        """
        try:
            image = Image.open(io.BytesIO(content))
            image.load()
        except Exception as e:
            logger.error(f"Failed to decode image {source}: {e}")
            raise CorruptedFileError(source, str(e)) from e

        return self._convert_to_rgb(image)

    def _convert_to_rgb(self, image: Image.Image) -> Image.Image:
        """
        Convert image to RGB mode.

        RGBA and LA images are composited onto a white background so
        transparent areas do not turn black; other modes are converted
        directly.

        Args:
            image: Input PIL Image.

        Returns:
            RGB image.
        """
        if image.mode == 'RGB':
            return image

        original_mode = image.mode

        if image.mode in ('RGBA', 'LA'):
            rgba = image.convert('RGBA')
            background = Image.new('RGB', image.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[3])
            image = background
        else:
            image = image.convert('RGB')

        logger.debug(f"Converted image from {original_mode} to RGB")
        return image

    def whiten(self, image: Image.Image) -> Image.Image:
        """
        Force bright pixels to pure white.

        Args:
            image: Input PIL Image (any mode; converted to RGB).

        Returns:
            New RGB image; pixels with luminance above the threshold are
            (255, 255, 255), all others unchanged.
        """
        rgb = np.array(self._convert_to_rgb(image), dtype=np.uint8)

        luminance = rgb[..., :3].astype(np.float64) @ LUMINANCE_WEIGHTS
        bright = luminance > self.whiten_threshold
        rgb[bright] = 255

        logger.debug(
            f"Whitened {int(bright.sum())} of {bright.size} pixels "
            f"(threshold={self.whiten_threshold})"
        )
        return Image.fromarray(rgb)
