"""
Main OCR Engine Module.

This module provides the main OCREngine class that serves as the
unified interface for OCR operations, regardless of the underlying
OCR backend.

Usage:
    from order_extraction.ocr_engine import OCREngine

    engine = OCREngine()
    result = engine.extract(image)

    print(result.text)
    for line in result.lines:
        print(line.bbox, line.text)

Author: ML Engineering Team
"""

import io
from typing import Union, Optional, Any
from PIL import Image

from config import get_config
from order_extraction.utils.logger import get_logger
from order_extraction.utils.exceptions import OCRProcessingError
from .ocr_result import OCRResult
from .tesseract_backend import TesseractBackend

# Initialize module logger
logger = get_logger(__name__)


class OCREngine:
    """
    Main OCR engine providing unified interface for text extraction.

    The engine is expensive to create (it probes the Tesseract binary),
    so the local pipeline obtains a shared instance from the engine
    registry instead of constructing one per document.

    Attributes:
        backend_name: Name of the active OCR backend
        backend: The active OCR backend instance (anything with
            ``extract(image) -> OCRResult``)
        language: OCR language code

    Example:
        >>> engine = OCREngine()
        >>> result = engine.extract(image)
        >>> for word in result.words:
        ...     print(f"{word.text}: {word.bbox}")
    """

    def __init__(self, backend: Optional[Any] = None, language: Optional[str] = None) -> None:
        """
        Initialize the OCR engine.

        Args:
            backend: Pre-built backend instance. If None, a TesseractBackend
                is created from configuration.
            language: OCR language code. If None, uses config.
        """
        self.language = language or get_config("ocr.tesseract.lang", "eng")

        if backend is None:
            backend = TesseractBackend(language=self.language)
            self.backend_name = "tesseract"
        else:
            self.backend_name = type(backend).__name__

        self.backend = backend

        logger.info(f"OCR Engine initialized with backend: {self.backend_name}")

    def extract(self, image: Union[Image.Image, bytes]) -> OCRResult:
        """
        Extract text and word bounding boxes from an image.

        Args:
            image: PIL Image or encoded image bytes.

        Returns:
            OCRResult with words grouped into lines.

        Raises:
            OCRProcessingError: If the input is not a readable image or
                extraction fails.

        Example:
            >>> result = engine.extract(page_image)
            >>> print(f"Extracted {result.word_count} words")
        """
        if isinstance(image, (bytes, bytearray)):
            try:
                image = Image.open(io.BytesIO(image))
                image.load()
            except Exception as e:
                raise OCRProcessingError("bytes", f"Failed to decode image: {e}") from e

        if not isinstance(image, Image.Image):
            raise OCRProcessingError("unknown", "Invalid image input")

        logger.debug(f"Extracting text using {self.backend_name} backend")
        return self.backend.extract(image)
