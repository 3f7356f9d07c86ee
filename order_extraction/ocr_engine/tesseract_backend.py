"""
Tesseract OCR Backend.

This module provides OCR functionality using Tesseract (pytesseract).
It extracts text and word bounding boxes from images in a single pass,
treating the page as one uniform block of text with inter-word spacing
preserved.

Requirements:
    - Tesseract OCR installed on the system
    - pytesseract Python package

Author: ML Engineering Team
"""

import time
from typing import List, Dict, Optional, Tuple
from PIL import Image

from config import get_config
from order_extraction.utils.logger import get_logger
from order_extraction.utils.exceptions import OCREngineNotAvailableError, OCRProcessingError
from .ocr_result import OCRResult, OCRWord, OCRLine

# Initialize module logger
logger = get_logger(__name__)


class TesseractBackend:
    """
    Tesseract OCR backend implementation.

    Attributes:
        language: Tesseract language code (e.g., "eng")
        psm: Page Segmentation Mode (6 = single uniform block of text)
        oem: OCR Engine Mode (0-3)
        preserve_interword_spaces: Keep runs of spaces between words

    Example:
        >>> backend = TesseractBackend()
        >>> result = backend.extract(image)
        >>> print(f"Found {result.word_count} words")
    """

    def __init__(self, language: Optional[str] = None) -> None:
        """
        Initialize the Tesseract backend with configuration.

        Args:
            language: Tesseract language code. If None, uses config.

        Raises:
            OCREngineNotAvailableError: If Tesseract is not installed.
        """
        self.language = language or get_config("ocr.tesseract.lang", "eng")
        self.psm = get_config("ocr.tesseract.psm", 6)
        self.oem = get_config("ocr.tesseract.oem", 3)
        self.preserve_interword_spaces = get_config(
            "ocr.tesseract.preserve_interword_spaces", True
        )

        self._check_dependencies()

        logger.debug(
            f"TesseractBackend initialized (lang={self.language}, "
            f"psm={self.psm}, oem={self.oem})"
        )

    def _check_dependencies(self) -> None:
        """
        Check if Tesseract is available.

        Raises:
            OCREngineNotAvailableError: If Tesseract is not installed.
        """
        try:
            import pytesseract
            self._pytesseract = pytesseract

            version = pytesseract.get_tesseract_version()
            logger.info(f"Tesseract version: {version}")

        except ImportError:
            raise OCREngineNotAvailableError(
                "pytesseract (install with: pip install pytesseract)"
            )
        except Exception as e:
            raise OCREngineNotAvailableError(
                f"Tesseract OCR (not installed or not in PATH): {e}"
            )

    def _build_config(self) -> str:
        """
        Build Tesseract configuration string.

        Returns:
            Configuration string for Tesseract.
        """
        config_parts = [
            f"--psm {self.psm}",
            f"--oem {self.oem}"
        ]

        if self.preserve_interword_spaces:
            config_parts.append("-c preserve_interword_spaces=1")

        return ' '.join(config_parts)

    def extract(self, image: Image.Image) -> OCRResult:
        """
        Extract text and bounding boxes from an image.

        Args:
            image: PIL Image to process.

        Returns:
            OCRResult containing words and lines.

        Raises:
            OCRProcessingError: If OCR processing fails.
        """
        start_time = time.time()

        try:
            if image.mode != 'RGB':
                image = image.convert('RGB')

            image_width, image_height = image.size
            config = self._build_config()

            logger.debug(f"Running Tesseract OCR (config: {config})")

            data = self._pytesseract.image_to_data(
                image,
                lang=self.language,
                config=config,
                output_type=self._pytesseract.Output.DICT
            )
        except Exception as e:
            logger.error(f"OCR processing failed: {e}")
            raise OCRProcessingError("image", str(e)) from e

        words, keys = self._parse_tesseract_output(data)
        lines = self._group_into_lines(words, keys)
        processing_time = time.time() - start_time

        result = OCRResult(
            words=words,
            lines=lines,
            image_width=image_width,
            image_height=image_height,
            language=self.language,
            engine="tesseract",
            processing_time=processing_time,
            metadata={'psm': self.psm, 'oem': self.oem}
        )

        logger.info(
            f"OCR completed: {result.word_count} words, "
            f"{result.line_count} lines, "
            f"avg confidence: {result.average_confidence:.1f}% "
            f"({processing_time:.2f}s)"
        )

        return result

    def _parse_tesseract_output(
        self,
        data: Dict[str, List]
    ) -> Tuple[List[OCRWord], List[Tuple[int, int, int]]]:
        """
        Parse Tesseract output into OCRWord objects.

        Args:
            data: Dictionary output from image_to_data.

        Returns:
            Tuple of (words, line keys) where each key is the word's
            (block_num, par_num, line_num).
        """
        words = []
        keys = []
        word_index = 0

        for i in range(len(data['text'])):
            text = data['text'][i]

            if not text or not text.strip():
                continue

            text = text.strip()

            x = data['left'][i]
            y = data['top'][i]
            w = data['width'][i]
            h = data['height'][i]

            if w <= 0 or h <= 0:
                continue

            conf = float(data['conf'][i])
            if conf < 0:
                conf = 0.0  # Tesseract returns -1 for non-word elements

            words.append(OCRWord(
                text=text,
                bbox=(x, y, x + w, y + h),
                confidence=conf,
                word_index=word_index
            ))
            keys.append((data['block_num'][i], data['par_num'][i], data['line_num'][i]))
            word_index += 1

        return words, keys

    def _group_into_lines(
        self,
        words: List[OCRWord],
        keys: List[Tuple[int, int, int]]
    ) -> List[OCRLine]:
        """
        Group words into the lines Tesseract detected.

        Line numbers restart in each block and paragraph, so the full
        (block, paragraph, line) triple identifies a line. Lines keep
        reading order; words within a line are sorted left to right.

        Args:
            words: List of OCRWord objects.
            keys: Line key per word.

        Returns:
            List of OCRLine objects.
        """
        line_groups: Dict[Tuple[int, int, int], List[OCRWord]] = {}

        for word, key in zip(words, keys):
            line_groups.setdefault(key, []).append(word)

        lines = []
        for line_idx, line_words in enumerate(line_groups.values()):
            line_words.sort(key=lambda w: w.x0)
            for word in line_words:
                word.line_index = line_idx

            line = OCRLine(words=line_words, line_index=line_idx)
            line.compute_bbox()
            lines.append(line)

        return lines
