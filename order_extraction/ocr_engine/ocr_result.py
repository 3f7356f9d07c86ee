"""
OCR Result Data Classes.

Word boxes grouped into lines, as produced by the OCR backend and
consumed by spatial text reconstruction. Coordinates are pixels of the
rendered page with the origin at the top-left corner.

Classes:
    OCRWord: Individual word with bounding box
    OCRLine: Words the OCR engine placed on one text line
    OCRResult: Complete OCR output for a page

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple


@dataclass
class OCRWord:
    """
    Represents a single word detected by OCR.

    Attributes:
        text: The recognized word
        bbox: Bounding box as (x0, y0, x1, y1) in pixels
        confidence: OCR confidence (0-100)
        word_index: Position of the word in reading order
        line_index: Index of the line the word belongs to

    Example:
        >>> word = OCRWord(text="Qty", bbox=(100, 50, 136, 80), confidence=95.5)
        >>> word.width
        36
    """
    text: str
    bbox: Tuple[int, int, int, int]  # (x0, y0, x1, y1)
    confidence: float = 0.0
    word_index: int = 0
    line_index: int = 0

    @property
    def x0(self) -> int:
        return self.bbox[0]

    @property
    def y0(self) -> int:
        return self.bbox[1]

    @property
    def x1(self) -> int:
        return self.bbox[2]

    @property
    def y1(self) -> int:
        return self.bbox[3]

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    def __repr__(self) -> str:
        return f"OCRWord('{self.text}', bbox={self.bbox}, conf={self.confidence:.1f})"


@dataclass
class OCRLine:
    """
    One OCR-detected line of text.

    Attributes:
        words: Words of the line, left to right
        bbox: Box enclosing all words; computed on first use when None
        line_index: Index of this line on the page

    Example:
        >>> line = OCRLine(words=[po, number, value])
        >>> line.text
        'PO Number: 4500012345'
    """
    words: List[OCRWord] = field(default_factory=list)
    bbox: Optional[Tuple[int, int, int, int]] = None
    line_index: int = 0

    @property
    def text(self) -> str:
        """Words joined by single spaces."""
        return ' '.join(word.text for word in self.words)

    @property
    def x0(self) -> int:
        """Left edge of the line."""
        if self.bbox is None:
            self.compute_bbox()
        return self.bbox[0]

    def compute_bbox(self) -> Tuple[int, int, int, int]:
        """Compute and store the box enclosing all words."""
        if not self.words:
            self.bbox = (0, 0, 0, 0)
            return self.bbox

        self.bbox = (
            min(w.x0 for w in self.words),
            min(w.y0 for w in self.words),
            max(w.x1 for w in self.words),
            max(w.y1 for w in self.words),
        )
        return self.bbox


@dataclass
class OCRResult:
    """
    Complete OCR output for one page image.

    Attributes:
        words: All words in reading order
        lines: Words grouped into lines
        image_width: Width of the source image in pixels
        image_height: Height of the source image in pixels
        language: OCR language used
        engine: OCR engine name
        processing_time: Time taken for OCR in seconds
        metadata: Backend settings used for the run

    Example:
        >>> result = ocr_engine.extract(page)
        >>> result.text.splitlines()[0]
        'PO Number: 4500012345'
    """
    words: List[OCRWord] = field(default_factory=list)
    lines: List[OCRLine] = field(default_factory=list)
    image_width: int = 0
    image_height: int = 0
    language: str = "eng"
    engine: str = "unknown"
    processing_time: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """
        Plain page text.

        Returns:
            Line texts joined with newlines (words joined by spaces when
            no line grouping is available).
        """
        if self.lines:
            return '\n'.join(line.text for line in self.lines)
        return ' '.join(word.text for word in self.words)

    @property
    def word_count(self) -> int:
        return len(self.words)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def average_confidence(self) -> float:
        """Mean word confidence (0 for an empty page)."""
        if not self.words:
            return 0.0
        return sum(w.confidence for w in self.words) / len(self.words)

    def is_empty(self) -> bool:
        """True when no words were recognized."""
        return not self.words

    def __repr__(self) -> str:
        return (
            f"OCRResult(words={self.word_count}, lines={self.line_count}, "
            f"confidence={self.average_confidence:.1f}%)"
        )
