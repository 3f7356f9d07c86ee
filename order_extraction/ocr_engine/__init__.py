"""
OCR Engine Module for the Order Extraction System.

This module provides OCR functionality including:
    - Text extraction from page images
    - Bounding box detection for each word
    - Grouping of words into OCR-detected lines
    - Spatial text reconstruction (column alignment from word gaps)

Author: ML Engineering Team
"""

from .engine import OCREngine
from .tesseract_backend import TesseractBackend
from .ocr_result import OCRResult, OCRWord, OCRLine
from .spatial import average_glyph_width, reconstruct_spatial_text

__all__ = [
    'OCREngine',
    'TesseractBackend',
    'OCRResult',
    'OCRWord',
    'OCRLine',
    'average_glyph_width',
    'reconstruct_spatial_text',
]
