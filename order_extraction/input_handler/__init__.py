"""
Input Handler Module for the Order Extraction System.

This module provides functionality for:
    - Loading and validating document files
    - Detecting MIME types
    - Rasterizing the first page of PDFs
    - Whitening page images for OCR

Supported formats:
    - PDF
    - Images: PNG, JPG, JPEG, TIFF, BMP, WEBP

Author: ML Engineering Team
"""

from .handler import InputHandler, DocumentPayload
from .pdf_processor import PDFProcessor
from .image_processor import ImageProcessor

__all__ = ['InputHandler', 'DocumentPayload', 'PDFProcessor', 'ImageProcessor']
