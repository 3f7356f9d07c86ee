"""
PDF Processor Module.

Rasterizes the first page of a PDF document with PyMuPDF. Processing
beyond page one is out of scope for the local pipeline.

Author: ML Engineering Team
"""

import io
from typing import Optional

import fitz  # PyMuPDF
from PIL import Image

from config import get_config
from order_extraction.utils.logger import get_logger
from order_extraction.utils.exceptions import CorruptedFileError

# Initialize module logger
logger = get_logger(__name__)


class PDFProcessor:
    """
    Processor for PDF documents held in memory.

    Attributes:
        scale: Upscale factor applied when rendering (2.0 = twice the
            72 DPI page size)

    Example:
        >>> processor = PDFProcessor()
        >>> image = processor.render_first_page(pdf_bytes)
        >>> image.size
        (1224, 1584)
    """

    def __init__(self, scale: Optional[float] = None) -> None:
        """
        Initialize the PDF processor with configuration.

        Args:
            scale: Render scale. If None, uses ``input.pdf.scale``.
        """
        self.scale = float(scale if scale is not None else get_config("input.pdf.scale", 2.0))
        logger.debug(f"PDFProcessor initialized (scale={self.scale})")

    def render_first_page(self, content: bytes, source: str = "pdf") -> Image.Image:
        """
        Render page one of a PDF to an RGB image.

        Args:
            content: Raw PDF bytes.
            source: Name used in error messages.

        Returns:
            RGB PIL Image of the first page.

        Raises:
            CorruptedFileError: If the PDF cannot be opened, has no pages,
                or rendering fails.
        """
        try:
            doc = fitz.open(stream=content, filetype="pdf")
        except Exception as e:
            logger.error(f"Could not open PDF {source}: {e}")
            raise CorruptedFileError(source, str(e)) from e

        try:
            if doc.page_count == 0:
                raise CorruptedFileError(source, "PDF has no pages")

            if doc.page_count > 1:
                logger.info(
                    f"PDF {source} has {doc.page_count} pages; only the first is processed"
                )

            page = doc.load_page(0)
            matrix = fitz.Matrix(self.scale, self.scale)
            pix = page.get_pixmap(matrix=matrix)

            image = Image.open(io.BytesIO(pix.tobytes("png")))
            if image.mode != 'RGB':
                image = image.convert('RGB')

        except CorruptedFileError:
            raise
        except Exception as e:
            logger.error(f"PyMuPDF rendering failed for {source}: {e}")
            raise CorruptedFileError(source, str(e)) from e
        finally:
            doc.close()

        logger.debug(f"Rendered first page of {source} at {image.width}x{image.height}")
        return image
