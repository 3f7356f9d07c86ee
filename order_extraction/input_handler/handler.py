"""
Main Input Handler Module.

This module provides the InputHandler class, the main interface for
loading order documents. It validates files, detects MIME types from
the extension and hands back an in-memory DocumentPayload that every
engine consumes. For the local pipeline it also turns a payload into the
single page image that is sent to OCR.

Usage:
    from order_extraction.input_handler import InputHandler

    handler = InputHandler()
    payload = handler.load("order.pdf", supplementary_text=email_body)

    # Every supported file of a directory
    payloads = handler.load_batch("./orders/")

Classes:
    DocumentPayload: Raw document bytes plus MIME type and context
    InputHandler: Main class for file input handling
"""

from pathlib import Path
from typing import Union, List, Optional, Dict
from dataclasses import dataclass
from PIL import Image

from config import get_config
from order_extraction.utils.logger import get_logger
from order_extraction.utils.helpers import get_file_extension
from order_extraction.utils.exceptions import (
    InputError,
    UnsupportedFileTypeError,
    CorruptedFileError
)

from .pdf_processor import PDFProcessor
from .image_processor import ImageProcessor


# Initialize module logger
logger = get_logger(__name__)

PDF_MIME_TYPE = 'application/pdf'

DEFAULT_SUPPORTED_TYPES = {
    '.pdf': PDF_MIME_TYPE,
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.tif': 'image/tiff',
    '.tiff': 'image/tiff',
    '.bmp': 'image/bmp',
    '.webp': 'image/webp',
}


@dataclass(frozen=True)
class DocumentPayload:
    """
    A document as handed to the extraction engines.

    Attributes:
        content: Raw file bytes
        mime_type: MIME type of the content
        filename: Original filename (used by FILENAME rule conditions)
        supplementary_text: Optional free text such as an attached e-mail
    """
    content: bytes
    mime_type: str
    filename: str = 'document'
    supplementary_text: Optional[str] = None

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME_TYPE

    def __repr__(self) -> str:
        return (
            f"DocumentPayload(filename='{self.filename}', "
            f"mime_type='{self.mime_type}', "
            f"bytes={len(self.content)})"
        )


class InputHandler:
    """
    Main input handler for order documents.

    Attributes:
        supported_types: Extension -> MIME type map
        pdf_processor: PDFProcessor instance for PDF files
        image_processor: ImageProcessor instance for image files

    Example:
        >>> handler = InputHandler()
        >>> payload = handler.load("order.pdf")
        >>> payload.mime_type
        'application/pdf'
        >>> page = handler.render_page(payload)
    """

    def __init__(
        self,
        pdf_processor: Optional[PDFProcessor] = None,
        image_processor: Optional[ImageProcessor] = None
    ) -> None:
        """
        Initialize the InputHandler.

        Args:
            pdf_processor: Optional pre-built PDF processor.
            image_processor: Optional pre-built image processor.
        """
        configured: Dict[str, str] = get_config("input.supported_types", None) or DEFAULT_SUPPORTED_TYPES
        self.supported_types = {ext.lower(): mime for ext, mime in configured.items()}

        self.pdf_processor = pdf_processor or PDFProcessor()
        self.image_processor = image_processor or ImageProcessor()

        logger.debug(f"InputHandler initialized with extensions: {sorted(self.supported_types)}")

    def detect_mime_type(self, filepath: Union[str, Path]) -> str:
        """
        Detect the MIME type of an input file from its extension.

        Args:
            filepath: Path to the file to analyze.

        Returns:
            MIME type string.

        Raises:
            UnsupportedFileTypeError: If file type is not supported.
        """
        extension = get_file_extension(filepath)
        mime_type = self.supported_types.get(extension)
        if mime_type is None:
            raise UnsupportedFileTypeError(extension, sorted(self.supported_types))
        return mime_type

    def validate_file(self, filepath: Union[str, Path]) -> Path:
        """
        Validate that a file exists, is supported and is not empty.

        Args:
            filepath: Path to the file to validate.

        Returns:
            Path object pointing to the validated file.

        Raises:
            InputError: If the path does not exist or is not a file.
            UnsupportedFileTypeError: If file type is not supported.
            CorruptedFileError: If the file is empty.
        """
        path = Path(filepath)

        if not path.exists():
            raise InputError(f"File not found: {filepath}", {"path": str(filepath)})

        if not path.is_file():
            raise InputError(f"Path is not a file: {filepath}", {"path": str(filepath)})

        self.detect_mime_type(path)

        if path.stat().st_size == 0:
            raise CorruptedFileError(str(filepath), "File is empty")

        logger.debug(f"File validated: {filepath}")
        return path

    def load(
        self,
        filepath: Union[str, Path],
        supplementary_text: Optional[str] = None
    ) -> DocumentPayload:
        """
        Load a document file into memory.

        Args:
            filepath: Path to the document.
            supplementary_text: Optional free text (e.g. e-mail body)
                passed to the extraction as additional context.

        Returns:
            DocumentPayload with the raw bytes and detected MIME type.

        Raises:
            InputError: If the file is missing, unsupported or empty.
        """
        path = self.validate_file(filepath)
        mime_type = self.detect_mime_type(path)

        payload = DocumentPayload(
            content=path.read_bytes(),
            mime_type=mime_type,
            filename=path.name,
            supplementary_text=supplementary_text
        )

        logger.info(f"Loaded {path.name} ({mime_type}, {len(payload.content)} bytes)")
        return payload

    def load_batch(
        self,
        directory: Union[str, Path],
        recursive: bool = False
    ) -> List[DocumentPayload]:
        """
        Load every supported file in a directory.

        Args:
            directory: Path to directory containing order documents.
            recursive: Whether to search subdirectories.

        Returns:
            Payloads in sorted path order. Files that fail validation
            are logged and skipped.

        Raises:
            InputError: If the directory does not exist.
        """
        directory = Path(directory)

        if not directory.is_dir():
            raise InputError(f"Not a directory: {directory}", {"path": str(directory)})

        pattern = "**/*" if recursive else "*"
        files = sorted(
            p for p in directory.glob(pattern)
            if p.is_file() and get_file_extension(p) in self.supported_types
        )

        logger.info(f"Found {len(files)} files to load in {directory}")

        payloads = []
        for filepath in files:
            try:
                payloads.append(self.load(filepath))
            except InputError as e:
                logger.error(f"Skipping {filepath.name}: {e}")

        return payloads

    def render_page(self, payload: DocumentPayload) -> Image.Image:
        """
        Produce the OCR-ready page image for a payload.

        PDFs are rasterized (first page only); images are decoded. The
        result is whitened in both cases.

        Args:
            payload: Document to render.

        Returns:
            Whitened RGB page image.

        Raises:
            CorruptedFileError: If the content cannot be rendered.
        """
        if payload.is_pdf:
            image = self.pdf_processor.render_first_page(payload.content, payload.filename)
        else:
            image = self.image_processor.decode(payload.content, payload.filename)

        return self.image_processor.whiten(image)
