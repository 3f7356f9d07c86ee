"""
Engine Registry.

Holds the expensive, process-wide collaborators of the extraction
engines: the OCR engine, the local text model, the hosted-model client
and the input handler. Each is created lazily on first use and then
shared. Creation is serialized per slot, so concurrent first use from
several worker threads initializes an instance at most once.

Factories are injectable, which keeps the pipelines testable without a
Tesseract binary, model weights or network access.

Usage:
    registry = EngineRegistry()
    ocr = registry.get_ocr_engine()        # created now
    ocr is registry.get_ocr_engine()       # True, cached

    test_registry = EngineRegistry(ocr_engine_factory=lambda: FakeOCR())

Author: ML Engineering Team
"""

import threading
from typing import Any, Callable, Dict, Optional

from order_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


def _default_ocr_engine():
    from order_extraction.ocr_engine import OCREngine
    return OCREngine()


def _default_text_model():
    from order_extraction.model_inference.header_extractor import LocalTextModel
    return LocalTextModel()


def _default_client():
    from order_extraction.model_inference.gemini_client import GeminiClient
    return GeminiClient()


def _default_input_handler():
    from order_extraction.input_handler import InputHandler
    return InputHandler()


class _LazySlot:
    """One lazily created shared instance."""

    def __init__(self, name: str, factory: Callable[[], Any]) -> None:
        self.name = name
        self.factory = factory
        self._instance = None
        self._lock = threading.Lock()

    def get(self) -> Any:
        instance = self._instance
        if instance is not None:
            return instance

        with self._lock:
            if self._instance is None:
                logger.info(f"Initializing shared {self.name}")
                # A failing factory leaves the slot empty so a later call can retry
                self._instance = self.factory()
            return self._instance

    @property
    def initialized(self) -> bool:
        return self._instance is not None

    def reset(self) -> None:
        with self._lock:
            self._instance = None


class EngineRegistry:
    """
    Lazily initialized shared collaborators for the extraction engines.

    Example:
        >>> registry = EngineRegistry(text_model_factory=FakeModel)
        >>> registry.get_text_model() is registry.get_text_model()
        True
    """

    def __init__(
        self,
        ocr_engine_factory: Optional[Callable[[], Any]] = None,
        text_model_factory: Optional[Callable[[], Any]] = None,
        client_factory: Optional[Callable[[], Any]] = None,
        input_handler_factory: Optional[Callable[[], Any]] = None
    ) -> None:
        self._slots: Dict[str, _LazySlot] = {
            'ocr_engine': _LazySlot('OCR engine', ocr_engine_factory or _default_ocr_engine),
            'text_model': _LazySlot('local text model', text_model_factory or _default_text_model),
            'client': _LazySlot('hosted-model client', client_factory or _default_client),
            'input_handler': _LazySlot('input handler', input_handler_factory or _default_input_handler),
        }

    def get_ocr_engine(self) -> Any:
        """Shared OCR engine (``extract(image) -> OCRResult``)."""
        return self._slots['ocr_engine'].get()

    def get_text_model(self) -> Any:
        """Shared local text model (``generate(prompt) -> str``)."""
        return self._slots['text_model'].get()

    def get_client(self) -> Any:
        """Shared hosted-model client (async ``generate(...)``)."""
        return self._slots['client'].get()

    def get_input_handler(self) -> Any:
        """Shared input handler (``render_page(payload) -> Image``)."""
        return self._slots['input_handler'].get()

    def is_initialized(self, name: str) -> bool:
        """Whether the named slot has been created yet."""
        return self._slots[name].initialized

    def reset(self) -> None:
        """Drop every cached instance."""
        for slot in self._slots.values():
            slot.reset()
