"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the order
extraction system. Using specific exceptions allows the engine selector
to decide which failures degrade into an error result and which are
surfaced to the caller.

Exception Hierarchy:
    OrderExtractionError (base)
    ├── ConfigurationError
    ├── InputError
    │   ├── UnsupportedFileTypeError
    │   └── CorruptedFileError
    ├── EngineError
    │   ├── OCREngineNotAvailableError
    │   ├── OCRProcessingError
    │   ├── ModelLoadError
    │   └── InferenceError
    ├── MalformedResponseError
    └── ValidationError
"""


class OrderExtractionError(Exception):
    """
    Base exception for all order extraction errors.

    All custom exceptions in this system inherit from this class,
    allowing for easy catching of all system-specific errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(OrderExtractionError):
    """
    Raised when the configuration cannot be used as given.

    Example:
        >>> raise ConfigurationError("Unknown extraction engine: 'ocr-x'",
        ...                          {"engine": "ocr-x"})
    """
    pass


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(OrderExtractionError):
    """Base exception for document input errors."""
    pass


class UnsupportedFileTypeError(InputError):
    """
    Raised when an unsupported file type is provided.

    Example:
        >>> raise UnsupportedFileTypeError(".doc", [".pdf", ".png"])
    """

    def __init__(self, file_type: str, supported_types: list):
        message = f"Unsupported file type: '{file_type}'"
        details = {"file_type": file_type, "supported_types": supported_types}
        super().__init__(message, details)


class CorruptedFileError(InputError):
    """Raised when a document cannot be decoded or rasterized."""

    def __init__(self, source: str, reason: str = None):
        message = f"Corrupted or unreadable document: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# ENGINE ERRORS
# =============================================================================

class EngineError(OrderExtractionError):
    """Base exception for OCR, model and transport failures."""
    pass


class OCREngineNotAvailableError(EngineError):
    """Raised when the OCR engine is not installed or not reachable."""

    def __init__(self, engine_name: str):
        message = f"OCR engine not available: {engine_name}"
        details = {"engine": engine_name}
        super().__init__(message, details)


class OCRProcessingError(EngineError):
    """Raised when OCR processing fails."""

    def __init__(self, source: str, reason: str = None):
        message = f"OCR processing failed for: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


class ModelLoadError(EngineError):
    """Raised when a local model fails to load."""

    def __init__(self, model_name: str, reason: str = None):
        message = f"Failed to load model: {model_name}"
        details = {"model": model_name, "reason": reason}
        super().__init__(message, details)


class InferenceError(EngineError):
    """Raised when a model call fails (local generation or hosted request)."""

    def __init__(self, reason: str = None, model_name: str = None):
        message = "Model inference failed"
        details = {"reason": reason}
        if model_name:
            details["model"] = model_name
        super().__init__(message, details)


# =============================================================================
# RESPONSE ERRORS
# =============================================================================

class MalformedResponseError(OrderExtractionError):
    """Raised when model output cannot be recovered as a JSON object."""

    def __init__(self, reason: str, raw_text: str = None):
        message = f"Malformed model response: {reason}"
        details = {}
        if raw_text is not None:
            details["raw_text"] = raw_text[:200]
        super().__init__(message, details)


class ValidationError(OrderExtractionError):
    """Raised when a response violates the expected result shape."""

    def __init__(self, field: str, reason: str = None):
        message = f"Validation failed for '{field}'"
        details = {"field": field, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'OrderExtractionError',
    'ConfigurationError',
    'InputError',
    'UnsupportedFileTypeError',
    'CorruptedFileError',
    'EngineError',
    'OCREngineNotAvailableError',
    'OCRProcessingError',
    'ModelLoadError',
    'InferenceError',
    'MalformedResponseError',
    'ValidationError',
]
