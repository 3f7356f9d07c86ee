"""
Extraction Engines for the Order Extraction System.

Three interchangeable engines share one ``extract(context)`` capability
and one result contract:
    - cloud: two-round hosted multimodal extraction
    - local-regex: local OCR pipeline with alias header matching
    - local-model: local OCR pipeline with a local text model for headers

Author: ML Engineering Team
"""

from .base import ExtractionContext, Extractor
from .registry import EngineRegistry
from .cloud import CloudMultiStepExtractor
from .local import LocalOCRExtractor
from .selector import ENGINES, EngineSelector

__all__ = [
    'ExtractionContext',
    'Extractor',
    'EngineRegistry',
    'CloudMultiStepExtractor',
    'LocalOCRExtractor',
    'ENGINES',
    'EngineSelector',
]
