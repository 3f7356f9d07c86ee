"""
Order Document Extraction System - Source Package.

This package contains the core modules for turning purchase-order
documents (PDFs and images) into structured records. Each module has a
single responsibility.

Modules:
    - input_handler: Document loading, MIME detection, rasterization
    - ocr_engine: Word boxes and column-preserving text reconstruction
    - model_inference: Result contract, rules, schema compiler, model clients
    - postprocessor: Line-item grammar and value normalization
    - engines: Cloud and local extractors behind one selector
    - utils: Logging, exceptions and helpers

Architecture:
    Input -> Engine Selector -> Cloud (base + refinement)
                             -> Local (render -> OCR -> layout -> grammar -> headers)
                             -> ExtractionResult
"""

__version__ = "1.0.0"
__author__ = "ML Engineering Team"

__all__ = [
    'input_handler',
    'ocr_engine',
    'model_inference',
    'postprocessor',
    'engines',
    'utils'
]
