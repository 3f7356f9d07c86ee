"""
Post-Processing Module for the Order Extraction System.

This module provides functionality for:
    - Amount/quantity normalization
    - Header value cleanup
    - Line-item grammar parsing of reconstructed OCR text

Author: ML Engineering Team
"""

from .normalizers import AmountNormalizer, TextNormalizer
from .line_items import GrammarRule, GRAMMAR, LineItemParser, split_part_number

__all__ = [
    'AmountNormalizer',
    'TextNormalizer',
    'GrammarRule',
    'GRAMMAR',
    'LineItemParser',
    'split_part_number',
]
