"""
Data Normalizers Module.

This module provides normalization functions for values captured by the
local pipeline's regular expressions:
    - Currency/amount tokens
    - Header values following a label

Author: ML Engineering Team
"""

import re
from typing import Optional

from order_extraction.utils.logger import get_logger
from order_extraction.utils.helpers import parse_number

# Initialize module logger
logger = get_logger(__name__)


class AmountNormalizer:
    """
    Normalizes currency/amount strings to floats.

    Thousands separators and dollar signs are removed before parsing.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.to_float("$1,234.56")
        1234.56
        >>> normalizer.extract_amount("USD 2,500.00 incl. VAT")
        2500.0
    """

    # First run of digits/commas with an optional decimal part
    NUMBER_PATTERN = re.compile(r'[\d,]+\.?\d*')

    def to_float(self, amount_str: Optional[str]) -> Optional[float]:
        """
        Convert a captured amount token to float.

        Args:
            amount_str: Amount token such as ``"$1,234.56"``.

        Returns:
            Float value or None.
        """
        return parse_number(amount_str)

    def to_int(self, quantity_str: Optional[str]) -> Optional[int]:
        """
        Convert a captured quantity token to int.

        Args:
            quantity_str: Quantity token such as ``"1,200"``.

        Returns:
            Integer value (fraction truncated) or None.
        """
        value = parse_number(quantity_str)
        return int(value) if value is not None else None

    def extract_amount(self, text: str) -> Optional[float]:
        """
        Extract the first number found in free text.

        Args:
            text: Text that may contain an amount.

        Returns:
            Parsed value of the first number, or None.
        """
        if not text:
            return None

        match = self.NUMBER_PATTERN.search(text)
        if not match:
            return None

        value = parse_number(match.group(0))
        if value is None:
            logger.debug(f"Could not parse amount from: {text!r}")
        return value


class TextNormalizer:
    """
    Cleans a header value captured after its label.

    Example:
        >>> TextNormalizer().clean_value(": ACME Corp  ")
        'ACME Corp'
    """

    # Label punctuation left over in front of the value
    LEADING_PUNCTUATION = re.compile(r'^[:.\-]\s*')

    def clean_value(self, value: Optional[str]) -> str:
        """
        Strip whitespace and leading label punctuation.

        Args:
            value: Raw captured text.

        Returns:
            Cleaned text (possibly empty).
        """
        if not value:
            return ''
        return self.LEADING_PUNCTUATION.sub('', value.strip())
