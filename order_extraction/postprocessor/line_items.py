"""
Line-Item Grammar Module.

Parses order table rows out of spatially reconstructed OCR text. Each
line is tried against an ordered list of grammar rules; the first rule
whose pattern matches builds the line item. Precedence lives in the order
of ``GRAMMAR``:

    1. rich      description  unit-price  discount  adjusted-price  qty  amount
    2. standard  description  [unit-price]  qty  [uom]  amount

Lines that are too short, page markers, or subtotal/tax/total rows are
skipped before any rule is tried.

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from config import get_config
from order_extraction.utils.logger import get_logger
from order_extraction.model_inference.extraction_result import LineItem
from .normalizers import AmountNormalizer

# Initialize module logger
logger = get_logger(__name__)

_amounts = AmountNormalizer()

# Leading tokens that look like part numbers but start a sentence or label
PART_NUMBER_STOP_WORDS = frozenset({'THE', 'ITEM', 'DESC', 'BILL', 'SHIP'})

PAGE_MARKER = re.compile(r'page\s+\d', re.IGNORECASE)
SUMMARY_ROW = re.compile(r'subtotal|tax|vat|total amount|amount due', re.IGNORECASE)

RICH_PATTERN = re.compile(
    r'^(.*?)\s+([$\d,]+\.\d{2})\s+([\d.]+%?)\s+([$\d,]+\.\d{2})\s+(\d+)\s+([$\d,]+\.\d{2})$'
)
STANDARD_PATTERN = re.compile(
    r'^(.*?)\s+([$\d,]+\.\d{2})?\s+(\d+)\s+([a-zA-Z]{1,4})?\s*([$\d,]+\.\d{2})$'
)

DEFAULT_UOM = 'EACH'


def split_part_number(raw_description: str) -> Tuple[str, str]:
    """
    Split a leading vendor part number off a description.

    The first word is a part number when it contains a digit or a hyphen
    or is entirely upper-case alphanumeric, is longer than two characters,
    and is not a stop word.

    Args:
        raw_description: Description text captured by the grammar.

    Returns:
        Tuple of (part_number, description); part_number is empty when
        nothing was split off.

    Example:
        >>> split_part_number("WIDGET-100 Blue Widget")
        ('WIDGET-100', 'Blue Widget')
        >>> split_part_number("THE Blue Widget")
        ('', 'THE Blue Widget')
    """
    first_space = raw_description.find(' ')
    if first_space == -1:
        return '', raw_description

    first_word = raw_description[:first_space]
    looks_like_part = (
        any(ch.isdigit() for ch in first_word)
        or '-' in first_word
        or re.fullmatch(r'[A-Z0-9]+', first_word) is not None
    )

    if (
        looks_like_part
        and len(first_word) > 2
        and first_word.upper() not in PART_NUMBER_STOP_WORDS
    ):
        return first_word, raw_description[first_space:].strip()

    return '', raw_description


def _build_rich(match: re.Match) -> Optional[LineItem]:
    raw_desc, price, discount, _adjusted, quantity, amount = match.groups()
    part_number, description = split_part_number(raw_desc.strip())
    return LineItem(
        vendor_item_number=part_number,
        item_description=description,
        quantity_ordered=_amounts.to_int(quantity),
        unit_of_measure=DEFAULT_UOM,
        cost_each=_amounts.to_float(price),
        cost_extended=_amounts.to_float(amount),
        extras={'Discount': discount},
    )


def _build_standard(match: re.Match) -> Optional[LineItem]:
    raw_desc, price, quantity, uom, amount = match.groups()
    raw_desc = raw_desc.strip()
    # Too short to be a real description
    if len(raw_desc) <= 3:
        return None

    part_number, description = split_part_number(raw_desc)
    return LineItem(
        vendor_item_number=part_number,
        item_description=description,
        quantity_ordered=_amounts.to_int(quantity),
        unit_of_measure=uom or DEFAULT_UOM,
        cost_each=_amounts.to_float(price) if price else 0.0,
        cost_extended=_amounts.to_float(amount) if amount else 0.0,
    )


@dataclass(frozen=True)
class GrammarRule:
    """One line-item pattern and the builder turning its match into a LineItem."""
    name: str
    pattern: re.Pattern
    build: Callable[[re.Match], Optional[LineItem]]

    def apply(self, line: str) -> Optional[re.Match]:
        return self.pattern.match(line)


GRAMMAR: Tuple[GrammarRule, ...] = (
    GrammarRule('rich', RICH_PATTERN, _build_rich),
    GrammarRule('standard', STANDARD_PATTERN, _build_standard),
)


class LineItemParser:
    """
    Parses line items from reconstructed text.

    Attributes:
        min_line_length: Lines shorter than this (after trimming) are skipped
        grammar: Ordered grammar rules; the first matching rule wins

    Example:
        >>> parser = LineItemParser()
        >>> items = parser.parse("WIDGET-100 Blue Widget 12.50 10 EACH 125.00\\n")
        >>> items[0].to_dict()["CostExtended"]
        125.0
    """

    def __init__(
        self,
        min_line_length: Optional[int] = None,
        grammar: Optional[Tuple[GrammarRule, ...]] = None
    ) -> None:
        if min_line_length is None:
            min_line_length = get_config("local.line_items.min_line_length", 10)
        self.min_line_length = min_line_length
        self.grammar = grammar if grammar is not None else GRAMMAR

    def should_skip(self, line: str) -> bool:
        """True for short lines, page markers and summary rows."""
        return (
            len(line) < self.min_line_length
            or PAGE_MARKER.search(line) is not None
            or SUMMARY_ROW.search(line) is not None
        )

    def parse_line(self, line: str) -> Optional[LineItem]:
        """
        Parse a single trimmed line.

        Args:
            line: One reconstructed text line.

        Returns:
            LineItem without a line number, or None when the line is
            skipped or no grammar rule produces an item.
        """
        if self.should_skip(line):
            return None

        for rule in self.grammar:
            match = rule.apply(line)
            if match is None:
                continue

            item = rule.build(match)
            logger.debug(f"Line matched {rule.name} grammar: {line!r}")
            # First matching rule wins even if its builder rejects the line
            return item

        return None

    def parse(self, text: str) -> List[LineItem]:
        """
        Parse all line items in document order.

        Line numbers are assigned consecutively from 1 to the items that
        were actually produced.

        Args:
            text: Spatially reconstructed text.

        Returns:
            List of LineItem objects.
        """
        items: List[LineItem] = []

        for raw_line in text.split('\n'):
            item = self.parse_line(raw_line.strip())
            if item is None:
                continue
            items.append(replace(item, line_item=str(len(items) + 1)))

        logger.info(f"Parsed {len(items)} line items")
        return items
