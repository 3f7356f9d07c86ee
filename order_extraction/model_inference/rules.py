"""
Conditional Rule Evaluation.

Decides, from already-extracted data, which conditional rules apply to a
document. Evaluation is a pure function of its inputs: nothing is mutated,
no I/O happens, and the same inputs always yield the same matches in the
same order. The matched rule ids form the audit trail reported back to
the caller as ``appliedRuleIds``.

Subject resolution per rule (first hit wins):
    1. ``FILENAME``        -> the document filename
    2. a mappedData key    -> that header value
    3. a line-item key     -> the values of that attribute on every row

A rule matches when its predicate holds for any subject value, so one
rule can fire because of a single table row.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from order_extraction.utils.logger import get_logger
from .extraction_result import LineItem
from .schema import ConditionalRule, FILENAME_FIELD

# Initialize module logger
logger = get_logger(__name__)

PREDICATES: Dict[str, Callable[[str, str], bool]] = {
    'equals': lambda subject, value: subject == value,
    'contains': lambda subject, value: value in subject,
    'starts_with': lambda subject, value: subject.startswith(value),
}


@dataclass(frozen=True)
class RuleEvaluation:
    """Matched rules in their original order, plus their ids."""
    rules: Tuple[ConditionalRule, ...] = ()

    @property
    def rule_ids(self) -> List[str]:
        return [rule.id for rule in self.rules]

    def __bool__(self) -> bool:
        return bool(self.rules)

    def __len__(self) -> int:
        return len(self.rules)


def resolve_subjects(
    field_name: str,
    filename: str,
    mapped_data: Mapping[str, Any],
    line_items: Sequence[LineItem]
) -> Optional[List[str]]:
    """
    Resolve the lowercased subject values a rule condition is tested against.

    Args:
        field_name: The rule's condition field.
        filename: Document filename.
        mapped_data: Current header fields.
        line_items: Current line items.

    Returns:
        List of lowercased subject strings, or None when the field is found
        nowhere.
    """
    if field_name == FILENAME_FIELD:
        return [(filename or '').lower()]

    if mapped_data and field_name in mapped_data:
        # A present key is the subject even when its value is null
        value = mapped_data[field_name]
        return ['' if value is None else str(value).lower()]

    values = [
        str(value).lower()
        for value in (item.get(field_name) for item in line_items or ())
        if value is not None
    ]
    return values or None


def rule_matches(
    rule: ConditionalRule,
    filename: str,
    mapped_data: Mapping[str, Any],
    line_items: Sequence[LineItem]
) -> bool:
    """
    Check a single rule against the current extraction state.

    Args:
        rule: Rule to evaluate.
        filename: Document filename.
        mapped_data: Current header fields.
        line_items: Current line items.

    Returns:
        True when the rule is active and its condition holds.
    """
    if not rule.active:
        return False

    condition = rule.condition
    if condition.operator == 'always':
        return True

    subjects = resolve_subjects(condition.field, filename, mapped_data, line_items)
    if not subjects:
        return False

    predicate = PREDICATES.get(condition.operator)
    if predicate is None:
        return False

    expected = (condition.value or '').lower()
    return any(predicate(subject, expected) for subject in subjects)


def evaluate_rules(
    rules: Optional[Sequence[ConditionalRule]],
    filename: str,
    mapped_data: Optional[Mapping[str, Any]],
    line_items: Optional[Sequence[LineItem]]
) -> RuleEvaluation:
    """
    Evaluate all candidate rules against the extracted data.

    Args:
        rules: Candidate conditional rules.
        filename: Document filename (for ``FILENAME`` conditions).
        mapped_data: Current header fields.
        line_items: Current line items.

    Returns:
        RuleEvaluation with the matched rules in their original order.

    Example:
        >>> evaluation = evaluate_rules(rules, "acme_po.pdf",
        ...                             {"customer_name": "ACME Corp"}, [])
        >>> evaluation.rule_ids
        ['acme-prefix']
    """
    if not rules:
        return RuleEvaluation()

    mapped_data = mapped_data or {}
    line_items = line_items or ()

    matched = tuple(
        rule for rule in rules
        if rule_matches(rule, filename, mapped_data, line_items)
    )

    if matched:
        logger.debug(f"Rules matched: {[rule.id for rule in matched]}")

    return RuleEvaluation(rules=matched)
