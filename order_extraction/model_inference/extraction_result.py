"""
Extraction Result Data Classes.

This module defines the result contract handed to and received from every
extraction engine. Field and key names are fixed: callers key their UI and
duplicate checks off them.

Classes:
    LineItem: One row of the order table (known attributes + extensions)
    UnmappedEntry: A leftover key/value pair
    UsageMetadata: Token counts and estimated cost of a model invocation
    ExtractionResult: Complete, immutable extraction output

Author: ML Engineering Team
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
import copy
import json

Scalar = Union[str, int, float]

RESULT_KEYS = (
    'mappedData',
    'lineItems',
    'unmappedData',
    'termsAndConditions',
    'confidence',
    'appliedRuleIds',
    'usageMetadata',
)


@dataclass(frozen=True)
class LineItem:
    """
    Represents a single order line.

    The known attributes map one-to-one onto the wire keys used by the
    caller (``VendorItemNumber``, ``CostEach`` ...). Anything else the
    document carries for the line goes into ``extras``.

    Example:
        >>> item = LineItem(line_item="1", vendor_item_number="WIDGET-100",
        ...                 item_description="Blue Widget", quantity_ordered=10)
        >>> item.get("VendorItemNumber")
        'WIDGET-100'
    """
    line_item: Optional[str] = None
    vendor_item_number: Optional[str] = None
    item_description: Optional[str] = None
    quantity_ordered: Optional[float] = None
    unit_of_measure: Optional[str] = None
    cost_each: Optional[float] = None
    cost_extended: Optional[float] = None
    date_required: Optional[str] = None
    customer_reference: Optional[str] = None
    so_reference: Optional[str] = None
    extras: Mapping[str, Any] = field(default_factory=dict)

    # Wire key -> attribute name
    WIRE_KEYS = {
        'LineItem': 'line_item',
        'VendorItemNumber': 'vendor_item_number',
        'ItemDescription': 'item_description',
        'QuantityOrdered': 'quantity_ordered',
        'UnitOfMeasure': 'unit_of_measure',
        'CostEach': 'cost_each',
        'CostExtended': 'cost_extended',
        'DateRequired': 'date_required',
        'CustomerReference': 'customer_reference',
        'SOReference': 'so_reference',
    }

    def __post_init__(self):
        object.__setattr__(self, 'extras', MappingProxyType(dict(self.extras or {})))

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up an attribute by its wire key.

        Args:
            key: Wire key such as ``ItemDescription`` or an extension key.
            default: Returned when the attribute is absent or None.

        Returns:
            Attribute value or default.
        """
        attr = self.WIRE_KEYS.get(key)
        if attr is not None:
            value = getattr(self, attr)
        else:
            value = self.extras.get(key)
        return default if value is None else value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the caller's wire format (None values omitted)."""
        data = {}
        for wire_key, attr in self.WIRE_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[wire_key] = value
        for key, value in self.extras.items():
            if value is not None:
                data[key] = copy.deepcopy(value)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LineItem':
        """
        Create a LineItem from a wire-format dictionary.

        Args:
            data: Dictionary keyed by wire keys; unknown keys become extras.

        Returns:
            LineItem instance.
        """
        known = {}
        extras = {}
        for key, value in data.items():
            attr = cls.WIRE_KEYS.get(key)
            if attr is not None:
                known[attr] = value
            else:
                extras[key] = value
        return cls(extras=extras, **known)


@dataclass(frozen=True)
class UnmappedEntry:
    """A key/value pair found on the document but not in the schema."""
    key: str
    value: Scalar

    def to_dict(self) -> Dict[str, Any]:
        return {'key': self.key, 'value': self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UnmappedEntry':
        return cls(key=str(data.get('key', '')), value=data.get('value', ''))


@dataclass(frozen=True)
class UsageMetadata:
    """
    Token counts and derived monetary cost of a model invocation.

    Attributes:
        input_tokens: Prompt tokens across all rounds
        output_tokens: Response tokens across all rounds
        total_tokens: Sum of input and output tokens
        model_name: Model (or engine) that produced the result
        estimated_cost: Cost in USD; always 0 for local engines
    """
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    model_name: str = ''
    estimated_cost: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'inputTokens': self.input_tokens,
            'outputTokens': self.output_tokens,
            'totalTokens': self.total_tokens,
            'modelName': self.model_name,
            'estimatedCost': self.estimated_cost,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'UsageMetadata':
        data = data or {}
        return cls(
            input_tokens=int(data.get('inputTokens', 0) or 0),
            output_tokens=int(data.get('outputTokens', 0) or 0),
            total_tokens=int(data.get('totalTokens', 0) or 0),
            model_name=str(data.get('modelName', '') or ''),
            estimated_cost=float(data.get('estimatedCost', 0.0) or 0.0),
        )


def _clamp_confidence(raw: Any) -> Dict[str, float]:
    """Keep numeric confidences only, clamped to [0, 1]."""
    if not isinstance(raw, Mapping):
        return {}
    confidence = {}
    for name, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        confidence[name] = max(0.0, min(1.0, float(value)))
    return confidence


def _scalar_mapping(raw: Any) -> Dict[str, Scalar]:
    """Drop null entries from a mappedData payload."""
    if not isinstance(raw, dict):
        return {}
    return {key: value for key, value in raw.items() if value is not None}


@dataclass(frozen=True)
class ExtractionResult:
    """
    The uniform extraction contract produced by every engine.

    A result is never modified after it is produced; helpers such as
    ``with_mapped_data`` return new instances. The caller owns merging
    a result into any longer-lived record.

    Attributes:
        mapped_data: Header fields keyed by schema field name
        line_items: Order lines in document table order
        unmapped_data: Leftover key/value pairs
        terms_and_conditions: Free-text terms found on the document
        confidence: Per-field confidence in [0, 1]
        applied_rule_ids: Ids of the conditional rules that fired
        usage_metadata: Token usage and estimated cost

    Example:
        >>> result = ExtractionResult(mapped_data={"po_number": "4500012345"})
        >>> sorted(result.to_dict().keys()) == sorted(RESULT_KEYS)
        True
    """
    mapped_data: Mapping[str, Scalar] = field(default_factory=dict)
    line_items: Tuple[LineItem, ...] = ()
    unmapped_data: Tuple[UnmappedEntry, ...] = ()
    terms_and_conditions: str = ''
    confidence: Mapping[str, float] = field(default_factory=dict)
    applied_rule_ids: Tuple[str, ...] = ()
    usage_metadata: UsageMetadata = field(default_factory=UsageMetadata)

    def __post_init__(self):
        # Read-only views over private copies
        object.__setattr__(self, 'mapped_data', MappingProxyType(dict(self.mapped_data)))
        object.__setattr__(self, 'line_items', tuple(self.line_items))
        object.__setattr__(self, 'unmapped_data', tuple(self.unmapped_data))
        object.__setattr__(self, 'confidence', MappingProxyType(_clamp_confidence(self.confidence)))
        object.__setattr__(self, 'applied_rule_ids', tuple(self.applied_rule_ids))

    @property
    def has_error(self) -> bool:
        """True when this is a degraded result carrying an error marker."""
        return any(entry.key == 'error' for entry in self.unmapped_data)

    def with_mapped_data(self, **extra: Scalar) -> 'ExtractionResult':
        """
        Return a copy with caller-injected header keys added.

        Args:
            **extra: Keys to add or overwrite (e.g. a linked customer id).

        Returns:
            New ExtractionResult; the original is unchanged.
        """
        merged = dict(self.mapped_data)
        merged.update(extra)
        return replace(self, mapped_data=merged)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the caller's wire format.

        Returns:
            Dictionary with exactly the contract keys.
        """
        return {
            'mappedData': dict(self.mapped_data),
            'lineItems': [item.to_dict() for item in self.line_items],
            'unmappedData': [entry.to_dict() for entry in self.unmapped_data],
            'termsAndConditions': self.terms_and_conditions,
            'confidence': dict(self.confidence),
            'appliedRuleIds': list(self.applied_rule_ids),
            'usageMetadata': self.usage_metadata.to_dict(),
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_model_payload(
        cls,
        payload: Dict[str, Any],
        applied_rule_ids: Optional[List[str]] = None,
        usage_metadata: Optional[UsageMetadata] = None
    ) -> 'ExtractionResult':
        """
        Build a result from a model's JSON payload.

        Missing or mistyped sections fall back to their empty value.

        Args:
            payload: Parsed ``{mappedData, lineItems, unmappedData,
                termsAndConditions, confidence}`` object.
            applied_rule_ids: Ids of the rules that fired.
            usage_metadata: Accumulated usage for the invocation.

        Returns:
            ExtractionResult instance.
        """
        raw_items = payload.get('lineItems') or []
        raw_unmapped = payload.get('unmappedData') or []
        terms = payload.get('termsAndConditions') or ''

        return cls(
            mapped_data=_scalar_mapping(payload.get('mappedData')),
            line_items=tuple(
                LineItem.from_dict(item) for item in raw_items
                if isinstance(item, dict)
            ),
            unmapped_data=tuple(
                UnmappedEntry.from_dict(entry) for entry in raw_unmapped
                if isinstance(entry, dict)
            ),
            terms_and_conditions=terms if isinstance(terms, str) else str(terms),
            confidence=payload.get('confidence') or {},
            applied_rule_ids=tuple(applied_rule_ids or ()),
            usage_metadata=usage_metadata or UsageMetadata(),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExtractionResult':
        """
        Create an ExtractionResult from the caller's wire format.

        Args:
            data: Dictionary with contract keys.

        Returns:
            ExtractionResult instance.
        """
        return cls.from_model_payload(
            data,
            applied_rule_ids=data.get('appliedRuleIds') or [],
            usage_metadata=UsageMetadata.from_dict(data.get('usageMetadata')),
        )

    @classmethod
    def degraded(cls, engine: str, reason: str) -> 'ExtractionResult':
        """
        Build the error result returned when an engine fails.

        Args:
            engine: Engine identifier that was running.
            reason: Short failure description.

        Returns:
            ExtractionResult with an ``error`` entry and zero cost.
        """
        return cls(
            unmapped_data=(
                UnmappedEntry(key='error', value=f"Extraction failed using {engine}: {reason}"),
            ),
            terms_and_conditions='Error processing document.',
            usage_metadata=UsageMetadata(model_name=engine, estimated_cost=0.0),
        )

    def __repr__(self) -> str:
        return (
            f"ExtractionResult("
            f"fields={len(self.mapped_data)}, "
            f"line_items={len(self.line_items)}, "
            f"rules={list(self.applied_rule_ids)}, "
            f"model={self.usage_metadata.model_name!r})"
        )
