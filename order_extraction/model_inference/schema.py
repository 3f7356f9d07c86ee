"""
Schema and Rule Definitions.

This module holds the caller-owned rules object (header field schema,
natural-language hints, conditional rules) and the Schema Compiler that
turns it into the request descriptors the engines consume:

    - a structured-output JSON schema for the hosted model
    - a partial-update schema for feedback refinement
    - a plain field-name list for the local pipeline

Schemas are emitted as plain dictionaries in the hosted model's schema
dialect (upper-case type names), which keeps them serializable and
testable without the SDK.

Author: ML Engineering Team
"""

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from config import get_config
from order_extraction.utils.exceptions import ConfigurationError

SEMANTIC_TYPES = ('string', 'number', 'date')
OPERATORS = ('equals', 'contains', 'starts_with', 'always')
FILENAME_FIELD = 'FILENAME'

LINE_ITEM_PROPERTIES: Dict[str, Dict[str, str]] = {
    'LineItem': {'type': 'STRING', 'description': 'Line number (e.g., 1, 10, 20)'},
    'VendorItemNumber': {'type': 'STRING', 'description': 'Vendor Part Number / Material Number'},
    'ItemDescription': {'type': 'STRING', 'description': 'Description of the item'},
    'QuantityOrdered': {'type': 'NUMBER', 'description': 'Quantity'},
    'UnitOfMeasure': {'type': 'STRING', 'description': 'UOM (e.g. EACH, PC)'},
    'CostEach': {'type': 'NUMBER', 'description': 'Unit Price'},
    'CostExtended': {'type': 'NUMBER', 'description': 'Total Line Amount'},
    'DateRequired': {'type': 'STRING', 'description': 'Delivery Date'},
    'CustomerReference': {'type': 'STRING', 'description': 'Customer Ref / Equipment Material'},
    'SOReference': {'type': 'STRING', 'description': 'Sales Order Reference / SO Line'},
}

_UNMAPPED_ITEM = {
    'type': 'OBJECT',
    'properties': {
        'key': {'type': 'STRING'},
        'value': {'type': 'STRING'},
    },
}


@dataclass(frozen=True)
class SchemaField:
    """One header field to extract."""
    name: str
    type: str = 'string'
    description: str = ''
    id: Optional[str] = None

    def __post_init__(self):
        if self.type not in SEMANTIC_TYPES:
            raise ConfigurationError(
                f"Unknown field type '{self.type}' for field '{self.name}'",
                {"field": self.name, "allowed": list(SEMANTIC_TYPES)}
            )

    def to_dict(self) -> Dict[str, Any]:
        data = {'name': self.name, 'type': self.type, 'description': self.description}
        if self.id is not None:
            data['id'] = self.id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SchemaField':
        return cls(
            name=data['name'],
            type=data.get('type', 'string'),
            description=data.get('description', ''),
            id=data.get('id'),
        )


@dataclass(frozen=True)
class RuleCondition:
    """Trigger of a conditional rule."""
    field: str
    operator: str
    value: str = ''

    def __post_init__(self):
        if self.operator not in OPERATORS:
            raise ConfigurationError(
                f"Unknown rule operator '{self.operator}'",
                {"operator": self.operator, "allowed": list(OPERATORS)}
            )


@dataclass(frozen=True)
class ConditionalRule:
    """
    An instruction that applies only when its condition matches
    previously extracted data.

    Example:
        >>> rule = ConditionalRule(
        ...     id="r1", name="Acme PO prefix", active=True,
        ...     condition=RuleCondition("customer_name", "contains", "acme"),
        ...     instruction="Prefix the PO number with ACME-")
    """
    id: str
    name: str
    active: bool
    condition: RuleCondition
    instruction: str
    target_field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'name': self.name,
            'active': self.active,
            'condition': {
                'field': self.condition.field,
                'operator': self.condition.operator,
                'value': self.condition.value,
            },
            'instruction': self.instruction,
        }
        if self.target_field:
            data['targetField'] = self.target_field
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConditionalRule':
        condition = data.get('condition') or {}
        return cls(
            id=str(data['id']),
            name=data.get('name', ''),
            active=bool(data.get('active', True)),
            condition=RuleCondition(
                field=condition.get('field', ''),
                operator=condition.get('operator', 'equals'),
                value=str(condition.get('value', '') or ''),
            ),
            instruction=data.get('instruction', ''),
            target_field=data.get('targetField'),
        )


@dataclass(frozen=True)
class TrainingRules:
    """
    The rules object in force for an extraction.

    Attributes:
        schema: Header fields to extract (names unique)
        natural_language_rules: Global hints passed to the hosted model
        conditional_rules: Rules re-applied when their trigger matches
    """
    schema: List[SchemaField] = field(default_factory=list)
    natural_language_rules: str = ''
    conditional_rules: List[ConditionalRule] = field(default_factory=list)

    def __post_init__(self):
        names = [f.name for f in self.schema]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(
                "Schema field names must be unique",
                {"duplicates": duplicates}
            )

    @property
    def field_names(self) -> List[str]:
        """Schema field names in declaration order."""
        return [f.name for f in self.schema]

    def get_field(self, name: str) -> Optional[SchemaField]:
        for schema_field in self.schema:
            if schema_field.name == name:
                return schema_field
        return None

    def promote_rule(self, rule_text: str) -> 'TrainingRules':
        """
        Append a suggested rule to the global natural-language hints.

        Args:
            rule_text: Generalized rule text (e.g. from feedback refinement).

        Returns:
            New TrainingRules; this instance is unchanged.
        """
        rule_text = (rule_text or '').strip()
        if not rule_text:
            return self
        if self.natural_language_rules:
            combined = f"{self.natural_language_rules}\n{rule_text}"
        else:
            combined = rule_text
        return replace(self, natural_language_rules=combined)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'schema': [f.to_dict() for f in self.schema],
            'naturalLanguageRules': self.natural_language_rules,
            'conditionalRules': [r.to_dict() for r in self.conditional_rules],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrainingRules':
        """
        Create TrainingRules from the caller's wire format.

        Args:
            data: Dictionary with ``schema``, ``naturalLanguageRules`` and
                optional ``conditionalRules`` keys.

        Returns:
            TrainingRules instance.
        """
        return cls(
            schema=[SchemaField.from_dict(f) for f in data.get('schema') or []],
            natural_language_rules=data.get('naturalLanguageRules') or '',
            conditional_rules=[
                ConditionalRule.from_dict(r) for r in data.get('conditionalRules') or []
            ],
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'TrainingRules':
        """Load a rules object from a YAML or JSON file."""
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix.lower() == '.json':
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    def save(self, path: Union[str, Path]) -> None:
        """Write the rules object as YAML or JSON depending on suffix."""
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            if path.suffix.lower() == '.json':
                json.dump(self.to_dict(), f, indent=2)
            else:
                yaml.safe_dump(self.to_dict(), f, sort_keys=False, allow_unicode=True)

    @classmethod
    def default(cls) -> 'TrainingRules':
        """Rules object configured under ``rules.default``."""
        return cls.from_dict(get_config("rules.default", {}) or {})


# =============================================================================
# SCHEMA COMPILER
# =============================================================================

def _field_type(schema_field: SchemaField) -> str:
    return 'NUMBER' if schema_field.type == 'number' else 'STRING'


def build_response_schema(rules: TrainingRules) -> Dict[str, Any]:
    """
    Compile the structured-output schema for extraction requests.

    Args:
        rules: Rules object whose schema fields drive ``mappedData``
            and ``confidence``.

    Returns:
        Schema dictionary shaped as ``{mappedData, lineItems, unmappedData,
        termsAndConditions, confidence}``.
    """
    mapped_properties = {}
    confidence_properties = {}

    for schema_field in rules.schema:
        mapped_properties[schema_field.name] = {
            'type': _field_type(schema_field),
            'description': schema_field.description,
        }
        confidence_properties[schema_field.name] = {
            'type': 'NUMBER',
            'description': f"Confidence score (0.0-1.0) for {schema_field.name}",
        }

    mapped_data = {
        'type': 'OBJECT',
        'description': 'The Header fields of the Purchase Order / Invoice',
        'properties': mapped_properties,
    }
    if rules.schema:
        mapped_data['required'] = rules.field_names

    schema = {
        'type': 'OBJECT',
        'properties': {
            'mappedData': mapped_data,
            'lineItems': {
                'type': 'ARRAY',
                'description': 'List of all line items in the Purchase Order grid',
                'items': {
                    'type': 'OBJECT',
                    'properties': {k: dict(v) for k, v in LINE_ITEM_PROPERTIES.items()},
                },
            },
            'unmappedData': {
                'type': 'ARRAY',
                'description': 'Any other important key-value pairs not found in mappedData or lineItems',
                'items': _UNMAPPED_ITEM,
            },
            'termsAndConditions': {'type': 'STRING'},
            'confidence': {'type': 'OBJECT', 'properties': confidence_properties},
        },
    }
    # Empty OBJECT properties are rejected by the hosted model
    if not confidence_properties:
        del schema['properties']['confidence']
    if not mapped_properties:
        del schema['properties']['mappedData']
    return schema


def build_feedback_schema(rules: TrainingRules) -> Dict[str, Any]:
    """
    Compile the partial-update schema for feedback refinement.

    Every section is nullable so the model can return only what changed.

    Args:
        rules: Rules object in force.

    Returns:
        Schema dictionary shaped as ``{updatedMappedData, updatedLineItems,
        updatedUnmappedData, suggestedRule}``.
    """
    mapped_properties = {
        schema_field.name: {
            'type': _field_type(schema_field),
            'description': schema_field.description,
            'nullable': True,
        }
        for schema_field in rules.schema
    }

    properties = {
        'updatedLineItems': {
            'type': 'ARRAY',
            'nullable': True,
            'items': {
                'type': 'OBJECT',
                'properties': {
                    k: {'type': v['type']} for k, v in LINE_ITEM_PROPERTIES.items()
                },
            },
        },
        'updatedUnmappedData': {
            'type': 'ARRAY',
            'nullable': True,
            'items': _UNMAPPED_ITEM,
        },
        'suggestedRule': {'type': 'STRING'},
    }
    if mapped_properties:
        properties['updatedMappedData'] = {
            'type': 'OBJECT',
            'properties': mapped_properties,
            'nullable': True,
        }

    return {'type': 'OBJECT', 'properties': properties}


def build_field_list(rules: TrainingRules) -> List[SchemaField]:
    """Request descriptor for the local pipeline: the typed field list."""
    return list(rules.schema)
