"""
Model Inference Module for the Order Extraction System.

This module provides:
    - The ExtractionResult contract shared by every engine
    - The rules object and the Schema Compiler
    - Conditional rule evaluation
    - Token and cost accounting
    - Hosted-model client and feedback refinement
    - Local header extractors (text model and alias matching)

Author: ML Engineering Team
"""

from .extraction_result import ExtractionResult, LineItem, UnmappedEntry, UsageMetadata
from .schema import (
    SchemaField,
    RuleCondition,
    ConditionalRule,
    TrainingRules,
    build_response_schema,
    build_feedback_schema,
    build_field_list,
)
from .rules import RuleEvaluation, evaluate_rules
from .usage import UsageMeter, calculate_cost

__all__ = [
    'ExtractionResult',
    'LineItem',
    'UnmappedEntry',
    'UsageMetadata',
    'SchemaField',
    'RuleCondition',
    'ConditionalRule',
    'TrainingRules',
    'build_response_schema',
    'build_feedback_schema',
    'build_field_list',
    'RuleEvaluation',
    'evaluate_rules',
    'UsageMeter',
    'calculate_cost',
]
