"""
Feedback Refiner.

Applies a free-text user correction to a previously produced result. The
hosted model is asked to return only what changed, and the answer is
merged over the current result:

    mappedData    shallow merge; returned fields overwrite, others are kept
    lineItems     replaced only by a non-empty returned list
    unmappedData  replaced when returned, else kept

This is a partial-merge protocol and deliberately differs from the
full-replace refinement of the multi-step extractor. Errors are not
swallowed: the correction is user-initiated and a silent fallback would
be misleading.

Author: ML Engineering Team
"""

import json
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from order_extraction.utils.logger import get_logger
from order_extraction.utils.helpers import parse_json_object
from order_extraction.utils.exceptions import ValidationError
from order_extraction.input_handler.handler import DocumentPayload
from .extraction_result import ExtractionResult, LineItem, UnmappedEntry, UsageMetadata
from .schema import TrainingRules, build_feedback_schema
from .usage import UsageMeter

# Initialize module logger
logger = get_logger(__name__)

DEFAULT_SUGGESTED_RULE = "Review extraction logic."

FEEDBACK_SYSTEM_INSTRUCTION = """
You are an expert AI Document Trainer.
Update the extraction based on the user's feedback.

IMPORTANT:
1. Only return the fields that need to be updated.
2. If 'updatedLineItems' are not affected by the feedback, return an empty array [] to save processing time.
3. Suggest a generalized rule that could automate this in the future.

User Feedback: "{feedback}"
"""

FEEDBACK_PROMPT = "Current Data: {current}. \n\nUser Feedback: {feedback}."


@dataclass(frozen=True)
class RefinementOutcome:
    """
    Result of a feedback refinement.

    Attributes:
        result: The merged extraction result
        suggested_rule: Generalized rule text the caller may promote
        usage_metadata: Usage of the refinement call itself
    """
    result: ExtractionResult
    suggested_rule: str
    usage_metadata: UsageMetadata


def merge_feedback(current: ExtractionResult, response: Dict[str, Any]) -> ExtractionResult:
    """
    Merge a partial-update response over the current result.

    Args:
        current: Result before the correction.
        response: Parsed ``{updatedMappedData, updatedLineItems,
            updatedUnmappedData}`` object.

    Returns:
        New ExtractionResult; ``current`` is unchanged.

    Raises:
        ValidationError: If a returned section has the wrong shape.

    Example:
        >>> merged = merge_feedback(current, {"updatedMappedData": {"b": 5}})
        >>> merged.mapped_data
        {'a': 1, 'b': 5}
    """
    updated_mapped = response.get('updatedMappedData')
    updated_items = response.get('updatedLineItems')
    updated_unmapped = response.get('updatedUnmappedData')

    mapped_data = dict(current.mapped_data)
    if updated_mapped is not None:
        if not isinstance(updated_mapped, dict):
            raise ValidationError('updatedMappedData', 'expected an object')
        # Null means "unchanged" in the partial-update schema
        mapped_data.update({k: v for k, v in updated_mapped.items() if v is not None})

    line_items = current.line_items
    if updated_items is not None and not isinstance(updated_items, list):
        raise ValidationError('updatedLineItems', 'expected an array')
    if updated_items:
        line_items = tuple(
            LineItem.from_dict(item) for item in updated_items if isinstance(item, dict)
        )

    unmapped_data = current.unmapped_data
    if updated_unmapped is not None:
        if not isinstance(updated_unmapped, list):
            raise ValidationError('updatedUnmappedData', 'expected an array')
        unmapped_data = tuple(
            UnmappedEntry.from_dict(entry) for entry in updated_unmapped
            if isinstance(entry, dict)
        )

    return replace(
        current,
        mapped_data=mapped_data,
        line_items=line_items,
        unmapped_data=unmapped_data,
    )


class FeedbackRefiner:
    """
    Partial-update correction driven by user feedback.

    Attributes:
        client: Hosted-model client with an async ``generate`` method

    Example:
        >>> refiner = FeedbackRefiner(client)
        >>> outcome = await refiner.refine(document, result,
        ...                                "The PO number is 4500099999", rules)
        >>> outcome.result.mapped_data["po_number"]
        '4500099999'
        >>> rules = rules.promote_rule(outcome.suggested_rule)
    """

    def __init__(self, client: Any, usage_meter_factory=UsageMeter) -> None:
        self.client = client
        self._usage_meter_factory = usage_meter_factory

    async def refine(
        self,
        document: DocumentPayload,
        current: ExtractionResult,
        feedback: str,
        rules: TrainingRules
    ) -> RefinementOutcome:
        """
        Apply a free-text correction to a result.

        Args:
            document: The document the result was extracted from.
            current: Current result snapshot.
            feedback: User's correction text.
            rules: Rules object in force.

        Returns:
            RefinementOutcome with the merged result and a suggested rule.

        Raises:
            InferenceError: If the hosted-model call fails.
            MalformedResponseError: If the response is not a JSON object.
            ValidationError: If a returned section has the wrong shape.
        """
        logger.info(f"Refining {document.filename} with user feedback")

        response = await self.client.generate(
            content=document.content,
            mime_type=document.mime_type,
            prompt=FEEDBACK_PROMPT.format(
                current=json.dumps(current.to_dict()),
                feedback=feedback
            ),
            response_schema=build_feedback_schema(rules),
            system_instruction=FEEDBACK_SYSTEM_INSTRUCTION.format(feedback=feedback),
        )

        payload = parse_json_object(response.text)
        merged = merge_feedback(current, payload)

        meter = self._usage_meter_factory()
        meter.record(response.input_tokens, response.output_tokens)
        model_name = getattr(self.client, 'display_name', None) or getattr(self.client, 'model_name', '')

        suggested_rule = payload.get('suggestedRule') or DEFAULT_SUGGESTED_RULE
        logger.info(f"Feedback applied; suggested rule: {suggested_rule}")

        return RefinementOutcome(
            result=merged,
            suggested_rule=str(suggested_rule),
            usage_metadata=meter.to_metadata(model_name),
        )
