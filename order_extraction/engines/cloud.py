"""
Cloud Multi-Step Extractor.

Two-round protocol against the hosted multimodal model:

    1. Base extraction: document + compiled schema + global hints +
       supplementary text. The JSON reply becomes the working result.
    2. Conditional refinement: the rule engine runs against the working
       result. If any rule matches, a second request carries the complete
       step-1 JSON and the matched instructions. The reply replaces the
       working result entirely.

There are no retries and no partial results: any failure in either round
aborts the extraction and the Engine Selector turns it into a degraded
result.

Author: ML Engineering Team
"""

import json
from dataclasses import replace
from typing import Any, Optional

from config import get_config
from order_extraction.utils.logger import get_logger
from order_extraction.utils.helpers import parse_json_object
from order_extraction.utils.exceptions import ValidationError
from order_extraction.model_inference.extraction_result import ExtractionResult
from order_extraction.model_inference.rules import RuleEvaluation, evaluate_rules
from order_extraction.model_inference.schema import TrainingRules, build_response_schema
from order_extraction.model_inference.usage import UsageMeter
from .base import ExtractionContext, Extractor
from .registry import EngineRegistry

# Initialize module logger
logger = get_logger(__name__)

BASE_PROMPT = "Analyze the image/PDF provided and return the JSON response."

BASE_SYSTEM_INSTRUCTION = """
You are an intelligent document processing agent specializing in complex Purchase Orders and Sales Orders.

GOAL: Extract data to create a Sales Order in SAP S/4HANA.

1. HEADERS: Extract the specific fields requested in 'mappedData'.
2. LINE ITEMS: Extract the table of items into 'lineItems'. Pay close attention to:
   - Vendor Item Number (e.g. 6510866, CRECP4N)
   - Descriptions
   - Quantities and Unit Costs
   - Extended Costs (ensure Quantity * Cost = Extended)
3. EXTRAS: Put any other useful info in 'unmappedData'.

GLOBAL RULES: "{global_rules}"

ADDITIONAL CONTEXT (Important):
{context}
"""

SUPPLEMENTARY_CONTEXT = (
    "The user provided the following Email/Text Context along with the document. "
    "Use this to override standard extraction or clarify details "
    "(e.g. Ship To addresses, special instructions): \n\"{text}\""
)
NO_SUPPLEMENTARY_CONTEXT = "No additional email context provided."

REFINEMENT_INSTRUCTION = """
You have already extracted data. However, specific rules apply to this document.

APPLY THESE SPECIFIC RULES AND UPDATE THE JSON:
{rule_instructions}

CRITICAL INSTRUCTIONS:
1. Return the COMPLETE JSON structure with the updates applied.
2. DO NOT remove any Line Items. The extracted data has {line_count} line items. Your output MUST contain exactly this number of line items.
3. Only modify the specific fields mentioned in the rules (e.g., Description, PO Number). Keep all other values identical.
"""

REFINEMENT_PROMPT = "Current Extraction Data: {current}. \n\n {instruction}"


def build_base_instruction(rules: TrainingRules, supplementary_text: Optional[str]) -> str:
    """System instruction for the base extraction round."""
    if supplementary_text:
        context = SUPPLEMENTARY_CONTEXT.format(text=supplementary_text)
    else:
        context = NO_SUPPLEMENTARY_CONTEXT
    return BASE_SYSTEM_INSTRUCTION.format(
        global_rules=rules.natural_language_rules,
        context=context
    )


def build_refinement_instruction(evaluation: RuleEvaluation, line_count: int) -> str:
    """Instruction listing the matched rules for the refinement round."""
    rule_instructions = '\n'.join(
        f"- Condition Met: {rule.name}. Instruction: {rule.instruction}"
        for rule in evaluation.rules
    )
    return REFINEMENT_INSTRUCTION.format(
        rule_instructions=rule_instructions,
        line_count=line_count
    )


class CloudMultiStepExtractor(Extractor):
    """
    Two-round extraction against the hosted multimodal model.

    Attributes:
        registry: Source of the shared hosted-model client
        enforce_line_item_count: Reject refinements that change the
            number of line items

    Example:
        >>> extractor = CloudMultiStepExtractor(registry)
        >>> result = await extractor.extract(context)
        >>> result.applied_rule_ids
        ['acme-prefix']
    """

    engine_id = 'cloud'

    def __init__(
        self,
        registry: Optional[EngineRegistry] = None,
        enforce_line_item_count: Optional[bool] = None,
        usage_meter_factory=UsageMeter
    ) -> None:
        self.registry = registry or EngineRegistry()
        if enforce_line_item_count is None:
            enforce_line_item_count = get_config("cloud.enforce_line_item_count", True)
        self.enforce_line_item_count = bool(enforce_line_item_count)
        self._usage_meter_factory = usage_meter_factory

    async def extract(self, context: ExtractionContext) -> ExtractionResult:
        """
        Run base extraction and, when rules match, the refinement round.

        Args:
            context: Document and rules for this invocation.

        Returns:
            ExtractionResult with accumulated usage.

        Raises:
            InferenceError: If a hosted-model call fails.
            MalformedResponseError: If a reply is not a JSON object.
            ValidationError: If refinement changed the line-item count
                while enforcement is on.
        """
        client = self.registry.get_client()
        document = context.document
        rules = context.rules
        schema = build_response_schema(rules)
        meter = self._usage_meter_factory()

        logger.info(f"Step 1: base extraction of {document.filename}")
        base = await client.generate(
            content=document.content,
            mime_type=document.mime_type,
            prompt=BASE_PROMPT,
            response_schema=schema,
            system_instruction=build_base_instruction(rules, document.supplementary_text),
        )
        payload = parse_json_object(base.text)
        meter.record(base.input_tokens, base.output_tokens)

        working = ExtractionResult.from_model_payload(payload)
        evaluation = evaluate_rules(
            rules.conditional_rules,
            document.filename,
            working.mapped_data,
            working.line_items,
        )

        if evaluation:
            logger.info(
                f"Step 2: {len(evaluation)} rule(s) triggered {evaluation.rule_ids}; refining"
            )
            working = await self._refine(client, context, payload, working, evaluation, schema, meter)
        else:
            logger.info("No conditional rules matched; base extraction is final")

        model_name = self._model_name(client, refined=bool(evaluation))
        result = replace(
            working,
            applied_rule_ids=tuple(evaluation.rule_ids),
            usage_metadata=meter.to_metadata(model_name),
        )

        logger.info(
            f"Cloud extraction finished: {len(result.line_items)} line items, "
            f"{meter.total_tokens} tokens, ${meter.estimated_cost:.6f}"
        )
        return result

    async def _refine(
        self,
        client: Any,
        context: ExtractionContext,
        payload: dict,
        working: ExtractionResult,
        evaluation: RuleEvaluation,
        schema: dict,
        meter: UsageMeter
    ) -> ExtractionResult:
        """Second round; the reply fully replaces the working result."""
        document = context.document
        line_count = len(working.line_items)
        instruction = build_refinement_instruction(evaluation, line_count)

        refined = await client.generate(
            content=document.content,
            mime_type=document.mime_type,
            prompt=REFINEMENT_PROMPT.format(current=json.dumps(payload), instruction=instruction),
            response_schema=schema,
        )
        refined_payload = parse_json_object(refined.text)
        meter.record(refined.input_tokens, refined.output_tokens)

        replacement = ExtractionResult.from_model_payload(refined_payload)

        if len(replacement.line_items) != line_count:
            message = f"refinement returned {len(replacement.line_items)} line items, expected {line_count}"
            if self.enforce_line_item_count:
                raise ValidationError('lineItems', message)
            logger.warning(f"Accepting refinement anyway: {message}")

        return replacement

    @staticmethod
    def _model_name(client: Any, refined: bool) -> str:
        name = getattr(client, 'display_name', None) or getattr(client, 'model_name', 'cloud')
        return f"{name} (Multi-step)" if refined else name
