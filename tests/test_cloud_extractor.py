"""
Unit tests for the two-round cloud extractor.
"""

import asyncio
import json

import pytest

from order_extraction.engines.base import ExtractionContext
from order_extraction.engines.cloud import (
    NO_SUPPLEMENTARY_CONTEXT,
    CloudMultiStepExtractor,
    build_base_instruction,
)
from order_extraction.input_handler.handler import DocumentPayload
from order_extraction.model_inference.schema import ConditionalRule, RuleCondition, TrainingRules
from order_extraction.utils.exceptions import (
    InferenceError,
    MalformedResponseError,
    ValidationError,
)

from conftest import DummyClient

BASE_PAYLOAD = {
    "mappedData": {"po_number": "4500012345", "customer_name": "ACME Corp", "total_amount": 250.0},
    "lineItems": [
        {"LineItem": "1", "VendorItemNumber": "W-100", "ItemDescription": "Blue Widget",
         "QuantityOrdered": 10, "CostEach": 12.5, "CostExtended": 125.0},
        {"LineItem": "2", "VendorItemNumber": "W-200", "ItemDescription": "Red Widget",
         "QuantityOrdered": 5, "CostEach": 25.0, "CostExtended": 125.0},
    ],
    "unmappedData": [{"key": "Buyer", "value": "J. Doe"}],
    "termsAndConditions": "Net 30",
    "confidence": {"po_number": 0.95},
}

REFINED_PAYLOAD = dict(
    BASE_PAYLOAD,
    mappedData={"po_number": "ACME-4500012345", "customer_name": "ACME Corp"},
    unmappedData=[],
    termsAndConditions="",
)


def run(extractor, payload, rules):
    return asyncio.run(extractor.extract(ExtractionContext(document=payload, rules=rules)))


def with_rule(rules, rule):
    return TrainingRules(
        schema=rules.schema,
        natural_language_rules=rules.natural_language_rules,
        conditional_rules=[rule],
    )


class TestBaseExtraction:
    """No rule fires: one round only."""

    def test_single_round_result(self, registry_factory, payload, rules):
        client = DummyClient([json.dumps(BASE_PAYLOAD)])
        result = run(CloudMultiStepExtractor(registry_factory(client=client)), payload, rules)

        assert len(client.calls) == 1
        assert result.mapped_data["po_number"] == "4500012345"
        assert len(result.line_items) == 2
        assert result.applied_rule_ids == ()
        assert result.usage_metadata.model_name == "Gemini 2.5 Flash"
        assert result.usage_metadata.total_tokens == 150
        assert result.usage_metadata.estimated_cost == pytest.approx(100 / 1e6 * 0.075 + 50 / 1e6 * 0.30)

    def test_request_carries_document_schema_and_hints(self, registry_factory, payload, rules):
        client = DummyClient([json.dumps(BASE_PAYLOAD)])
        run(CloudMultiStepExtractor(registry_factory(client=client)), payload, rules)

        call = client.calls[0]
        assert call["content"] == payload.content
        assert call["mime_type"] == "application/pdf"
        assert "po_number" in call["response_schema"]["properties"]["mappedData"]["properties"]
        assert "PO numbers start with 45." in call["system_instruction"]
        assert NO_SUPPLEMENTARY_CONTEXT in call["system_instruction"]

    def test_supplementary_text_in_instruction(self, rules):
        instruction = build_base_instruction(rules, "Ship to dock 4")
        assert '"Ship to dock 4"' in instruction
        assert NO_SUPPLEMENTARY_CONTEXT not in instruction

    def test_fenced_response_is_recovered(self, registry_factory, payload, rules):
        client = DummyClient(["```json\n" + json.dumps(BASE_PAYLOAD) + "\n```"])
        result = run(CloudMultiStepExtractor(registry_factory(client=client)), payload, rules)
        assert result.terms_and_conditions == "Net 30"


class TestRefinement:
    """A matched rule triggers a full-replace second round."""

    def test_refined_result_replaces_base(self, registry_factory, payload, rules, acme_rule):
        client = DummyClient([json.dumps(BASE_PAYLOAD), json.dumps(REFINED_PAYLOAD)])
        result = run(CloudMultiStepExtractor(registry_factory(client=client)),
                     payload, with_rule(rules, acme_rule))

        assert len(client.calls) == 2
        assert result.mapped_data == {"po_number": "ACME-4500012345", "customer_name": "ACME Corp"}
        # Full replace: base-only values are gone
        assert result.unmapped_data == ()
        assert result.terms_and_conditions == ""
        assert result.applied_rule_ids == ("acme-prefix",)
        assert result.usage_metadata.model_name == "Gemini 2.5 Flash (Multi-step)"
        assert result.usage_metadata.input_tokens == 200
        assert result.usage_metadata.output_tokens == 100

    def test_refinement_prompt_carries_base_json_and_rules(self, registry_factory, payload, rules, acme_rule):
        client = DummyClient([json.dumps(BASE_PAYLOAD), json.dumps(REFINED_PAYLOAD)])
        run(CloudMultiStepExtractor(registry_factory(client=client)), payload, with_rule(rules, acme_rule))

        prompt = client.calls[1]["prompt"]
        assert json.dumps(BASE_PAYLOAD) in prompt
        assert "Condition Met: Acme PO prefix. Instruction: Prefix the PO number with ACME-" in prompt
        assert "The extracted data has 2 line items" in prompt
        assert client.calls[1]["content"] == payload.content

    def test_line_item_count_change_rejected(self, registry_factory, payload, rules, acme_rule):
        dropped = dict(REFINED_PAYLOAD, lineItems=REFINED_PAYLOAD["lineItems"][:1])
        client = DummyClient([json.dumps(BASE_PAYLOAD), json.dumps(dropped)])
        with pytest.raises(ValidationError):
            run(CloudMultiStepExtractor(registry_factory(client=client)),
                payload, with_rule(rules, acme_rule))

    def test_line_item_count_check_can_be_disabled(self, registry_factory, payload, rules, acme_rule):
        dropped = dict(REFINED_PAYLOAD, lineItems=REFINED_PAYLOAD["lineItems"][:1])
        client = DummyClient([json.dumps(BASE_PAYLOAD), json.dumps(dropped)])
        extractor = CloudMultiStepExtractor(registry_factory(client=client), enforce_line_item_count=False)
        result = run(extractor, payload, with_rule(rules, acme_rule))
        assert len(result.line_items) == 1

    def test_filename_rule(self, registry_factory, rules):
        rule = ConditionalRule(
            id="globex-file", name="Globex files", active=True,
            condition=RuleCondition(field="FILENAME", operator="starts_with", value="GLOBEX"),
            instruction="Use the Globex customer name",
        )
        document = DocumentPayload(content=b"img", mime_type="image/png", filename="globex_17.png")
        client = DummyClient([json.dumps(BASE_PAYLOAD), json.dumps(BASE_PAYLOAD)])
        result = run(CloudMultiStepExtractor(registry_factory(client=client)), document, with_rule(rules, rule))
        assert result.applied_rule_ids == ("globex-file",)


class TestFailures:
    """Any failure aborts the whole extraction."""

    def test_malformed_base_response(self, registry_factory, payload, rules):
        client = DummyClient(["I could not read the document."])
        with pytest.raises(MalformedResponseError):
            run(CloudMultiStepExtractor(registry_factory(client=client)), payload, rules)

    def test_empty_refinement_response(self, registry_factory, payload, rules, acme_rule):
        client = DummyClient([json.dumps(BASE_PAYLOAD), ""])
        with pytest.raises(MalformedResponseError):
            run(CloudMultiStepExtractor(registry_factory(client=client)),
                payload, with_rule(rules, acme_rule))

    def test_transport_error(self, registry_factory, payload, rules):
        client = DummyClient([InferenceError("timeout", "gemini-2.5-flash")])
        with pytest.raises(InferenceError):
            run(CloudMultiStepExtractor(registry_factory(client=client)), payload, rules)
