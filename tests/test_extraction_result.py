"""
Unit tests for the result contract, JSON recovery and cost accounting.
"""

import dataclasses

import pytest

from order_extraction.model_inference.extraction_result import (
    RESULT_KEYS,
    ExtractionResult,
    LineItem,
    UsageMetadata,
)
from order_extraction.model_inference.usage import UsageMeter, calculate_cost
from order_extraction.utils.exceptions import MalformedResponseError
from order_extraction.utils.helpers import clean_json_string, parse_json_object, parse_number


class TestExtractionResult:
    """Contract shape and immutability."""

    def test_to_dict_has_exactly_contract_keys(self):
        assert set(ExtractionResult().to_dict()) == set(RESULT_KEYS)

    def test_from_model_payload(self):
        result = ExtractionResult.from_model_payload({
            "mappedData": {"po_number": "4500", "customer_name": None},
            "lineItems": [{"LineItem": "1", "ItemDescription": "Bolt", "Finish": "Zinc"}, "junk"],
            "unmappedData": [{"key": "Buyer", "value": "J. Doe"}],
            "termsAndConditions": "Net 30",
            "confidence": {"po_number": 1.4, "customer_name": -0.2, "total_amount": "high"},
        })

        assert result.mapped_data == {"po_number": "4500"}
        assert len(result.line_items) == 1
        assert result.line_items[0].extras == {"Finish": "Zinc"}
        assert result.unmapped_data[0].to_dict() == {"key": "Buyer", "value": "J. Doe"}
        assert result.confidence == {"po_number": 1.0, "customer_name": 0.0}
        assert result.terms_and_conditions == "Net 30"

    def test_missing_sections_default_to_empty(self):
        data = ExtractionResult.from_model_payload({}).to_dict()
        assert data["mappedData"] == {}
        assert data["lineItems"] == []
        assert data["unmappedData"] == []
        assert data["termsAndConditions"] == ""

    def test_result_is_frozen(self):
        result = ExtractionResult(mapped_data={"po_number": "1"})
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.mapped_data = {}

    def test_result_mappings_are_read_only(self):
        result = ExtractionResult(mapped_data={"po_number": "1"}, confidence={"po_number": 0.9})
        with pytest.raises(TypeError):
            result.mapped_data["injected"] = "yes"
        with pytest.raises(TypeError):
            result.confidence["po_number"] = 0.1
        assert result.mapped_data == {"po_number": "1"}

    def test_line_items_are_frozen(self):
        item = LineItem(line_item="1", item_description="X", extras={"Discount": "5%"})
        with pytest.raises(dataclasses.FrozenInstanceError):
            item.item_description = "CHANGED"
        with pytest.raises(TypeError):
            item.extras["Discount"] = "50%"
        assert item.to_dict()["Discount"] == "5%"

    def test_extras_copied_from_caller(self):
        extras = {"Finish": "Zinc"}
        item = LineItem(line_item="1", extras=extras)
        extras["Finish"] = "Chrome"
        assert item.extras == {"Finish": "Zinc"}

    def test_with_mapped_data_returns_copy(self):
        result = ExtractionResult(mapped_data={"po_number": "1"})
        linked = result.with_mapped_data(customer_id="C-42")
        assert linked.mapped_data == {"po_number": "1", "customer_id": "C-42"}
        assert result.mapped_data == {"po_number": "1"}

    def test_caller_mutation_does_not_leak_in(self):
        mapped = {"po_number": "1"}
        result = ExtractionResult(mapped_data=mapped)
        mapped["po_number"] = "2"
        assert result.mapped_data["po_number"] == "1"

    def test_degraded_result(self):
        result = ExtractionResult.degraded("cloud", "boom")
        data = result.to_dict()
        assert result.has_error
        assert data["unmappedData"] == [
            {"key": "error", "value": "Extraction failed using cloud: boom"}
        ]
        assert data["termsAndConditions"] == "Error processing document."
        assert data["usageMetadata"]["estimatedCost"] == 0.0
        assert set(data) == set(RESULT_KEYS)

    def test_wire_round_trip(self):
        original = ExtractionResult(
            mapped_data={"po_number": "4500"},
            line_items=(LineItem(line_item="1", quantity_ordered=2, extras={"Discount": "5%"}),),
            applied_rule_ids=("r1",),
            usage_metadata=UsageMetadata(10, 5, 15, "Gemini 2.5 Flash", 0.0001),
        )
        assert ExtractionResult.from_dict(original.to_dict()) == original


class TestJsonRecovery:
    """Model output cleanup."""

    def test_fenced_json(self):
        assert clean_json_string('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_prose_around_object(self):
        assert parse_json_object('Sure! Here it is: {"a": {"b": 2}} Hope this helps.') == {"a": {"b": 2}}

    @pytest.mark.parametrize("text", [None, "", "   ", "not json", "[1, 2]"])
    def test_malformed(self, text):
        with pytest.raises(MalformedResponseError):
            parse_json_object(text)

    def test_parse_number(self):
        assert parse_number("$1,234.50") == 1234.5
        assert parse_number("  ") is None
        assert parse_number(None) is None
        assert parse_number("12a") is None


class TestUsage:
    """Token and cost accounting."""

    def test_calculate_cost(self):
        assert calculate_cost(1_000_000, 1_000_000, 0.075, 0.30) == pytest.approx(0.375)

    def test_meter_accumulates_rounds(self):
        meter = UsageMeter(price_input_per_million=0.075, price_output_per_million=0.30)
        meter.record(1000, 500)
        meter.record(2000, None)
        metadata = meter.to_metadata("Gemini 2.5 Flash (Multi-step)")

        assert meter.rounds == 2
        assert metadata.input_tokens == 3000
        assert metadata.output_tokens == 500
        assert metadata.total_tokens == 3500
        assert metadata.estimated_cost == pytest.approx(3000 / 1e6 * 0.075 + 500 / 1e6 * 0.30)

    def test_prices_default_to_config(self):
        meter = UsageMeter()
        assert meter.price_input_per_million == 0.075
        assert meter.price_output_per_million == 0.30
