"""
Unit tests for the local OCR pipeline.
"""

import asyncio

from order_extraction.engines.base import ExtractionContext
from order_extraction.engines.local import LocalOCRExtractor
from order_extraction.utils.exceptions import InferenceError

from conftest import DummyTextModel


def run(extractor, payload, rules):
    return asyncio.run(extractor.extract(ExtractionContext(document=payload, rules=rules)))


class TestLocalRegex:
    """OCR + grammar + alias headers."""

    def test_pipeline_output(self, registry_factory, payload, rules, order_ocr_result):
        registry = registry_factory(ocr_result=order_ocr_result)
        result = run(LocalOCRExtractor(registry, use_model=False), payload, rules)

        assert result.mapped_data == {
            "po_number": "4500012345",
            "customer_name": "ACME Corp",
            "total_amount": 125.0,
        }
        assert [item.to_dict() for item in result.line_items] == [{
            "LineItem": "1",
            "VendorItemNumber": "WIDGET-100",
            "ItemDescription": "Blue Widget",
            "QuantityOrdered": 10,
            "UnitOfMeasure": "EACH",
            "CostEach": 12.5,
            "CostExtended": 125.0,
        }]

    def test_local_results_are_free_and_rule_free(self, registry_factory, payload, rules, order_ocr_result):
        registry = registry_factory(ocr_result=order_ocr_result)
        result = run(LocalOCRExtractor(registry), payload, rules)

        assert result.usage_metadata.model_name == "Tesseract (Local)"
        assert result.usage_metadata.estimated_cost == 0.0
        assert result.usage_metadata.total_tokens == 0
        assert result.applied_rule_ids == ()
        assert result.unmapped_data == ()
        assert result.confidence == {}

    def test_rendered_page_goes_to_ocr(self, registry_factory, payload, rules):
        registry = registry_factory()
        run(LocalOCRExtractor(registry), payload, rules)
        assert registry.get_ocr_engine().images == ["page:acme_po.pdf"]

    def test_text_model_never_loaded(self, registry_factory, payload, rules):
        registry = registry_factory()
        run(LocalOCRExtractor(registry, use_model=False), payload, rules)
        assert not registry.is_initialized("text_model")

    def test_blank_page(self, registry_factory, payload, rules):
        result = run(LocalOCRExtractor(registry_factory()), payload, rules)
        assert result.mapped_data == {}
        assert result.line_items == ()


class TestLocalModel:
    """Local text model for headers with alias fallback."""

    def test_model_headers_used(self, registry_factory, payload, rules, order_ocr_result):
        model = DummyTextModel('{"po_number": "PO-FROM-MODEL", "total_amount": "99.00"}')
        registry = registry_factory(ocr_result=order_ocr_result, text_model=model)

        result = run(LocalOCRExtractor(registry, use_model=True), payload, rules)

        assert result.mapped_data == {"po_number": "PO-FROM-MODEL", "total_amount": 99.0}
        assert result.usage_metadata.model_name == "LaMini-Flan-T5 (Local)"
        assert len(result.line_items) == 1
        # Model sees the column-preserving text
        assert "12.50     10   EACH" in model.prompts[0]

    def test_fallback_on_model_error(self, registry_factory, payload, rules, order_ocr_result):
        model = DummyTextModel(error=InferenceError("CUDA out of memory", "lamini"))
        registry = registry_factory(ocr_result=order_ocr_result, text_model=model)

        result = run(LocalOCRExtractor(registry, use_model=True), payload, rules)

        assert result.mapped_data["po_number"] == "4500012345"
        assert result.mapped_data["total_amount"] == 125.0

    def test_fallback_on_unexpected_model_exception(self, registry_factory, payload, rules, order_ocr_result):
        model = DummyTextModel(error=RuntimeError("tokenizer exploded"))
        registry = registry_factory(ocr_result=order_ocr_result, text_model=model)

        result = run(LocalOCRExtractor(registry, use_model=True), payload, rules)

        assert not result.has_error
        assert result.mapped_data["po_number"] == "4500012345"
        assert len(model.prompts) == 1

    def test_fallback_on_unusable_output(self, registry_factory, payload, rules, order_ocr_result):
        model = DummyTextModel("I am not sure.")
        registry = registry_factory(ocr_result=order_ocr_result, text_model=model)

        result = run(LocalOCRExtractor(registry, use_model=True), payload, rules)

        assert result.mapped_data["customer_name"] == "ACME Corp"
