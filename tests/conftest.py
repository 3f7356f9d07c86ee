from types import SimpleNamespace
from typing import List

import pytest

from config import ConfigurationManager
from order_extraction.engines.registry import EngineRegistry
from order_extraction.input_handler.handler import DocumentPayload
from order_extraction.model_inference.schema import (
    ConditionalRule,
    RuleCondition,
    SchemaField,
    TrainingRules,
)
from order_extraction.ocr_engine.ocr_result import OCRLine, OCRResult, OCRWord


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    monkeypatch.delenv("ORDER_EXTRACTION_CONFIG", raising=False)
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()


class DummyClient:
    """Hosted-model stand-in replaying canned responses in order."""

    def __init__(self, texts: List, display_name="Gemini 2.5 Flash", tokens=(100, 50)):
        self.texts = list(texts)
        self.display_name = display_name
        self.model_name = "gemini-2.5-flash"
        self.tokens = tokens
        self.calls = []

    async def generate(self, content, mime_type, prompt, response_schema, system_instruction=None):
        self.calls.append(
            {
                "content": content,
                "mime_type": mime_type,
                "prompt": prompt,
                "response_schema": response_schema,
                "system_instruction": system_instruction,
            }
        )
        item = self.texts.pop(0)
        if isinstance(item, Exception):
            raise item
        return SimpleNamespace(text=item, input_tokens=self.tokens[0], output_tokens=self.tokens[1])


class DummyOCR:
    def __init__(self, result):
        self.result = result
        self.images = []

    def extract(self, image):
        self.images.append(image)
        return self.result


class DummyInputHandler:
    def render_page(self, payload):
        return f"page:{payload.filename}"


class DummyTextModel:
    display_name = "LaMini-Flan-T5 (Local)"

    def __init__(self, output="", error=None):
        self.output = output
        self.error = error
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.output


def make_line(line_index, *words):
    """Build an OCRLine from (text, x0, x1) tuples."""
    ocr_words = [
        OCRWord(text=text, bbox=(x0, 10 * line_index, x1, 10 * line_index + 8),
                confidence=90.0, word_index=i, line_index=line_index)
        for i, (text, x0, x1) in enumerate(words)
    ]
    return OCRLine(words=ocr_words, line_index=line_index)


def make_ocr_result(*lines):
    words = [w for line in lines for w in line.words]
    return OCRResult(words=words, lines=list(lines), engine="dummy")


@pytest.fixture
def rules():
    return TrainingRules(
        schema=[
            SchemaField(name="po_number", type="string", description="PO number", id="1"),
            SchemaField(name="customer_name", type="string", description="Customer", id="2"),
            SchemaField(name="total_amount", type="number", description="Total", id="3"),
        ],
        natural_language_rules="PO numbers start with 45.",
    )


@pytest.fixture
def acme_rule():
    return ConditionalRule(
        id="acme-prefix",
        name="Acme PO prefix",
        active=True,
        condition=RuleCondition(field="customer_name", operator="contains", value="acme"),
        instruction="Prefix the PO number with ACME-",
    )


@pytest.fixture
def payload():
    return DocumentPayload(content=b"%PDF-1.4 fake", mime_type="application/pdf",
                           filename="acme_po.pdf")


@pytest.fixture
def order_ocr_result():
    return make_ocr_result(
        make_line(0, ("PO", 0, 20), ("Number:", 25, 95), ("4500012345", 100, 200)),
        make_line(1, ("Customer:", 0, 90), ("ACME", 95, 135), ("Corp", 140, 180)),
        make_line(2, ("WIDGET-100", 0, 100), ("Blue", 105, 145), ("Widget", 150, 210),
                  ("12.50", 300, 350), ("10", 400, 420), ("EACH", 450, 490), ("125.00", 550, 610)),
        make_line(3, ("Total:", 0, 60), ("$125.00", 100, 170)),
    )


@pytest.fixture
def registry_factory():
    def build(client=None, ocr_result=None, text_model=None):
        return EngineRegistry(
            ocr_engine_factory=lambda: DummyOCR(ocr_result or make_ocr_result()),
            text_model_factory=lambda: text_model or DummyTextModel(),
            client_factory=lambda: client or DummyClient([]),
            input_handler_factory=DummyInputHandler,
        )
    return build
