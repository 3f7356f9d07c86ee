"""
Command-line interface tests.
"""

import json

import pytest

import main
from order_extraction.model_inference.extraction_result import RESULT_KEYS, ExtractionResult
from order_extraction.model_inference.schema import TrainingRules

from conftest import DummyClient


@pytest.fixture
def patched_registry(monkeypatch, registry_factory, order_ocr_result):
    def install(client=None):
        registry = registry_factory(client=client, ocr_result=order_ocr_result)
        monkeypatch.setattr("order_extraction.engines.selector.EngineRegistry", lambda: registry)
        return registry
    return install


def test_feedback_requires_previous(tmp_path):
    with pytest.raises(SystemExit):
        main.parse_arguments(["--input", str(tmp_path / "a.pdf"), "--feedback", "fix"])


def test_promote_requires_rules(tmp_path):
    with pytest.raises(SystemExit):
        main.parse_arguments([
            "--input", "a.pdf", "--previous", "a.json", "--feedback", "fix", "--promote",
        ])


def test_unknown_engine_rejected():
    with pytest.raises(SystemExit):
        main.parse_arguments(["--input", "a.pdf", "--engine", "paddle"])


def test_extract_single_file(tmp_path, patched_registry):
    patched_registry()
    document = tmp_path / "order.png"
    document.write_bytes(b"not decoded by the dummy renderer")
    output = tmp_path / "out" / "order.json"

    code = main.main(["--input", str(document), "--engine", "local-regex", "--output", str(output), "--quiet"])

    assert code == 0
    data = json.loads(output.read_text())
    assert set(data) == set(RESULT_KEYS)
    assert data["mappedData"]["po_number"] == "4500012345"
    assert data["usageMetadata"]["modelName"] == "Tesseract (Local)"


def test_extract_directory_reports_degraded(tmp_path, patched_registry):
    patched_registry(client=DummyClient(["not json", "not json"]))
    inbox = tmp_path / "inbox"
    inbox.mkdir()
    (inbox / "a.pdf").write_bytes(b"%PDF a")
    (inbox / "b.png").write_bytes(b"png b")
    out_dir = tmp_path / "results"

    code = main.main(["--input", str(inbox), "--engine", "cloud", "--output", str(out_dir)])

    assert code == 2
    for name in ("a.json", "b.json"):
        data = json.loads((out_dir / name).read_text())
        assert data["unmappedData"][0]["key"] == "error"


def test_missing_input_fails(tmp_path, patched_registry):
    patched_registry()
    assert main.main(["--input", str(tmp_path / "missing.pdf"), "--engine", "local-regex"]) == 1


def test_feedback_and_promote(tmp_path, patched_registry, rules):
    patched_registry(client=DummyClient([json.dumps({
        "updatedMappedData": {"po_number": "4500099999"},
        "suggestedRule": "Read the PO number from the header box.",
    })]))
    document = tmp_path / "order.pdf"
    document.write_bytes(b"%PDF fake")
    previous = tmp_path / "order.json"
    previous.write_text(ExtractionResult(mapped_data={"po_number": "4500012345"}).to_json())
    rules_path = tmp_path / "rules.yaml"
    rules.save(rules_path)

    code = main.main([
        "--input", str(document),
        "--previous", str(previous),
        "--feedback", "The PO number is 4500099999",
        "--rules", str(rules_path),
        "--promote",
    ])

    assert code == 0
    assert json.loads(previous.read_text())["mappedData"]["po_number"] == "4500099999"
    promoted = TrainingRules.from_file(rules_path)
    assert promoted.natural_language_rules.endswith("Read the PO number from the header box.")
