"""
Unit tests for settings loading and logging setup.
"""

import logging

import pytest

from config import ConfigurationManager, get_config
from order_extraction.utils.logger import ROOT_LOGGER_NAME, get_logger, setup_logger


class TestConfigurationManager:
    """Dotted lookups over the bundled and custom settings."""

    def test_bundled_defaults(self):
        assert get_config("ocr.tesseract.psm") == 6
        assert get_config("input.image.whiten_threshold") == 160

    def test_missing_key_returns_default(self):
        assert get_config("cloud.nothing.here", "fallback") == "fallback"
        assert get_config("ocr.tesseract.psm.deeper") is None

    def test_singleton_until_reset(self, tmp_path):
        first = ConfigurationManager()
        assert ConfigurationManager() is first

        custom = tmp_path / "custom.yaml"
        custom.write_text("extraction:\n  engine: local-regex\n", encoding="utf-8")
        ConfigurationManager.reset()

        assert ConfigurationManager(str(custom)).get("extraction.engine") == "local-regex"

    def test_environment_override(self, tmp_path, monkeypatch):
        custom = tmp_path / "env.yaml"
        custom.write_text("paths:\n  outputs: results\n", encoding="utf-8")
        monkeypatch.setenv("ORDER_EXTRACTION_CONFIG", str(custom))

        outputs = get_config("paths.outputs")
        assert outputs.endswith("results")
        assert outputs != "results"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigurationManager(str(tmp_path / "absent.yaml"))


class TestLogger:
    """Namespacing and handler setup."""

    def test_module_loggers_share_namespace(self):
        assert get_logger("main").name == "order_extraction.main"
        assert get_logger("order_extraction.engines.local").name == "order_extraction.engines.local"

    def test_file_handler_written(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        app_logger = setup_logger(level="DEBUG", log_file=str(log_file), colorize=False)
        try:
            get_logger("tests").warning("disk check")
            for handler in app_logger.handlers:
                handler.flush()
            assert "disk check" in log_file.read_text(encoding="utf-8")
            assert app_logger.level == logging.DEBUG
        finally:
            for handler in list(app_logger.handlers):
                handler.close()
            logging.getLogger(ROOT_LOGGER_NAME).handlers.clear()

    def test_setup_replaces_handlers(self):
        setup_logger()
        app_logger = setup_logger(level="WARNING")
        try:
            assert len(app_logger.handlers) == 1
            assert app_logger.level == logging.WARNING
        finally:
            app_logger.handlers.clear()
