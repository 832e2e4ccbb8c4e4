"""Tests for configuration access and logging setup."""

import logging

import pytest

from config import ConfigurationManager, get_config
from pattern_extraction.utils.logger import LOGGER_NAMESPACE, get_logger, setup_logger


@pytest.fixture
def restore_logging():
    yield
    logger = logging.getLogger(LOGGER_NAMESPACE)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


class TestConfiguration:
    """Dot-notation access to settings.yaml."""

    def test_known_keys(self):
        assert get_config("extraction.required_categories") == ['INVOICE_NUMBER', 'AMOUNT', 'VENDOR']
        assert get_config("confidence.no_validation_factor") == 0.7
        assert get_config("extraction.exclude_consumed_spans") is False

    def test_default_for_missing_key(self):
        assert get_config("nonexistent.key", "fallback") == "fallback"
        assert get_config("confidence.validated_factor.deeper") is None

    def test_library_path_resolved(self):
        assert get_config("patterns.library_path").endswith("patterns.yaml")
        assert ConfigurationManager().config_path.name == "settings.yaml"

    def test_singleton(self):
        assert ConfigurationManager() is ConfigurationManager()


class TestLogger:
    """Namespace and handlers."""

    def test_get_logger_namespace(self):
        assert get_logger("resolver").name == "pattern_extraction.resolver"
        assert get_logger("pattern_extraction.matching").name == "pattern_extraction.matching"

    def test_setup_with_file(self, tmp_path, restore_logging):
        log_file = tmp_path / "logs" / "extraction.log"
        logger = setup_logger(level="DEBUG", log_file=str(log_file), colorize=False)

        get_logger("tests").debug("resolving AMOUNT")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert "resolving AMOUNT" in log_file.read_text(encoding='utf-8')

    def test_setup_replaces_handlers(self, restore_logging):
        setup_logger()
        logger = setup_logger(level="warning")
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
