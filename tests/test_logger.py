"""Tests for the storefront logging helpers."""

import logging

from storefront.utils.logger import (
    ROOT_LOGGER_NAME,
    configure_logging,
    get_logger,
    get_session_logger,
)


def test_module_loggers_nest_under_storefront():
    assert get_logger("cart.ledger").name == "storefront.cart.ledger"
    assert get_logger().name == ROOT_LOGGER_NAME


def test_configure_logging_sets_level_once():
    root = configure_logging("debug")
    try:
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert all(h.level == logging.DEBUG for h in root.handlers)
        assert not root.propagate

        configure_logging("warning")
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
    finally:
        configure_logging("info")


def test_session_logger_prefixes_session_id():
    adapter = get_session_logger("core.controller", "abc123")
    message, kwargs = adapter.process("catalog loaded", {})

    assert message == "[session abc123] catalog loaded"
    assert adapter.logger.name == "storefront.core.controller"
