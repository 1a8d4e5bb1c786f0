"""Tests for logging setup."""

import structlog

from catalog_items.infrastructure.logging_config import configure_logging


def test_configure_logging_json() -> None:
    """Logging can be configured and used."""
    try:
        configure_logging("DEBUG")
        assert structlog.is_configured()
        structlog.get_logger().info("Configured", component="test")
    finally:
        structlog.reset_defaults()


def test_unknown_level_falls_back_to_info() -> None:
    """An unknown level name does not break configuration."""
    try:
        configure_logging("VERBOSE", debug=True)
        assert structlog.is_configured()
    finally:
        structlog.reset_defaults()
