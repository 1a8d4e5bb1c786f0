"""Tests for the service entry point."""

from unittest.mock import patch

from catalog_items import main
from catalog_items.infrastructure.config import settings


def test_run_serves_app_with_uvicorn() -> None:
    """run hands the app and the configured address to uvicorn."""
    with patch.object(main.uvicorn, "run") as uvicorn_run:
        main.run()

    uvicorn_run.assert_called_once_with(
        main.app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
