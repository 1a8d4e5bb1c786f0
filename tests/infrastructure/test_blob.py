"""Tests for blob URL resolution."""

import pytest

from catalog_items.infrastructure.blob import BlobUrlResolver


class TestBlobUrlResolver:
    """Tests for BlobUrlResolver."""

    @pytest.fixture
    def resolver(self) -> BlobUrlResolver:
        """Create resolver with a trailing slash in the base URL."""
        return BlobUrlResolver("https://cdn.example.com/assets/")

    def test_relative_path(self, resolver: BlobUrlResolver) -> None:
        """Relative paths are joined to the base URL."""
        assert resolver.get_absolute_url("images/p1.png") == "https://cdn.example.com/assets/images/p1.png"

    def test_leading_slash(self, resolver: BlobUrlResolver) -> None:
        """A leading slash does not double up."""
        assert resolver.get_absolute_url("/images/p1.png") == "https://cdn.example.com/assets/images/p1.png"

    def test_absolute_url_unchanged(self, resolver: BlobUrlResolver) -> None:
        """Absolute URLs are returned as is."""
        url = "http://other.example.com/p1.png"
        assert resolver.get_absolute_url(url) == url

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_values_unchanged(self, resolver: BlobUrlResolver, value: str | None) -> None:
        """Empty values pass through."""
        assert resolver.get_absolute_url(value) == value
