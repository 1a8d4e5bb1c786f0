"""Blob URL resolution for product images and assets."""

from urllib.parse import urlparse

from catalog_items.infrastructure.config import settings


class BlobUrlResolver:
    """Turns stored (relative) blob paths into public URLs."""

    def __init__(self, base_url: str | None = None) -> None:
        """Initialize resolver.

        Args:
            base_url: Public URL of the blob storage root.
        """
        self.base_url = (base_url if base_url is not None else settings.blob_base_url).rstrip("/")

    def get_absolute_url(self, url: str | None) -> str | None:
        """Resolve a stored URL.

        Args:
            url: Relative blob path or an absolute URL.

        Returns:
            Absolute URL; absolute input and empty values are returned unchanged.
        """
        if not url or urlparse(url).scheme:
            return url
        return f"{self.base_url}/{url.lstrip('/')}"
