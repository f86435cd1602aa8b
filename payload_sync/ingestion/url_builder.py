"""Request URL construction for the Payload REST API."""

from typing import Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from payload_sync.errors import ConfigurationError


def build_url(base: str, path: str, params: Optional[Mapping[str, Optional[str]]] = None) -> str:
    """Combine a base address, a relative path and query parameters.

    ``base`` is treated as a directory, so ``https://cms.example.com`` and
    ``https://cms.example.com/`` resolve ``api/posts`` to the same URL.
    Parameters whose value is None are left out. Keys already present in
    ``path`` are replaced (last write wins).

    Args:
        base: Absolute base address
        path: Path relative to ``base``
        params: Optional query parameters

    Returns:
        The resolved URL as a string
    """
    root = base if base.endswith("/") else f"{base}/"
    url = urljoin(root, path)

    if not params:
        return url

    scheme, netloc, url_path, query, fragment = urlsplit(url)
    merged: dict[str, str] = dict(parse_qsl(query, keep_blank_values=True))
    for key, value in params.items():
        if value is not None:
            merged[key] = value

    return urlunsplit((scheme, netloc, url_path, urlencode(merged), fragment))


class UrlBuilder:
    """Builds request URLs against a fixed Payload base address."""

    def __init__(self, base_url: str):
        """
        Initialize the builder.

        Args:
            base_url: Absolute Payload address (e.g. https://cms.example.com)

        Raises:
            ConfigurationError: If base_url is missing or blank
        """
        if not base_url or not str(base_url).strip():
            raise ConfigurationError("Payload base URL is not set")
        self._base_url = str(base_url).strip()

    @property
    def base_url(self) -> str:
        return self._base_url

    def build(self, path: str, params: Optional[Mapping[str, Optional[str]]] = None) -> str:
        return build_url(self._base_url, path, params)
