"""HTTP client for the Payload CMS REST API."""

from typing import Any, Mapping, Optional

import requests
import structlog
from requests.exceptions import RequestException

from payload_sync.errors import ResponseParseError, TransportError
from payload_sync.ingestion.url_builder import UrlBuilder

log = structlog.stdlib.get_logger()


class PayloadClient:
    """Thin wrapper around ``requests`` for reading Payload collections.

    The client makes exactly one attempt per call. Retrying is left to the
    caller (see ``payload_sync.scheduler``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        """
        Initialize Payload client.

        Args:
            base_url: Payload instance URL
            timeout: Request timeout in seconds
            session: Optional pre-configured requests session

        Raises:
            ConfigurationError: If base_url is missing or blank
        """
        self._url_builder = UrlBuilder(base_url)
        self._timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")
        log.info("payload_client_initialized", base_url=self._url_builder.base_url)

    @property
    def base_url(self) -> str:
        return self._url_builder.base_url

    def fetch_entries(
        self, path: str, params: Optional[Mapping[str, Optional[str]]] = None
    ) -> Any:
        """
        Fetch one page of a collection.

        Args:
            path: Path relative to the base URL (e.g. "api/posts")
            params: Optional query parameters; None values are omitted

        Returns:
            Decoded JSON body, expected to look like {"docs": [...]}

        Raises:
            TransportError: If the request fails or the status is not 2xx
            ResponseParseError: If the body is not valid JSON
        """
        url = self._url_builder.build(path, params)
        log.debug("fetching_payload_entries", url=url)

        try:
            response = self.session.get(url, timeout=self._timeout)
        except RequestException as e:
            log.error("payload_fetch_failed", url=url, error=str(e), error_type=type(e).__name__)
            raise TransportError(f"Failed to fetch from Payload: {e}", url=url) from e

        if not 200 <= response.status_code < 300:
            message = f"Failed to fetch from Payload: {response.reason}"
            log.error(
                "payload_fetch_failed",
                url=url,
                status_code=response.status_code,
                error=message,
            )
            raise TransportError(message, status_code=response.status_code, url=url)

        try:
            body = response.json()
        except ValueError as e:
            log.error("payload_response_not_json", url=url, error=str(e))
            raise ResponseParseError(f"Failed to parse Payload response as JSON: {e}") from e

        log.info("payload_entries_fetched", url=url, status_code=response.status_code)
        return body

    def close(self) -> None:
        self.session.close()
