"""Ingestion components for reading content from the Payload API"""

from payload_sync.ingestion.payload_client import PayloadClient
from payload_sync.ingestion.url_builder import UrlBuilder, build_url

__all__ = ["PayloadClient", "UrlBuilder", "build_url"]
