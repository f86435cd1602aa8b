"""Entry parsing and digest generation"""

from payload_sync.processing.digest import generate_digest
from payload_sync.processing.parser import EntryParser

__all__ = ["EntryParser", "generate_digest"]
