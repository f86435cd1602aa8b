"""Incremental synchronization of Payload CMS collections into a local store."""

__version__ = "0.1.0"
