"""Exception types raised by the Payload sync components."""


class PayloadSyncError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(PayloadSyncError):
    """Raised when configuration is invalid or missing."""

    pass


class TransportError(PayloadSyncError):
    """Raised when the Payload API cannot be reached or answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class ResponseParseError(PayloadSyncError):
    """Raised when a response body is not valid JSON."""


class ShapeError(PayloadSyncError):
    """Raised when the response envelope does not carry a ``docs`` list."""


class EntryValidationError(PayloadSyncError):
    """Raised when a single entry has no usable id or fails parsing."""

    def __init__(self, message: str, entry_id: str | None = None) -> None:
        super().__init__(message)
        self.entry_id = entry_id


class DigestError(PayloadSyncError):
    """Raised when a content digest cannot be computed."""

    def __init__(self, message: str, entry_id: str | None = None) -> None:
        super().__init__(message)
        self.entry_id = entry_id
