"""
Exceptions for transloader operations.
"""

from typing import Iterable, Optional


class TransloaderError(Exception):
    """Base exception for transloader errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class TransloaderConnectionError(TransloaderError):
    """Network failure, timeout, or exhausted redirects."""

    pass


class HTTPStatusError(TransloaderError):
    """Unexpected HTTP status returned by a remote server."""

    def __init__(self, url: str, status_code: int, message: Optional[str] = None):
        super().__init__(message or f"HTTP error {status_code} for {url}")
        self.url = url
        self.status_code = status_code


class DownloadError(TransloaderError):
    """A source data file could not be downloaded."""

    def __init__(
        self, message: str, url: str, status_code: Optional[int] = None
    ):
        detail = f"{message} ({url}"
        if status_code is not None:
            detail += f", HTTP {status_code}"
        super().__init__(detail + ")")
        self.url = url
        self.status_code = status_code


class EntityCreationError(TransloaderError):
    """A SensorThings entity could not be created."""

    def __init__(self, entity_type: str, url: str, status_code: Optional[int] = None):
        message = f"Could not create {entity_type} at {url}"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        super().__init__(message)
        self.entity_type = entity_type
        self.url = url
        self.status_code = status_code


class MissingDatastreamError(TransloaderError):
    """Observations were uploaded for datastreams that were never synchronized."""

    def __init__(self, property_ids: Iterable[str], uploaded: int = 0):
        self.property_ids = sorted(set(property_ids))
        self.uploaded = uploaded
        super().__init__(
            "No remote Datastream for: "
            + ", ".join(self.property_ids)
            + ". Run 'put metadata' for these properties first."
        )


class MetadataError(TransloaderError):
    """Station metadata is missing or incomplete for the requested operation."""

    pass


class ParseError(TransloaderError):
    """A source document could not be parsed."""

    pass


class TimestampError(TransloaderError, ValueError):
    """A timestamp, zone offset, or interval could not be parsed."""

    pass


class InvalidFilterError(TransloaderError, ValueError):
    """Allow and block lists were both supplied."""

    pass


class ConfigurationError(TransloaderError, ValueError):
    """A configuration value could not be parsed."""

    pass
