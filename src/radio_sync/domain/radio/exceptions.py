"""Radio-specific exceptions for error handling."""

from typing import Optional


class RadioError(Exception):
    """Base exception for radio scheduling operations."""

    pass


class MetadataLoadError(RadioError):
    """Raised when station or radio metadata cannot be fetched or parsed."""

    def __init__(self, location: str, message: Optional[str] = None):
        self.location = location
        super().__init__(message or f"Failed to load metadata from {location}")


class InvalidMetadataError(RadioError):
    """Raised when a metadata document does not have the expected shape."""

    pass


class SelectionError(RadioError):
    """Raised when no segment can be selected for a station."""

    pass
