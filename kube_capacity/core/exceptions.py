class CapacityError(Exception):
    """Base exception for capacity reporting errors."""


class SnapshotError(CapacityError):
    """Raised when a snapshot document cannot be read or parsed."""


class FetchError(CapacityError):
    """Raised when cluster inventory cannot be retrieved."""
