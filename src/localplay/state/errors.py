"""State management errors."""


class StateError(Exception):
    """Base exception for durable store operations."""


class StoreUnavailableError(StateError):
    """Raised when the durable store cannot be opened, read, or written."""


class MissingStateError(StateError):
    """Raised when a requested record is not present in the store."""
