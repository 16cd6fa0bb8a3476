"""Capability lifecycle errors."""


class CapabilityError(Exception):
    """Base exception for directory access problems."""


class CapabilityDeniedError(CapabilityError):
    """Raised when the user declines or revokes access to a folder."""


class CapabilityAbandonedError(CapabilityError):
    """Raised when the user dismisses the access prompt without deciding."""
