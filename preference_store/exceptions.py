"""
Defines custom exceptions for the library to allow for more specific error handling.
"""


class PreferenceStoreError(Exception):
    """Base exception for all library-specific errors."""


class ConfigurationError(PreferenceStoreError):
    """Raised for issues related to configuration loading or validation."""


class PersistenceError(PreferenceStoreError):
    """
    Raised when the persistent store fails to read or write a preference.

    An unprovisioned store is not an error; this covers failures of a store
    that is available, such as locked databases or constraint violations.
    """


class CacheError(PreferenceStoreError):
    """Raised when a cache backend cannot store or remove an entry."""
