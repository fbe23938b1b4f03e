"""
Data Models Layer.

This package contains the records and Pydantic models used throughout the
library, such as the persisted preference, configuration and statistics.
"""

from .config import StoreConfig
from .preference import Preference
from .stats import StoreStats

__all__ = ["Preference", "StoreConfig", "StoreStats"]
