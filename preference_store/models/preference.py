"""
The persisted preference record.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Preference:
    """A single preference row, unique by key."""

    key: str
    value: Any
    value_type: str | None = None
    created_at: datetime | None = field(default=None, repr=False)
    updated_at: datetime | None = field(default=None, repr=False)
