"""
Pydantic model for preference store configuration.
Provides robust validation for all settings.
"""

from typing import Literal

from pydantic import BaseModel, field_validator, model_validator


class StoreConfig(BaseModel):
    """A validated configuration model for the preference store."""

    # Layer toggles
    persistence_enabled: bool = True
    caching_enabled: bool = True

    # Cache Settings
    cache_backend: Literal["memory", "file"] = "memory"
    cache_dir: str | None = None
    cache_max_age_days: int = 1
    cache_max_entries: int | None = None

    # Persistence Settings
    database_path: str | None = None
    auto_provision: bool = True

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("cache_max_age_days")
    @classmethod
    def validate_max_age(cls, v: int) -> int:
        """Ensures a reasonable cache entry lifetime."""
        if v < 1 or v > 365:
            raise ValueError("Cache max age must be between 1 and 365 days.")
        return v

    @field_validator("cache_max_entries")
    @classmethod
    def validate_max_entries(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("Cache max entries must be a positive number.")
        return v

    @field_validator("cache_dir", "database_path")
    @classmethod
    def validate_path(cls, v: str | None) -> str | None:
        """Rejects paths that try to escape upwards; empty strings mean unset."""
        if v is None or not v:
            return None
        if ".." in v.replace("\\", "/").split("/"):
            raise ValueError("Paths cannot contain relative '..' segments.")
        return v

    @model_validator(mode="after")
    def validate_cache_backend(self) -> "StoreConfig":
        """Checks that the chosen cache backend has what it needs."""
        if self.cache_backend == "file" and not self.cache_dir:
            raise ValueError("The 'file' cache backend requires 'cache_dir'.")
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return set(cls.model_fields)
