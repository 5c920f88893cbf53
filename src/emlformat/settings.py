"""
Runtime configuration for emlformat.

Every value can be overridden from the environment with the ``EMLFORMAT_``
prefix, e.g. ``EMLFORMAT_MAX_DEPTH=16``.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Parser and composer settings."""

    model_config = SettingsConfigDict(env_prefix="EMLFORMAT_", extra="ignore")

    # Maximum multipart nesting accepted before a StructuralError is raised
    MAX_DEPTH: int = 64
    DEFAULT_CHARSET: str = "utf-8"
    BASE64_LINE_LENGTH: int = 72
    BOUNDARY_PREFIX: str = "----="


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, read once from the environment."""
    return Settings()
