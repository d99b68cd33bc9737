"""Configuration for the finance assistant."""

from .settings import Settings

__all__ = ["Settings"]
