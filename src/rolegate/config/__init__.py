"""Configuration loading for rolegate."""
from __future__ import annotations

from rolegate.config.loader import ConfigLoader, RolegateConfig

__all__ = ["ConfigLoader", "RolegateConfig"]
