"""Configuration modules for ibuild."""

from .metadata import Metadata, PlatformMetadata
from .project_config import (
    AppConfig,
    AppleConfig,
    Config,
    ConfigOrigin,
    load_or_generate,
)

__all__ = [
    "AppConfig",
    "AppleConfig",
    "Config",
    "ConfigOrigin",
    "Metadata",
    "PlatformMetadata",
    "load_or_generate",
]
