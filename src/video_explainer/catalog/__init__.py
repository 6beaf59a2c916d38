"""Configuration store for brands, platforms and styles."""

from video_explainer.catalog.loader import ConfigLoader
from video_explainer.catalog.models import (
    DEFAULT_ASPECT_RATIO,
    BrandConfig,
    ChunkingPolicy,
    GlobalConfig,
    PlatformConfig,
    StyleConfig,
)

__all__ = [
    "DEFAULT_ASPECT_RATIO",
    "BrandConfig",
    "ChunkingPolicy",
    "ConfigLoader",
    "GlobalConfig",
    "PlatformConfig",
    "StyleConfig",
]
