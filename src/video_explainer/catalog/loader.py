"""Layered configuration store.

System defaults are overridden by user YAML files found under the config
directory::

    config.yaml
    brands/*.yaml
    platforms/*.yaml
    styles/*.yaml

Each definition file maps a name to its attributes. Files that cannot be
read or parsed are skipped with a warning so that one broken definition
never blocks planning.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import yaml

from video_explainer.catalog.models import (
    BrandConfig,
    GlobalConfig,
    PlatformConfig,
    StyleConfig,
    parse_brand,
    parse_global,
    parse_platform,
    parse_style,
)

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

SYSTEM_PLATFORMS: dict[str, dict[str, Any]] = {
    "youtube": {
        "display_name": "YouTube",
        "aspect_ratio": "16:9",
        "resolution": {"width": 1920, "height": 1080},
        "fps": 30,
        "pacing": "moderate",
        "chunking": {"enabled": False},
    },
    "youtube_shorts": {
        "display_name": "YouTube Shorts",
        "aspect_ratio": "9:16",
        "resolution": {"width": 1080, "height": 1920},
        "duration": {"max_seconds": 60},
        "fps": 30,
        "pacing": "fast",
        "chunking": {"enabled": True, "overlap_seconds": 2},
    },
    "tiktok": {
        "display_name": "TikTok",
        "aspect_ratio": "9:16",
        "resolution": {"width": 1080, "height": 1920},
        "duration": {"max_seconds": 180, "recommended_seconds": "30-60"},
        "fps": 30,
        "pacing": "fast",
        "safe_zones": {"top": 150, "bottom": 270},
        "chunking": {"enabled": True, "overlap_seconds": 2},
    },
    "instagram_reels": {
        "display_name": "Instagram Reels",
        "aspect_ratio": "9:16",
        "resolution": {"width": 1080, "height": 1920},
        "duration": {"max_seconds": 90},
        "fps": 30,
        "pacing": "fast",
        "chunking": {"enabled": True, "overlap_seconds": 2},
    },
    "linkedin": {
        "display_name": "LinkedIn",
        "aspect_ratio": "1:1",
        "resolution": {"width": 1080, "height": 1080},
        "duration": {"max_seconds": 600},
        "fps": 30,
        "pacing": "moderate",
        "chunking": {"enabled": False},
    },
}


class ConfigLoader:
    """Resolves named brand/platform/style definitions and global defaults."""

    def __init__(self, config_dir: Path) -> None:
        self.config_dir = config_dir
        self._global = GlobalConfig()
        self._brands: dict[str, BrandConfig] = {}
        self._platforms: dict[str, PlatformConfig] = {
            name: parse_platform(name, raw) for name, raw in SYSTEM_PLATFORMS.items()
        }
        self._styles: dict[str, StyleConfig] = {}

    def load(self) -> ConfigLoader:
        """Read all user configuration on top of system defaults."""

        document = _read_yaml_mapping(self.config_dir / "config.yaml")
        if document is not None:
            self._global = parse_global(document)
        self._brands.update(self._load_definitions("brands", parse_brand))
        self._platforms.update(self._load_definitions("platforms", parse_platform))
        self._styles.update(self._load_definitions("styles", parse_style))
        logger.info(
            "Configuration loaded from %s: brands=%d platforms=%d styles=%d",
            self.config_dir,
            len(self._brands),
            len(self._platforms),
            len(self._styles),
        )
        return self

    def resolve_platform(self, name: str) -> PlatformConfig | None:
        """Return the platform definition, or ``None`` when it is unknown."""

        return self._platforms.get(name)

    def get_brand(self, name: str) -> BrandConfig | None:
        return self._brands.get(name)

    def get_style(self, name: str) -> StyleConfig | None:
        return self._styles.get(name)

    def all_platforms(self) -> list[PlatformConfig]:
        return list(self._platforms.values())

    def all_brands(self) -> list[BrandConfig]:
        return list(self._brands.values())

    def all_styles(self) -> list[StyleConfig]:
        return list(self._styles.values())

    def defaults(self) -> GlobalConfig:
        return self._global

    def video_explainer_path(self) -> str | None:
        return self._global.video_explainer_path

    def set_video_explainer_path(self, path: str) -> None:
        """Persist the external video tool location in ``config.yaml``.

        Every other key in the file is kept. An existing file that cannot
        be parsed is left untouched and ``ValueError`` is raised.
        """

        target = self.config_dir / "config.yaml"
        document = _read_yaml_mapping(target)
        if document is None:
            if target.exists():
                raise ValueError(f"Refusing to overwrite unreadable config file {target}")
            document = {}

        self._global.video_explainer_path = path
        document["video_explainer_path"] = path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            yaml.safe_dump(document, sort_keys=True, allow_unicode=True),
            "utf-8",
        )

    def _load_definitions(
        self,
        subdir: str,
        parse: Callable[[str, dict[str, Any]], _T],
    ) -> dict[str, _T]:
        directory = self.config_dir / subdir
        if not directory.is_dir():
            return {}

        loaded: dict[str, _T] = {}
        for path in sorted(directory.glob("*.yaml")):
            document = _read_yaml_mapping(path)
            if document is None:
                continue
            for name, raw in document.items():
                if name == "_template" or not isinstance(raw, dict):
                    continue
                try:
                    loaded[str(name)] = parse(str(name), raw)
                except (KeyError, TypeError, ValueError) as error:
                    logger.warning("Skipping %s definition %r in %s: %s", subdir, name, path, error)
        return loaded


def _read_yaml_mapping(path: Path) -> dict[str, Any] | None:
    if not path.is_file():
        return None
    try:
        document = yaml.safe_load(path.read_text("utf-8"))
    except (OSError, yaml.YAMLError) as error:
        logger.warning("Skipping unreadable config file %s: %s", path, error)
        return None
    if document is None:
        return {}
    if not isinstance(document, dict):
        logger.warning("Skipping config file %s: top level must be a mapping", path)
        return None
    return document
