"""Typed brand, platform and style definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_ASPECT_RATIO = "16:9"


@dataclass(slots=True, frozen=True)
class Resolution:
    width: int
    height: int


@dataclass(slots=True, frozen=True)
class ChunkingPolicy:
    """Whether long videos are split into parts for the platform."""

    enabled: bool = False
    overlap_seconds: float = 0.0


@dataclass(slots=True, frozen=True)
class PlatformConfig:
    """Publishing target definition: frame shape, pacing and limits."""

    name: str
    display_name: str
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    resolution: Resolution | None = None
    max_duration_seconds: int | None = None
    recommended_duration: str | None = None
    fps: int | None = None
    pacing: str | None = None
    safe_zone_top: int | None = None
    safe_zone_bottom: int | None = None
    chunking: ChunkingPolicy = field(default_factory=ChunkingPolicy)


@dataclass(slots=True, frozen=True)
class BrandConfig:
    """Brand voice and visual identity."""

    name: str
    display_name: str
    version: str | None = None
    tone: str | None = None
    personality: tuple[str, ...] = ()
    forbidden_words: tuple[str, ...] = ()
    preferred_phrases: tuple[str, ...] = ()
    colors: dict[str, str] = field(default_factory=dict)
    heading_font: str | None = None
    body_font: str | None = None
    logo_path: str | None = None
    logo_position: str | None = None


@dataclass(slots=True, frozen=True)
class StyleConfig:
    """Animation and narration style."""

    name: str
    display_name: str
    description: str | None = None
    speed_multiplier: float = 1.0
    easing_override: str | None = None
    particles: bool = False
    wpm_adjustment: int = 0
    transition_speed: str | None = None


@dataclass(slots=True)
class GlobalConfig:
    """User-level defaults stored in ``config.yaml``."""

    video_explainer_path: str | None = None
    default_brand: str | None = None
    default_style: str | None = None
    voice_provider: str | None = None
    learning_enabled: bool = True
    learning_auto_capture: bool = True

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "defaults": {
                key: value
                for key, value in (
                    ("brand", self.default_brand),
                    ("style", self.default_style),
                    ("voice_provider", self.voice_provider),
                )
                if value is not None
            },
            "learning": {
                "enabled": self.learning_enabled,
                "auto_capture": self.learning_auto_capture,
            },
        }
        if self.video_explainer_path is not None:
            document["video_explainer_path"] = self.video_explainer_path
        return document


def parse_platform(name: str, raw: dict[str, Any]) -> PlatformConfig:
    """Build a platform record from a YAML mapping."""

    resolution_raw = raw.get("resolution")
    resolution = None
    if isinstance(resolution_raw, dict):
        resolution = Resolution(
            width=int(resolution_raw["width"]),
            height=int(resolution_raw["height"]),
        )
    duration = _mapping(raw.get("duration"))
    safe_zones = _mapping(raw.get("safe_zones"))
    chunking = _mapping(raw.get("chunking"))
    aspect_ratio = raw.get("aspect_ratio", DEFAULT_ASPECT_RATIO)
    if not isinstance(aspect_ratio, str) or ":" not in aspect_ratio:
        raise ValueError(f"platform {name!r}: aspect_ratio must look like 'W:H'")
    return PlatformConfig(
        name=name,
        display_name=str(raw.get("display_name", name)),
        aspect_ratio=aspect_ratio,
        resolution=resolution,
        max_duration_seconds=_optional_int(duration.get("max_seconds")),
        recommended_duration=_optional_str(duration.get("recommended_seconds")),
        fps=_optional_int(raw.get("fps")),
        pacing=_optional_str(raw.get("pacing")),
        safe_zone_top=_optional_int(safe_zones.get("top")),
        safe_zone_bottom=_optional_int(safe_zones.get("bottom")),
        chunking=ChunkingPolicy(
            enabled=bool(chunking.get("enabled", False)),
            overlap_seconds=float(chunking.get("overlap_seconds", 0.0)),
        ),
    )


def parse_brand(name: str, raw: dict[str, Any]) -> BrandConfig:
    """Build a brand record from a YAML mapping."""

    voice = _mapping(raw.get("voice"))
    typography = _mapping(_mapping(raw.get("typography")).get("fonts"))
    logo = _mapping(_mapping(raw.get("assets")).get("logo"))
    colors = {
        key: str(value)
        for key, value in _mapping(raw.get("colors")).items()
        if not isinstance(value, dict)
    }
    return BrandConfig(
        name=name,
        display_name=str(raw.get("display_name", name)),
        version=_optional_str(raw.get("version")),
        tone=_optional_str(voice.get("tone")),
        personality=_str_tuple(voice.get("personality")),
        forbidden_words=_str_tuple(voice.get("forbidden_words")),
        preferred_phrases=_str_tuple(voice.get("preferred_phrases")),
        colors=colors,
        heading_font=_optional_str(typography.get("heading")),
        body_font=_optional_str(typography.get("body")),
        logo_path=_optional_str(logo.get("primary")),
        logo_position=_optional_str(logo.get("position")),
    )


def parse_style(name: str, raw: dict[str, Any]) -> StyleConfig:
    """Build a style record from a YAML mapping."""

    animation = _mapping(raw.get("animation"))
    pacing = _mapping(raw.get("pacing"))
    return StyleConfig(
        name=name,
        display_name=str(raw.get("display_name", name)),
        description=_optional_str(raw.get("description")),
        speed_multiplier=float(animation.get("speed_multiplier", 1.0)),
        easing_override=_optional_str(animation.get("easing_override")),
        particles=bool(animation.get("particles", False)),
        wpm_adjustment=int(pacing.get("wpm_adjustment", 0)),
        transition_speed=_optional_str(pacing.get("transition_speed")),
    )


def parse_global(raw: dict[str, Any]) -> GlobalConfig:
    defaults = _mapping(raw.get("defaults"))
    learning = _mapping(raw.get("learning"))
    return GlobalConfig(
        video_explainer_path=_optional_str(raw.get("video_explainer_path")),
        default_brand=_optional_str(defaults.get("brand")),
        default_style=_optional_str(defaults.get("style")),
        voice_provider=_optional_str(defaults.get("voice_provider")),
        learning_enabled=bool(learning.get("enabled", True)),
        learning_auto_capture=bool(learning.get("auto_capture", True)),
    )


def _mapping(value: object) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _optional_int(value: object) -> int | None:
    return None if value is None else int(value)  # type: ignore[call-overload]


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)


def _str_tuple(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value)
