"""Project files: requested outputs, languages and per-project defaults."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from video_explainer.catalog.loader import ConfigLoader
from video_explainer.orchestrator.models import DEFAULT_LANGUAGE, OutputRequest

PROJECT_FILE_NAME = "project.yaml"
FALLBACK_BRAND = "minimal"
FALLBACK_STYLE = "minimal"


class ProjectNotFoundError(LookupError):
    """No project file exists under the projects root."""


@dataclass(slots=True)
class OutputConfig:
    """One publishing target of a project."""

    id: str
    platform: str
    brand: str | None = None
    style: str | None = None
    chunking: str = "none"
    max_parts: int | None = None


@dataclass(slots=True)
class ProjectConfig:
    id: str
    title: str
    source: str
    brand: str
    style: str
    languages: list[str] = field(default_factory=lambda: [DEFAULT_LANGUAGE])
    outputs: list[OutputConfig] = field(default_factory=list)

    def output_requests(self) -> list[OutputRequest]:
        """Expand outputs x languages into concrete render requests, once per pair."""

        languages = dict.fromkeys(self.languages or [DEFAULT_LANGUAGE])
        requests: dict[tuple[str, str], OutputRequest] = {}
        for output in self.outputs:
            for language in languages:
                requests.setdefault(
                    (output.id, language),
                    OutputRequest(output_id=output.id, platform=output.platform, language=language),
                )
        return list(requests.values())


@dataclass(slots=True)
class NewProjectOptions:
    brand: str | None = None
    style: str | None = None
    platforms: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()


def output_id_for_platform(platform: str) -> str:
    return "main" if platform == "youtube" else platform


def create_project(
    name: str,
    catalog: ConfigLoader,
    options: NewProjectOptions | None = None,
) -> ProjectConfig:
    """Build a project with one output per selected platform."""

    options = options or NewProjectOptions()
    defaults = catalog.defaults()
    project = ProjectConfig(
        id=name,
        title=name,
        source="input/source.pdf",
        brand=options.brand or defaults.default_brand or FALLBACK_BRAND,
        style=options.style or defaults.default_style or FALLBACK_STYLE,
        languages=list(dict.fromkeys(options.languages)) or [DEFAULT_LANGUAGE],
    )
    for platform_name in dict.fromkeys(options.platforms or ("youtube",)):
        platform = catalog.resolve_platform(platform_name)
        project.outputs.append(
            OutputConfig(
                id=output_id_for_platform(platform_name),
                platform=platform_name,
                chunking="auto" if platform is not None and platform.chunking.enabled else "none",
            ),
        )
    return project


class ProjectStore:
    """Reads and writes ``<projects_root>/<name>/project.yaml``."""

    def __init__(self, projects_root: Path) -> None:
        self.projects_root = projects_root

    def project_dir(self, name: str) -> Path:
        return self.projects_root / name

    def output_root(self, name: str, version: str) -> Path:
        return self.project_dir(name) / "output" / version

    def exists(self, name: str) -> bool:
        return (self.project_dir(name) / PROJECT_FILE_NAME).is_file()

    def save(self, project: ProjectConfig) -> Path:
        path = self.project_dir(project.id) / PROJECT_FILE_NAME
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            yaml.safe_dump(_to_document(project), sort_keys=False, allow_unicode=True),
            "utf-8",
        )
        return path

    def load(self, name: str) -> ProjectConfig:
        path = self.project_dir(name) / PROJECT_FILE_NAME
        if not path.is_file():
            raise ProjectNotFoundError(f"Project {name!r} not found at {path}")
        try:
            raw = yaml.safe_load(path.read_text("utf-8"))
        except yaml.YAMLError as error:
            raise ValueError(f"Project file {path} is not valid YAML: {error}") from error
        if not isinstance(raw, dict):
            raise ValueError(f"Project file {path} must contain a mapping")
        return _from_document(name, raw)


def _to_document(project: ProjectConfig) -> dict[str, Any]:
    document = asdict(project)
    document["defaults"] = {"brand": document.pop("brand"), "style": document.pop("style")}
    document["outputs"] = [
        {key: value for key, value in output.items() if value is not None}
        for output in document["outputs"]
    ]
    return document


def _from_document(name: str, raw: dict[str, Any]) -> ProjectConfig:
    defaults = raw.get("defaults") or {}
    outputs_raw = raw.get("outputs") or []
    if not isinstance(outputs_raw, list):
        raise ValueError(f"Project {name!r}: outputs must be a list")

    outputs: list[OutputConfig] = []
    for item in outputs_raw:
        if not isinstance(item, dict) or "id" not in item or "platform" not in item:
            raise ValueError(f"Project {name!r}: every output needs an id and a platform")
        outputs.append(
            OutputConfig(
                id=str(item["id"]),
                platform=str(item["platform"]),
                brand=item.get("brand"),
                style=item.get("style"),
                chunking=str(item.get("chunking", "none")),
                max_parts=item.get("max_parts"),
            ),
        )
    languages = raw.get("languages") or [DEFAULT_LANGUAGE]
    return ProjectConfig(
        id=str(raw.get("id", name)),
        title=str(raw.get("title", name)),
        source=str(raw.get("source", "")),
        brand=str(defaults.get("brand", FALLBACK_BRAND)),
        style=str(defaults.get("style", FALLBACK_STYLE)),
        languages=[str(language) for language in languages],
        outputs=outputs,
    )
