"""File-based contracts between the coordinator and the external video tool."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

CONTRACT_VERSION = 1


@dataclass(slots=True)
class TaskManifest:
    """Manifest handed to the external tool for one production task."""

    contract_version: int
    task_id: str
    task_type: str
    project_name: str
    version: str
    workdir: str
    artifact_path: str
    output_result_path: str
    output_stdout_path: str
    output_stderr_path: str
    dependencies: list[str] = field(default_factory=list)
    platform: str | None = None
    language: str | None = None
    aspect_ratio: str | None = None
    output_id: str | None = None


@dataclass(slots=True)
class TaskResultContract:
    """Result document written by the external tool."""

    status: str
    artifact_path: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


def write_json(path: Path, payload: dict[str, Any]) -> None:
    """Persist JSON payload using deterministic formatting."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True), "utf-8")


def load_json(path: Path) -> dict[str, Any]:
    """Load JSON document and validate top-level object type."""

    payload = json.loads(path.read_text("utf-8"))
    if not isinstance(payload, dict):
        raise TypeError(f"Expected JSON object in {path}")
    return payload


def write_manifest(path: Path, manifest: TaskManifest) -> None:
    write_json(path, asdict(manifest))


def read_manifest(path: Path) -> TaskManifest:
    """Load and validate task manifest."""

    raw = load_json(path)
    required = {
        "task_id",
        "task_type",
        "project_name",
        "version",
        "workdir",
        "artifact_path",
        "output_result_path",
        "output_stdout_path",
        "output_stderr_path",
    }
    missing = [key for key in sorted(required) if key not in raw]
    if missing:
        raise ValueError(f"Manifest missing required fields: {', '.join(missing)}")

    contract_version = raw.get("contract_version", CONTRACT_VERSION)
    if not isinstance(contract_version, int) or contract_version < 1:
        raise ValueError("task_manifest.contract_version must be an integer >= 1")
    dependencies = raw.get("dependencies", [])
    if not isinstance(dependencies, list):
        raise TypeError("task_manifest.dependencies must be an array")

    optional: dict[str, str | None] = {}
    for field_name in ("platform", "language", "aspect_ratio", "output_id"):
        value = raw.get(field_name)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"task_manifest.{field_name} must be a string when provided")
        optional[field_name] = value

    return TaskManifest(
        contract_version=contract_version,
        task_id=str(raw["task_id"]),
        task_type=str(raw["task_type"]),
        project_name=str(raw["project_name"]),
        version=str(raw["version"]),
        workdir=str(raw["workdir"]),
        artifact_path=str(raw["artifact_path"]),
        output_result_path=str(raw["output_result_path"]),
        output_stdout_path=str(raw["output_stdout_path"]),
        output_stderr_path=str(raw["output_stderr_path"]),
        dependencies=[str(item) for item in dependencies],
        **optional,
    )


def write_task_result(path: Path, payload: TaskResultContract) -> None:
    write_json(path, asdict(payload))


def read_task_result(path: Path) -> TaskResultContract | None:
    """Read the tool's result document; ``None`` when absent or unreadable."""

    if not path.exists():
        return None
    try:
        raw = load_json(path)
    except (json.JSONDecodeError, TypeError):
        return None
    metadata = raw.get("metadata", {})
    return TaskResultContract(
        status=str(raw.get("status", "failed")),
        artifact_path=raw.get("artifact_path"),
        error=raw.get("error"),
        metadata=metadata if isinstance(metadata, dict) else {},
    )
