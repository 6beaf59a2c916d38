"""Workdir materialization helpers for file-based task execution."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from video_explainer.orchestrator.contracts import CONTRACT_VERSION, TaskManifest, write_manifest
from video_explainer.orchestrator.models import AgentTask, TaskType

_ARTIFACT_SUFFIX = {
    TaskType.SCRIPT: ".json",
    TaskType.SCENE: ".json",
    TaskType.VOICEOVER: ".mp3",
    TaskType.RENDER: ".mp4",
    TaskType.VALIDATE: ".json",
}


def artifact_path(output_root: Path, task: AgentTask) -> Path:
    """Expected location of the artifact a task produces."""

    suffix = _ARTIFACT_SUFFIX[task.type]
    if task.type is TaskType.RENDER:
        return output_root / f"{task.output_id}-{task.language}{suffix}"
    if task.type is TaskType.SCENE:
        return output_root / f"scenes-{(task.aspect_ratio or '').replace(':', 'x')}{suffix}"
    return output_root / f"{task.id}{suffix}"


@dataclass(slots=True)
class MaterializedTask:
    """Materialized file-based task contract paths."""

    manifest_path: Path
    manifest: TaskManifest


class TaskWorkdirManager:
    """Creates deterministic per-task directory layout."""

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = root_dir

    def materialize(
        self,
        *,
        task: AgentTask,
        project_name: str,
        version: str,
        artifact: Path,
    ) -> MaterializedTask:
        base_dir = self.root_dir / project_name / version / task.id
        output_dir = base_dir / "output"
        meta_dir = base_dir / "meta"
        output_dir.mkdir(parents=True, exist_ok=True)
        meta_dir.mkdir(parents=True, exist_ok=True)
        artifact.parent.mkdir(parents=True, exist_ok=True)

        manifest = TaskManifest(
            contract_version=CONTRACT_VERSION,
            task_id=task.id,
            task_type=task.type.value,
            project_name=project_name,
            version=version,
            workdir=str(base_dir),
            artifact_path=str(artifact),
            output_result_path=str(output_dir / "task_result.json"),
            output_stdout_path=str(output_dir / "tool_stdout.log"),
            output_stderr_path=str(output_dir / "tool_stderr.log"),
            dependencies=list(task.dependencies),
            platform=task.platform,
            language=task.language,
            aspect_ratio=task.aspect_ratio,
            output_id=task.output_id,
        )
        manifest_path = meta_dir / "task_manifest.json"
        write_manifest(manifest_path, manifest)
        return MaterializedTask(manifest_path=manifest_path, manifest=manifest)
