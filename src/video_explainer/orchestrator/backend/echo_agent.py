"""Local stand-in for the external video tool, used by tests and demos."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from video_explainer.orchestrator.contracts import (
    TaskResultContract,
    read_manifest,
    write_json,
    write_task_result,
)

_METADATA_BY_TASK_TYPE: dict[str, dict[str, int]] = {
    "script": {"word_count": 500, "estimated_duration": 180},
    "scene": {"scene_count": 10},
}


def main(argv: list[str] | None = None) -> int:
    """Write a deterministic placeholder artifact for one task manifest."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--task-manifest", required=True)
    parser.add_argument(
        "--fail-task",
        action="append",
        default=[],
        help="Task id to report as failed. Can be repeated.",
    )
    args = parser.parse_args(argv)

    manifest = read_manifest(Path(args.task_manifest))
    failing = set(args.fail_task)
    failing.update(
        item.strip()
        for item in os.getenv("VIDEO_EXPLAINER_ECHO_FAIL_TASKS", "").split(",")
        if item.strip()
    )

    if manifest.task_id in failing:
        write_task_result(
            Path(manifest.output_result_path),
            TaskResultContract(status="failed", error=f"echo agent refused {manifest.task_id}"),
        )
        return 0

    artifact = Path(manifest.artifact_path)
    if artifact.suffix == ".json":
        write_json(
            artifact,
            {"project": manifest.project_name, "task_id": manifest.task_id, "backend": "echo"},
        )
    else:
        artifact.parent.mkdir(parents=True, exist_ok=True)
        artifact.write_text(f"echo {manifest.task_id}\n", "utf-8")

    write_task_result(
        Path(manifest.output_result_path),
        TaskResultContract(
            status="succeeded",
            artifact_path=str(artifact),
            metadata=dict(_METADATA_BY_TASK_TYPE.get(manifest.task_type, {})),
        ),
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
