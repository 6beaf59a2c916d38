"""Backend interface for production task execution."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from video_explainer.orchestrator.models import AgentTask, TaskOutcome


@dataclass(slots=True)
class BackendRunRequest:
    """Inputs required to run the external tool once."""

    manifest_path: Path
    timeout_seconds: int
    command_template: str
    task_type: str
    project_name: str
    tool_path: str | None = None


@dataclass(slots=True)
class BackendRunResult:
    """Process-level outcome of one tool run."""

    exit_code: int
    timed_out: bool
    stdout_path: Path
    stderr_path: Path


class TaskExecutor(Protocol):
    """Opaque per-task executor consumed by the coordinator."""

    def execute(self, task: AgentTask) -> TaskOutcome:
        """Run one production task and report its outcome."""
