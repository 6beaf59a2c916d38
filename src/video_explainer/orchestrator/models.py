"""Domain models for production planning and execution."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_LANGUAGE = "en"
DEFAULT_TASK_DURATION = 60


class TaskType(str, Enum):
    """Closed set of production stages."""

    SCRIPT = "script"
    SCENE = "scene"
    VOICEOVER = "voiceover"
    RENDER = "render"
    VALIDATE = "validate"


class PlanPhase(str, Enum):
    """Execution lifecycle of one plan."""

    NOT_STARTED = "not_started"
    RUNNING_FOREGROUND = "running_foreground"
    RUNNING_BACKGROUND = "running_background"
    COMPLETED = "completed"
    FAILED = "failed"


class PlanValidationError(ValueError):
    """Plan violates task graph invariants."""


@dataclass(slots=True, frozen=True)
class AgentTask:
    """One unit of production work."""

    id: str
    name: str
    type: TaskType
    dependencies: tuple[str, ...] = ()
    platform: str | None = None
    language: str | None = None
    aspect_ratio: str | None = None
    output_id: str | None = None
    estimated_duration: int | None = None

    @property
    def duration(self) -> int:
        if self.estimated_duration is None:
            return DEFAULT_TASK_DURATION
        return self.estimated_duration


@dataclass(slots=True, frozen=True)
class TaskGroup:
    """Mutually independent tasks launched together once ``run_after`` ids finish."""

    id: str
    tasks: tuple[AgentTask, ...] = ()
    run_after: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class ExecutionPlan:
    """Transient task graph built for one render request."""

    project_name: str
    total_outputs: int
    foreground_tasks: tuple[AgentTask, ...]
    background_groups: tuple[TaskGroup, ...]
    estimated_total_duration: int

    def iter_tasks(self) -> Iterator[AgentTask]:
        yield from self.foreground_tasks
        for group in self.background_groups:
            yield from group.tasks

    def group(self, group_id: str) -> TaskGroup | None:
        for group in self.background_groups:
            if group.id == group_id:
                return group
        return None

    def render_tasks(self) -> list[AgentTask]:
        return [task for task in self.iter_tasks() if task.type is TaskType.RENDER]


@dataclass(slots=True, frozen=True)
class OutputRequest:
    """One requested (output, platform, language) combination."""

    output_id: str
    platform: str
    language: str = DEFAULT_LANGUAGE


@dataclass(slots=True, frozen=True)
class RenderOptions:
    """Render filters and version pinning."""

    only: tuple[str, ...] | None = None
    lang: str | None = None
    version: str | None = None


@dataclass(slots=True)
class TaskOutcome:
    """Result reported by the external executor for one task."""

    success: bool
    output_path: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class OutputResult:
    """Per-output rendering status."""

    id: str
    platform: str
    language: str
    path: str
    success: bool
    error: str | None = None


@dataclass(slots=True)
class RenderResult:
    """Aggregate outcome of one plan execution."""

    success: bool
    outputs: list[OutputResult]
    version: str
    failed_task: str | None = None
    error: str | None = None

    @property
    def failed_outputs(self) -> list[OutputResult]:
        return [output for output in self.outputs if not output.success]


@dataclass(slots=True)
class ScriptResult:
    success: bool
    script_path: str
    word_count: int = 0
    estimated_duration: int = 0
    error: str | None = None


@dataclass(slots=True)
class ScenesResult:
    success: bool
    scene_paths: dict[str, str] = field(default_factory=dict)
    scene_count: int = 0
    error: str | None = None


def validate_plan(plan: ExecutionPlan) -> None:
    """Check that the plan is a DAG whose references only point backwards."""

    defined: set[str] = set()

    def _define(item_id: str) -> None:
        if item_id in defined:
            raise PlanValidationError(f"Duplicate id in plan: {item_id!r}")
        defined.add(item_id)

    for task in plan.foreground_tasks:
        _check_dependencies(task, defined)
        _define(task.id)

    for group in plan.background_groups:
        unknown = [item for item in group.run_after if item not in defined]
        if unknown:
            raise PlanValidationError(
                f"Group {group.id!r} runs after unknown ids: {', '.join(unknown)}",
            )
        sibling_ids = {task.id for task in group.tasks}
        for task in group.tasks:
            intra = (sibling_ids - {task.id}).intersection(task.dependencies)
            if intra:
                raise PlanValidationError(
                    f"Task {task.id!r} depends on sibling(s) in group {group.id!r}: "
                    f"{', '.join(sorted(intra))}",
                )
            _check_dependencies(task, defined)
        for task in group.tasks:
            _define(task.id)
        _define(group.id)


def _check_dependencies(task: AgentTask, defined: set[str]) -> None:
    if task.id in task.dependencies:
        raise PlanValidationError(f"Task {task.id!r} depends on itself")
    missing = [dependency for dependency in task.dependencies if dependency not in defined]
    if missing:
        raise PlanValidationError(
            f"Task {task.id!r} depends on ids not defined earlier: {', '.join(missing)}",
        )
