"""Prefect flows for render, script-only and scenes-only operations.

Each external tool invocation runs as a Prefect task with configurable
retries; the coordinator still owns ordering, fan-out and failure policy.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from prefect import flow, task
from prefect.cache_policies import NO_CACHE

from video_explainer.catalog.loader import ConfigLoader
from video_explainer.config import Settings
from video_explainer.orchestrator.backend.cli_backend import CliTaskExecutor
from video_explainer.orchestrator.coordinator import (
    ExecutionCoordinator,
    ProductionHistory,
    default_version,
)
from video_explainer.orchestrator.models import (
    AgentTask,
    RenderOptions,
    RenderResult,
    ScenesResult,
    ScriptResult,
    TaskOutcome,
)
from video_explainer.orchestrator.planner import TaskPlanner
from video_explainer.orchestrator.projects import ProjectConfig, ProjectStore
from video_explainer.orchestrator.workdir import TaskWorkdirManager, artifact_path

logger = logging.getLogger(__name__)


class StageExecutionError(RuntimeError):
    """A production task reported failure; raised so Prefect can retry it."""

    def __init__(self, task_id: str, message: str) -> None:
        super().__init__(f"{task_id}: {message}")
        self.task_id = task_id


@task(name="run_production_task", cache_policy=NO_CACHE)
def run_production_task(*, agent_task: AgentTask, executor: CliTaskExecutor) -> TaskOutcome:
    """Run one task through the external tool, raising on failure."""

    outcome = executor.execute(agent_task)
    if not outcome.success:
        raise StageExecutionError(agent_task.id, outcome.error or "task failed")
    return outcome


class PrefectTaskExecutor:
    """Routes each production task through the retrying Prefect task."""

    def __init__(self, executor: CliTaskExecutor, *, retries: int, retry_delay_seconds: int) -> None:
        self._executor = executor
        self._run = run_production_task.with_options(
            retries=retries,
            retry_delay_seconds=retry_delay_seconds,
        )

    def execute(self, task: AgentTask) -> TaskOutcome:
        try:
            return self._run(agent_task=task, executor=self._executor)
        except StageExecutionError as error:
            return TaskOutcome(success=False, error=str(error))


def build_executor(
    *,
    project_name: str,
    version: str,
    settings: Settings,
    catalog: ConfigLoader,
) -> PrefectTaskExecutor:
    store = ProjectStore(settings.projects_root)
    return PrefectTaskExecutor(
        CliTaskExecutor(
            project_name=project_name,
            version=version,
            output_root=store.output_root(project_name, version),
            workdir_mgr=TaskWorkdirManager(settings.executor.workdir_root),
            command_template=settings.executor.command_template,
            timeout_seconds=settings.executor.timeout_seconds,
            tool_path=catalog.video_explainer_path(),
        ),
        retries=settings.executor.retries,
        retry_delay_seconds=settings.executor.retry_delay_seconds,
    )


@flow(name="render_flow", validate_parameters=False)
def render_flow(  # noqa: PLR0913
    *,
    project: ProjectConfig,
    options: RenderOptions,
    settings: Settings,
    catalog: ConfigLoader,
    history: ProductionHistory | None = None,
    on_progress: Callable[[str], None] | None = None,
) -> RenderResult:
    """Plan and execute a full render of the project's outputs."""

    version = options.version or default_version()
    plan = TaskPlanner(catalog.resolve_platform).plan_render(
        project.id,
        project.output_requests(),
        options,
    )
    coordinator = ExecutionCoordinator(
        build_executor(project_name=project.id, version=version, settings=settings, catalog=catalog),
        history=history,
        max_parallel_tasks=settings.executor.max_parallel_tasks,
        on_progress=on_progress,
    )
    return coordinator.execute(plan, version=version)


@flow(name="script_flow", validate_parameters=False)
def script_flow(
    *,
    project: ProjectConfig,
    settings: Settings,
    catalog: ConfigLoader,
    version: str | None = None,
) -> ScriptResult:
    """Generate only the script, the stage the user reviews first."""

    resolved_version = version or default_version()
    script_task = TaskPlanner(catalog.resolve_platform).script_task()
    coordinator = ExecutionCoordinator(
        build_executor(
            project_name=project.id,
            version=resolved_version,
            settings=settings,
            catalog=catalog,
        ),
    )
    (outcome,) = coordinator.run_group([script_task])
    expected = artifact_path(
        ProjectStore(settings.projects_root).output_root(project.id, resolved_version),
        script_task,
    )
    return ScriptResult(
        success=outcome.success,
        script_path=outcome.output_path or str(expected),
        word_count=int(outcome.metadata.get("word_count", 0)),
        estimated_duration=int(outcome.metadata.get("estimated_duration", 0)),
        error=outcome.error,
    )


@flow(name="scenes_flow", validate_parameters=False)
def scenes_flow(
    *,
    project: ProjectConfig,
    settings: Settings,
    catalog: ConfigLoader,
    version: str | None = None,
) -> ScenesResult:
    """Generate scenes for every aspect ratio the project needs, concurrently."""

    resolved_version = version or default_version()
    group = TaskPlanner(catalog.resolve_platform).scene_group(project.output_requests())
    coordinator = ExecutionCoordinator(
        build_executor(
            project_name=project.id,
            version=resolved_version,
            settings=settings,
            catalog=catalog,
        ),
        max_parallel_tasks=settings.executor.max_parallel_tasks,
    )
    outcomes = coordinator.run_group(group.tasks)

    result = ScenesResult(success=True)
    errors: list[str] = []
    for scene_task, outcome in zip(group.tasks, outcomes, strict=True):
        if not outcome.success:
            result.success = False
            errors.append(outcome.error or f"{scene_task.id} failed")
            continue
        result.scene_paths[scene_task.aspect_ratio or ""] = outcome.output_path or ""
        result.scene_count += int(outcome.metadata.get("scene_count", 0))
    if errors:
        result.error = "; ".join(errors)
        logger.warning("Scene generation for %s failed: %s", project.id, result.error)
    return result
