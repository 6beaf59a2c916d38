"""Plan execution: sequential foreground, then group-by-group fan-out/fan-in."""

from __future__ import annotations

import contextvars
import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol, runtime_checkable

from video_explainer.orchestrator.backend.base import TaskExecutor
from video_explainer.orchestrator.models import (
    AgentTask,
    ExecutionPlan,
    OutputResult,
    PlanPhase,
    PlanValidationError,
    RenderResult,
    TaskGroup,
    TaskOutcome,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class ProductionHistory(Protocol):
    """Receives the outcome of every completed plan execution."""

    def record_production(self, project_name: str, result: RenderResult) -> object: ...


def default_version() -> str:
    return f"v{int(time.time() * 1000)}"


def ordered_groups(plan: ExecutionPlan) -> list[TaskGroup]:
    """Order background groups by ``run_after``, keeping array order among ready groups."""

    completed = {task.id for task in plan.foreground_tasks}
    pending = list(plan.background_groups)
    known = completed | {group.id for group in pending}
    for group in pending:
        known.update(task.id for task in group.tasks)

    ordered: list[TaskGroup] = []
    while pending:
        for index, group in enumerate(pending):
            unknown = [item for item in group.run_after if item not in known]
            if unknown:
                raise PlanValidationError(
                    f"Group {group.id!r} runs after unknown ids: {', '.join(unknown)}",
                )
            if all(item in completed for item in group.run_after):
                break
        else:
            raise PlanValidationError(
                "Cyclic run_after between groups: "
                + ", ".join(group.id for group in pending),
            )
        ready = pending.pop(index)
        ordered.append(ready)
        completed.add(ready.id)
        completed.update(task.id for task in ready.tasks)
    return ordered


class ExecutionCoordinator:
    """Drives one execution plan to completion through an injected executor."""

    def __init__(
        self,
        executor: TaskExecutor,
        *,
        history: ProductionHistory | None = None,
        max_parallel_tasks: int | None = None,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self._executor = executor
        self._history = history
        self._max_parallel_tasks = max_parallel_tasks
        self._emit = on_progress or (lambda _: None)
        self.phase = PlanPhase.NOT_STARTED

    def execute(self, plan: ExecutionPlan, version: str | None = None) -> RenderResult:
        """Run the plan; only a foreground failure makes the result unsuccessful."""

        resolved_version = version or default_version()
        groups = ordered_groups(plan)
        self._emit(
            f"Execution plan for {plan.project_name}: outputs={plan.total_outputs} "
            f"foreground_tasks={len(plan.foreground_tasks)} "
            f"background_groups={len(plan.background_groups)} "
            f"estimated_seconds={plan.estimated_total_duration}",
        )

        self._transition(PlanPhase.RUNNING_FOREGROUND, plan)
        for task in plan.foreground_tasks:
            self._emit(f"[FOREGROUND] {task.name}")
            outcome = self._run_task(task)
            if not outcome.success:
                self._transition(PlanPhase.FAILED, plan)
                self._emit(f"[FOREGROUND] {task.name} failed: {outcome.error or 'unknown error'}")
                return RenderResult(
                    success=False,
                    outputs=[],
                    version=resolved_version,
                    failed_task=task.id,
                    error=outcome.error,
                )

        self._transition(PlanPhase.RUNNING_BACKGROUND, plan)
        outputs: list[OutputResult] = []
        for group in groups:
            self._emit(f"[BACKGROUND PARALLEL] {group.id}: starting {len(group.tasks)} tasks")
            outcomes = self.run_group(group.tasks)
            for task, outcome in zip(group.tasks, outcomes, strict=True):
                if not outcome.success:
                    logger.warning(
                        "Background task %s failed: %s",
                        task.id,
                        outcome.error or "unknown error",
                    )
                    self._emit(f"  {task.id} failed: {outcome.error or 'unknown error'}")
                if task.output_id is not None:
                    outputs.append(_output_result(task, outcome))

        result = RenderResult(success=True, outputs=outputs, version=resolved_version)
        self._transition(PlanPhase.COMPLETED, plan)
        if self._history is not None:
            self._history.record_production(plan.project_name, result)
        return result

    def run_group(self, tasks: Sequence[AgentTask]) -> list[TaskOutcome]:
        """Run independent tasks concurrently and wait for all of them."""

        if not tasks:
            return []
        workers = len(tasks)
        if self._max_parallel_tasks is not None:
            workers = max(1, min(workers, self._max_parallel_tasks))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="production-task") as pool:
            futures = [
                pool.submit(contextvars.copy_context().run, self._run_task, task)
                for task in tasks
            ]
            return [future.result() for future in futures]

    def _run_task(self, task: AgentTask) -> TaskOutcome:
        started = time.monotonic()
        try:
            outcome = self._executor.execute(task)
        except Exception as error:  # noqa: BLE001
            logger.exception("Task %s raised during execution", task.id)
            outcome = TaskOutcome(success=False, error=str(error) or type(error).__name__)
        logger.info(
            "Task %s finished: success=%s elapsed=%.1fs",
            task.id,
            outcome.success,
            time.monotonic() - started,
        )
        return outcome

    def _transition(self, phase: PlanPhase, plan: ExecutionPlan) -> None:
        logger.info("Plan %s: %s -> %s", plan.project_name, self.phase.value, phase.value)
        self.phase = phase


def _output_result(task: AgentTask, outcome: TaskOutcome) -> OutputResult:
    return OutputResult(
        id=task.output_id or task.id,
        platform=task.platform or "unknown",
        language=task.language or "en",
        path=outcome.output_path or "",
        success=outcome.success,
        error=None if outcome.success else (outcome.error or f"{task.id} failed"),
    )
