"""Task graph construction for render requests.

A plan always starts with the script, which is produced in the foreground
because the user reviews it before anything downstream proceeds. Everything
else runs unattended in three background groups::

    script ─┬─ scenes      (one task per distinct aspect ratio)
            └─ voiceovers  (one task per distinct language)
                  └─ renders (one task per output, wired to its own
                              scene and voiceover task)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from video_explainer.catalog.models import DEFAULT_ASPECT_RATIO, PlatformConfig
from video_explainer.orchestrator.models import (
    AgentTask,
    ExecutionPlan,
    OutputRequest,
    RenderOptions,
    TaskGroup,
    TaskType,
    validate_plan,
)

PlatformResolver = Callable[[str], PlatformConfig | None]

SCRIPT_TASK_ID = "script"
SCENES_GROUP_ID = "scenes"
VOICEOVERS_GROUP_ID = "voiceovers"
RENDERS_GROUP_ID = "renders"

SCRIPT_DURATION = 120
SCENE_DURATION = 180
VOICEOVER_DURATION = 60
RENDER_DURATION = 300


def select_outputs(
    outputs: Sequence[OutputRequest],
    options: RenderOptions | None = None,
) -> list[OutputRequest]:
    """Apply ``only`` (exclusive, evaluated first) or ``lang`` filters.

    Repeated ``(output_id, language)`` pairs collapse to the first one seen.
    """

    unique: dict[tuple[str, str], OutputRequest] = {}
    for output in outputs:
        unique.setdefault((output.output_id, output.language), output)
    selected = list(unique.values())
    if options is None:
        return selected
    if options.only is not None:
        return [output for output in selected if output.output_id in options.only]
    if options.lang is not None:
        return [output for output in selected if output.language == options.lang]
    return selected


def scene_task_id(aspect_ratio: str) -> str:
    return f"scene-{aspect_ratio.replace(':', 'x')}"


def voiceover_task_id(language: str) -> str:
    return f"voiceover-{language}"


def render_task_id(output_id: str, language: str) -> str:
    return f"render-{output_id}-{language}"


def estimate_total_duration(
    foreground_tasks: Iterable[AgentTask],
    background_groups: Iterable[TaskGroup],
) -> int:
    """Fold a plan into one wall-clock estimate in seconds.

    Foreground tasks are summed. Each background group adds its slowest task,
    and groups are summed in order even when their ``run_after`` sets would
    let them overlap, so the figure is a conservative upper bound.
    """

    total = sum(task.duration for task in foreground_tasks)
    for group in background_groups:
        total += max((task.duration for task in group.tasks), default=0)
    return total


class TaskPlanner:
    """Builds execution plans from requested outputs."""

    def __init__(self, resolve_platform: PlatformResolver) -> None:
        self._resolve_platform = resolve_platform

    def aspect_ratio_for(self, platform_name: str) -> str:
        platform = self._resolve_platform(platform_name)
        if platform is None:
            return DEFAULT_ASPECT_RATIO
        return platform.aspect_ratio

    def required_aspect_ratios(self, outputs: Iterable[OutputRequest]) -> tuple[str, ...]:
        return _ordered_unique(self.aspect_ratio_for(output.platform) for output in outputs)

    def required_languages(self, outputs: Iterable[OutputRequest]) -> tuple[str, ...]:
        return _ordered_unique(output.language for output in outputs)

    def script_task(self) -> AgentTask:
        return AgentTask(
            id=SCRIPT_TASK_ID,
            name="Script Generation",
            type=TaskType.SCRIPT,
            estimated_duration=SCRIPT_DURATION,
        )

    def scene_group(self, outputs: Sequence[OutputRequest]) -> TaskGroup:
        tasks = tuple(
            AgentTask(
                id=scene_task_id(aspect_ratio),
                name=f"Scene Generation ({aspect_ratio})",
                type=TaskType.SCENE,
                dependencies=(SCRIPT_TASK_ID,),
                aspect_ratio=aspect_ratio,
                estimated_duration=SCENE_DURATION,
            )
            for aspect_ratio in self.required_aspect_ratios(outputs)
        )
        return TaskGroup(id=SCENES_GROUP_ID, tasks=tasks, run_after=(SCRIPT_TASK_ID,))

    def voiceover_group(self, outputs: Sequence[OutputRequest]) -> TaskGroup:
        tasks = tuple(
            AgentTask(
                id=voiceover_task_id(language),
                name=f"Voiceover ({language})",
                type=TaskType.VOICEOVER,
                dependencies=(SCRIPT_TASK_ID,),
                language=language,
                estimated_duration=VOICEOVER_DURATION,
            )
            for language in self.required_languages(outputs)
        )
        return TaskGroup(id=VOICEOVERS_GROUP_ID, tasks=tasks, run_after=(SCRIPT_TASK_ID,))

    def render_group(self, outputs: Sequence[OutputRequest]) -> TaskGroup:
        tasks = []
        for output in outputs:
            aspect_ratio = self.aspect_ratio_for(output.platform)
            tasks.append(
                AgentTask(
                    id=render_task_id(output.output_id, output.language),
                    name=f"Render {output.platform} ({output.language})",
                    type=TaskType.RENDER,
                    dependencies=(
                        scene_task_id(aspect_ratio),
                        voiceover_task_id(output.language),
                    ),
                    platform=output.platform,
                    language=output.language,
                    aspect_ratio=aspect_ratio,
                    output_id=output.output_id,
                    estimated_duration=RENDER_DURATION,
                ),
            )
        return TaskGroup(
            id=RENDERS_GROUP_ID,
            tasks=tuple(tasks),
            run_after=(SCENES_GROUP_ID, VOICEOVERS_GROUP_ID),
        )

    def plan_render(
        self,
        project_name: str,
        outputs: Sequence[OutputRequest],
        options: RenderOptions | None = None,
    ) -> ExecutionPlan:
        """Build the full task graph and duration estimate for a render."""

        if not project_name.strip():
            raise ValueError("project_name must be a non-empty string")

        selected = select_outputs(outputs, options)
        foreground = (self.script_task(),)
        groups = (
            self.scene_group(selected),
            self.voiceover_group(selected),
            self.render_group(selected),
        )
        plan = ExecutionPlan(
            project_name=project_name,
            total_outputs=len(selected),
            foreground_tasks=foreground,
            background_groups=groups,
            estimated_total_duration=estimate_total_duration(foreground, groups),
        )
        validate_plan(plan)
        return plan


def _ordered_unique(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))
