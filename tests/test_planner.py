from __future__ import annotations

import allure
import pytest

from video_explainer.catalog.models import ChunkingPolicy, PlatformConfig
from video_explainer.orchestrator.models import (
    AgentTask,
    ExecutionPlan,
    OutputRequest,
    PlanValidationError,
    RenderOptions,
    TaskGroup,
    TaskType,
    validate_plan,
)
from video_explainer.orchestrator.planner import (
    TaskPlanner,
    estimate_total_duration,
    select_outputs,
)

pytestmark = [
    allure.epic("Production Planning"),
    allure.feature("Task Graph Builder"),
]

_PLATFORMS = {
    "youtube": PlatformConfig(name="youtube", display_name="YouTube", aspect_ratio="16:9"),
    "tiktok": PlatformConfig(
        name="tiktok",
        display_name="TikTok",
        aspect_ratio="9:16",
        chunking=ChunkingPolicy(enabled=True, overlap_seconds=2),
    ),
    "linkedin": PlatformConfig(name="linkedin", display_name="LinkedIn", aspect_ratio="1:1"),
}

_OUTPUTS = [
    OutputRequest(output_id="main", platform="youtube", language="en"),
    OutputRequest(output_id="tiktok", platform="tiktok", language="en"),
]


def _planner() -> TaskPlanner:
    return TaskPlanner(_PLATFORMS.get)


def _ids(tasks) -> list[str]:
    return [task.id for task in tasks]


def test_plan_for_youtube_and_tiktok_matches_reference_estimate() -> None:
    plan = _planner().plan_render("demo", _OUTPUTS)

    assert _ids(plan.foreground_tasks) == ["script"]
    assert [group.id for group in plan.background_groups] == ["scenes", "voiceovers", "renders"]
    assert _ids(plan.group("scenes").tasks) == ["scene-16x9", "scene-9x16"]
    assert _ids(plan.group("voiceovers").tasks) == ["voiceover-en"]
    assert _ids(plan.group("renders").tasks) == ["render-main-en", "render-tiktok-en"]
    assert plan.total_outputs == 2
    assert plan.estimated_total_duration == 660


def test_render_tasks_depend_on_their_own_scene_and_voiceover() -> None:
    plan = _planner().plan_render("demo", _OUTPUTS)
    renders = {task.id: task for task in plan.render_tasks()}

    assert renders["render-main-en"].dependencies == ("scene-16x9", "voiceover-en")
    assert renders["render-tiktok-en"].dependencies == ("scene-9x16", "voiceover-en")
    assert renders["render-tiktok-en"].aspect_ratio == "9:16"
    assert renders["render-tiktok-en"].output_id == "tiktok"
    assert plan.group("renders").run_after == ("scenes", "voiceovers")
    assert plan.group("scenes").run_after == ("script",)


def test_shared_aspect_ratio_yields_single_scene_task() -> None:
    outputs = [
        OutputRequest(output_id="main", platform="youtube"),
        OutputRequest(output_id="unknown", platform="vimeo"),
    ]

    plan = _planner().plan_render("demo", outputs)

    assert _ids(plan.group("scenes").tasks) == ["scene-16x9"]
    assert len(plan.render_tasks()) == 2


def test_unknown_platform_defaults_to_landscape() -> None:
    plan = _planner().plan_render(
        "demo",
        [OutputRequest(output_id="custom", platform="not-a-platform")],
    )

    (render,) = plan.render_tasks()
    assert render.aspect_ratio == "16:9"
    assert render.dependencies == ("scene-16x9", "voiceover-en")


def test_languages_are_deduplicated_in_first_seen_order() -> None:
    outputs = [
        OutputRequest(output_id="main", platform="youtube", language="es"),
        OutputRequest(output_id="tiktok", platform="tiktok", language="en"),
        OutputRequest(output_id="linkedin", platform="linkedin", language="es"),
    ]

    plan = _planner().plan_render("demo", outputs)

    assert _ids(plan.group("voiceovers").tasks) == ["voiceover-es", "voiceover-en"]
    assert _ids(plan.group("scenes").tasks) == ["scene-16x9", "scene-9x16", "scene-1x1"]


def test_only_filter_keeps_just_the_groups_needed() -> None:
    plan = _planner().plan_render("demo", _OUTPUTS, RenderOptions(only=("main",)))

    assert _ids(plan.render_tasks()) == ["render-main-en"]
    assert _ids(plan.group("scenes").tasks) == ["scene-16x9"]
    assert _ids(plan.group("voiceovers").tasks) == ["voiceover-en"]
    assert plan.total_outputs == 1


def test_only_filter_takes_precedence_over_language() -> None:
    outputs = [
        OutputRequest(output_id="main", platform="youtube", language="en"),
        OutputRequest(output_id="main", platform="youtube", language="fr"),
        OutputRequest(output_id="tiktok", platform="tiktok", language="fr"),
    ]

    selected = select_outputs(outputs, RenderOptions(only=("main",), lang="fr"))

    assert selected == outputs[:2]


def test_language_filter_selects_matching_outputs() -> None:
    outputs = [
        OutputRequest(output_id="main", platform="youtube", language="en"),
        OutputRequest(output_id="main", platform="youtube", language="fr"),
    ]

    plan = _planner().plan_render("demo", outputs, RenderOptions(lang="fr"))

    assert _ids(plan.render_tasks()) == ["render-main-fr"]
    assert _ids(plan.group("voiceovers").tasks) == ["voiceover-fr"]


def test_filter_matching_nothing_yields_empty_groups() -> None:
    plan = _planner().plan_render("demo", _OUTPUTS, RenderOptions(only=("missing",)))

    assert _ids(plan.foreground_tasks) == ["script"]
    assert all(not group.tasks for group in plan.background_groups)
    assert plan.total_outputs == 0
    assert plan.estimated_total_duration == 120


def test_plan_is_structurally_identical_across_builds() -> None:
    first = _planner().plan_render("demo", _OUTPUTS)
    second = _planner().plan_render("demo", _OUTPUTS)

    def shape(plan: ExecutionPlan) -> set[tuple[str, str, tuple[str, ...]]]:
        return {
            (group.id, task.id, task.dependencies)
            for group in plan.background_groups
            for task in group.tasks
        }

    assert shape(first) == shape(second)
    assert first == second


def test_empty_project_name_is_rejected() -> None:
    with pytest.raises(ValueError, match="project_name"):
        _planner().plan_render("  ", _OUTPUTS)


def test_estimate_adds_zero_for_empty_group_and_defaults_missing_durations() -> None:
    foreground = (AgentTask(id="script", name="Script", type=TaskType.SCRIPT),)
    groups = (
        TaskGroup(id="empty"),
        TaskGroup(
            id="mixed",
            tasks=(
                AgentTask(id="a", name="A", type=TaskType.SCENE, estimated_duration=30),
                AgentTask(id="b", name="B", type=TaskType.SCENE, estimated_duration=90),
            ),
        ),
    )

    assert estimate_total_duration(foreground, groups) == 60 + 0 + 90


def _plan(*groups: TaskGroup) -> ExecutionPlan:
    return ExecutionPlan(
        project_name="demo",
        total_outputs=0,
        foreground_tasks=(AgentTask(id="script", name="Script", type=TaskType.SCRIPT),),
        background_groups=groups,
        estimated_total_duration=0,
    )


def test_validate_plan_rejects_duplicate_ids() -> None:
    task = AgentTask(id="dup", name="Dup", type=TaskType.SCENE, dependencies=("script",))
    plan = _plan(TaskGroup(id="g1", tasks=(task,)), TaskGroup(id="g2", tasks=(task,)))

    with pytest.raises(PlanValidationError, match="Duplicate"):
        validate_plan(plan)


def test_validate_plan_rejects_forward_and_sibling_dependencies() -> None:
    forward = _plan(
        TaskGroup(
            id="g1",
            tasks=(AgentTask(id="a", name="A", type=TaskType.SCENE, dependencies=("later",)),),
        ),
    )
    with pytest.raises(PlanValidationError, match="not defined earlier"):
        validate_plan(forward)

    sibling = _plan(
        TaskGroup(
            id="g1",
            tasks=(
                AgentTask(id="a", name="A", type=TaskType.SCENE),
                AgentTask(id="b", name="B", type=TaskType.SCENE, dependencies=("a",)),
            ),
        ),
    )
    with pytest.raises(PlanValidationError, match="sibling"):
        validate_plan(sibling)


def test_validate_plan_rejects_self_dependency_and_unknown_run_after() -> None:
    self_ref = _plan(
        TaskGroup(
            id="g1",
            tasks=(AgentTask(id="a", name="A", type=TaskType.SCENE, dependencies=("a",)),),
        ),
    )
    with pytest.raises(PlanValidationError, match="itself"):
        validate_plan(self_ref)

    unknown = _plan(TaskGroup(id="g1", run_after=("nowhere",)))
    with pytest.raises(PlanValidationError, match="unknown ids"):
        validate_plan(unknown)


def test_repeated_output_requests_collapse_to_one_render() -> None:
    repeated = [*_OUTPUTS, OutputRequest(output_id="main", platform="youtube", language="en")]

    plan = _planner().plan_render("demo", repeated)

    assert plan.total_outputs == 2
    assert _ids(plan.group("renders").tasks) == ["render-main-en", "render-tiktok-en"]
    assert select_outputs(repeated) == _OUTPUTS
    assert select_outputs(repeated, RenderOptions(only=("main",))) == _OUTPUTS[:1]
