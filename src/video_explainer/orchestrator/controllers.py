"""Controllers for production CLI commands."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

from video_explainer.catalog.loader import ConfigLoader
from video_explainer.config import Settings
from video_explainer.memory.manager import MemoryManager
from video_explainer.orchestrator.flows import render_flow, scenes_flow, script_flow
from video_explainer.orchestrator.models import (
    ExecutionPlan,
    PlanValidationError,
    RenderOptions,
    RenderResult,
)
from video_explainer.orchestrator.planner import TaskPlanner
from video_explainer.orchestrator.projects import (
    NewProjectOptions,
    ProjectNotFoundError,
    ProjectStore,
    create_project,
)


@dataclass(slots=True)
class ContextOptions:
    """Directory overrides shared by every command."""

    config_dir: Path | None = None
    projects_root: Path | None = None


@dataclass(slots=True)
class NewProjectCommand:
    name: str
    brand: str | None = None
    style: str | None = None
    platforms: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    context: ContextOptions = field(default_factory=ContextOptions)


@dataclass(slots=True)
class RenderCommand:
    """CLI input for plan display and render execution."""

    name: str
    only: tuple[str, ...] = ()
    lang: str | None = None
    version: str | None = None
    context: ContextOptions = field(default_factory=ContextOptions)

    def render_options(self) -> RenderOptions:
        return RenderOptions(only=self.only or None, lang=self.lang, version=self.version)


@dataclass(slots=True)
class StageCommand:
    """CLI input for script-only and scenes-only runs."""

    name: str
    version: str | None = None
    context: ContextOptions = field(default_factory=ContextOptions)


@dataclass(slots=True)
class FeedbackCommand:
    name: str
    text: str
    context: ContextOptions = field(default_factory=ContextOptions)


@dataclass(slots=True)
class LearnCommand:
    instruction: str
    context: ContextOptions = field(default_factory=ContextOptions)


@dataclass(slots=True)
class ForgetCommand:
    item: str
    context: ContextOptions = field(default_factory=ContextOptions)


@dataclass(slots=True)
class SetToolPathCommand:
    path: str
    context: ContextOptions = field(default_factory=ContextOptions)


@dataclass(slots=True)
class CommandResult:
    lines: list[str]
    success: bool = True


class ProductionCliController:
    """CLI controller for project, render and learning memory operations."""

    def new_project(self, command: NewProjectCommand) -> CommandResult:
        settings = _settings(command.context)
        catalog = ConfigLoader(settings.config_dir).load()
        store = ProjectStore(settings.projects_root)
        if store.exists(command.name):
            return CommandResult(
                lines=[f"Project {command.name!r} already exists in {settings.projects_root}"],
                success=False,
            )

        project = create_project(
            command.name,
            catalog,
            NewProjectOptions(
                brand=command.brand,
                style=command.style,
                platforms=command.platforms,
                languages=command.languages,
            ),
        )
        path = store.save(project)
        lines = [
            f"Created project {project.id} at {path}",
            f"brand={project.brand} style={project.style} languages={','.join(project.languages)}",
        ]
        for output in project.outputs:
            known = catalog.resolve_platform(output.platform) is not None
            lines.append(
                f"  output {output.id}: platform={output.platform} chunking={output.chunking}"
                + ("" if known else " (unknown platform, 16:9 assumed)"),
            )
        return CommandResult(lines=lines)

    def plan(self, command: RenderCommand) -> CommandResult:
        settings = _settings(command.context)
        catalog = ConfigLoader(settings.config_dir).load()
        try:
            project = ProjectStore(settings.projects_root).load(command.name)
            plan = TaskPlanner(catalog.resolve_platform).plan_render(
                project.id,
                project.output_requests(),
                command.render_options(),
            )
        except (ProjectNotFoundError, ValueError) as error:
            return CommandResult(lines=[str(error)], success=False)
        return CommandResult(lines=format_plan(plan))

    def render(self, command: RenderCommand) -> CommandResult:
        settings = _settings(command.context)
        try:
            settings.validate()
        except ValueError as error:
            return CommandResult(lines=[f"Configuration error: {error}"], success=False)
        catalog = ConfigLoader(settings.config_dir).load()
        try:
            project = ProjectStore(settings.projects_root).load(command.name)
        except (ProjectNotFoundError, ValueError) as error:
            return CommandResult(lines=[str(error)], success=False)

        learning_enabled = settings.learning.enabled and catalog.defaults().learning_enabled
        history = _memory(settings) if learning_enabled else None
        lines: list[str] = []
        try:
            result = render_flow(
                project=project,
                options=command.render_options(),
                settings=settings,
                catalog=catalog,
                history=history,
                on_progress=lines.append,
            )
        except PlanValidationError as error:
            lines.append(f"Invalid execution plan for {project.id}: {error}")
            return CommandResult(lines=lines, success=False)
        lines.extend(format_render_result(project.id, result))
        return CommandResult(lines=lines, success=result.success)

    def script(self, command: StageCommand) -> CommandResult:
        settings = _settings(command.context)
        try:
            settings.validate()
            project = ProjectStore(settings.projects_root).load(command.name)
        except (ProjectNotFoundError, ValueError) as error:
            return CommandResult(lines=[str(error)], success=False)

        catalog = ConfigLoader(settings.config_dir).load()
        result = script_flow(
            project=project,
            settings=settings,
            catalog=catalog,
            version=command.version,
        )
        if not result.success:
            return CommandResult(
                lines=[f"Script generation failed for {project.id}: {result.error}"],
                success=False,
            )
        return CommandResult(
            lines=[
                f"Script generated for {project.id}: {result.script_path}",
                f"word_count={result.word_count} estimated_duration={result.estimated_duration}s",
            ],
        )

    def scenes(self, command: StageCommand) -> CommandResult:
        settings = _settings(command.context)
        try:
            settings.validate()
            project = ProjectStore(settings.projects_root).load(command.name)
        except (ProjectNotFoundError, ValueError) as error:
            return CommandResult(lines=[str(error)], success=False)

        catalog = ConfigLoader(settings.config_dir).load()
        result = scenes_flow(
            project=project,
            settings=settings,
            catalog=catalog,
            version=command.version,
        )
        lines = [f"Scenes for {project.id}: scene_count={result.scene_count}"]
        lines.extend(
            f"  {aspect_ratio}: {path}" for aspect_ratio, path in sorted(result.scene_paths.items())
        )
        if not result.success:
            lines.append(f"Scene generation failed: {result.error}")
        return CommandResult(lines=lines, success=result.success)

    def feedback(self, command: FeedbackCommand) -> CommandResult:
        settings = _settings(command.context)
        detected = _memory(settings).record_feedback(command.name, command.text)
        if not detected:
            return CommandResult(lines=[f"Feedback recorded for {command.name}: no preferences detected"])
        return CommandResult(
            lines=[f"Feedback recorded for {command.name}: preferences={','.join(detected)}"],
        )

    def learn(self, command: LearnCommand) -> CommandResult:
        settings = _settings(command.context)
        learning = _memory(settings).add_learning(command.instruction)
        return CommandResult(lines=[f"Learning recorded: {learning.instruction!r}"])

    def forget(self, command: ForgetCommand) -> CommandResult:
        settings = _settings(command.context)
        removed = _memory(settings).forget(command.item)
        return CommandResult(lines=[f"Forgot {command.item!r}: removed={removed}"])

    def memory_summary(self, context: ContextOptions) -> CommandResult:
        summary = _memory(_settings(context)).learning_summary()
        lines = [
            "Learning memory:",
            f"total_productions={summary.total_productions}",
            f"total_feedback_rounds={summary.total_feedback_rounds}",
            "user_preferences=" + (",".join(summary.user_preferences) or "-"),
        ]
        lines.extend(
            f"  technique {score.technique}: success_rate={score.success_rate:.2f}"
            for score in summary.top_techniques
        )
        lines.extend(f"  learning: {instruction}" for instruction in summary.recent_learnings)
        return CommandResult(lines=lines)

    def memory_patterns(self, context: ContextOptions) -> CommandResult:
        memory = _memory(_settings(context))
        patterns = memory.patterns()
        lines = ["Aggregated patterns:"]
        lines.extend(
            f"  technique {score.technique}: success_rate={score.success_rate:.2f} "
            f"usage={score.usage_count}"
            for score in memory.effectiveness()
        )
        lines.extend(
            f"  failure {failure.issue!r}: frequency={failure.frequency} "
            f"common_fix={failure.common_fix!r}"
            for failure in patterns.common_failures
        )
        lines.extend(f"  preference {preference}" for preference in patterns.user_preferences)
        return CommandResult(lines=lines)

    def memory_preferences(self, context: ContextOptions) -> CommandResult:
        preferences = _memory(_settings(context)).preferences()
        if not preferences:
            return CommandResult(lines=["No recurring preferences yet."])
        return CommandResult(lines=[f"  {preference}" for preference in preferences])

    def list_platforms(self, context: ContextOptions) -> CommandResult:
        catalog = ConfigLoader(_settings(context).config_dir).load()
        return CommandResult(
            lines=[
                f"{platform.name}: {platform.display_name} aspect_ratio={platform.aspect_ratio} "
                f"chunking={'on' if platform.chunking.enabled else 'off'}"
                for platform in sorted(catalog.all_platforms(), key=lambda item: item.name)
            ],
        )

    def set_tool_path(self, command: SetToolPathCommand) -> CommandResult:
        settings = _settings(command.context)
        catalog = ConfigLoader(settings.config_dir).load()
        try:
            catalog.set_video_explainer_path(command.path)
        except ValueError as error:
            return CommandResult(lines=[str(error)], success=False)
        return CommandResult(lines=[f"video_explainer_path={command.path}"])


def format_plan(plan: ExecutionPlan) -> list[str]:
    lines = [
        f"Execution plan for {plan.project_name}: outputs={plan.total_outputs} "
        f"estimated_seconds={plan.estimated_total_duration}",
    ]
    lines.extend(
        f"[FOREGROUND] {task.id}: {task.name} ({task.duration}s)" for task in plan.foreground_tasks
    )
    for group in plan.background_groups:
        lines.append(
            f"[BACKGROUND] {group.id}: tasks={len(group.tasks)} "
            f"run_after={','.join(group.run_after) or '-'}",
        )
        lines.extend(
            f"  {task.id}: {task.name} ({task.duration}s) "
            f"deps={','.join(task.dependencies) or '-'}"
            for task in group.tasks
        )
    return lines


def format_render_result(project_name: str, result: RenderResult) -> list[str]:
    if not result.success:
        return [
            f"Render failed for {project_name} at foreground stage {result.failed_task}: "
            f"{result.error or 'unknown error'}",
        ]
    lines = [
        f"Render completed for {project_name}: version={result.version} "
        f"outputs={len(result.outputs)} failed={len(result.failed_outputs)}",
    ]
    for output in result.outputs:
        status = "ok" if output.success else "failed"
        line = f"  {output.id} ({output.platform}, {output.language}): {status}"
        if output.path:
            line += f" path={output.path}"
        if output.error:
            line += f" error={output.error}"
        lines.append(line)
    return lines


def _settings(context: ContextOptions) -> Settings:
    settings = Settings.from_env(config_dir=context.config_dir)
    if context.projects_root is not None:
        settings = replace(settings, projects_root=context.projects_root)
    return settings


def _memory(settings: Settings) -> MemoryManager:
    return MemoryManager(
        settings.memory_dir,
        aggregate_every=settings.learning.aggregate_every,
        min_preference_count=settings.learning.min_preference_count,
    ).load()
