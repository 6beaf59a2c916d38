"""CLI entrypoint for video-explainer."""

from collections.abc import Callable
from pathlib import Path

import rich_click as click

from video_explainer import __version__
from video_explainer.orchestrator.controllers import (
    CommandResult,
    ContextOptions,
    FeedbackCommand,
    ForgetCommand,
    LearnCommand,
    NewProjectCommand,
    ProductionCliController,
    RenderCommand,
    SetToolPathCommand,
    StageCommand,
)

click.rich_click.USE_MARKDOWN = True
PRODUCTION_CONTROLLER = ProductionCliController()


def _context_options(function: Callable) -> Callable:
    function = click.option(
        "--projects-root",
        type=click.Path(path_type=Path),
        default=None,
        help="Directory holding project folders.",
    )(function)
    return click.option(
        "--config-dir",
        type=click.Path(path_type=Path),
        default=None,
        help="Configuration directory (platforms, brands, styles, memory).",
    )(function)


@click.group()
@click.version_option(version=__version__, prog_name="video-explainer")
def video_explainer() -> None:
    """Multi-platform explainer video production CLI."""


@video_explainer.command("new")
@click.argument("name")
@click.option("--brand", default=None, help="Brand name. Defaults to the global default brand.")
@click.option("--style", default=None, help="Style name. Defaults to the global default style.")
@click.option(
    "--platform",
    "platforms",
    multiple=True,
    help="Target platform, for example youtube or tiktok. Can be repeated.",
)
@click.option(
    "--language",
    "languages",
    multiple=True,
    help="Output language code. Can be repeated.",
)
@_context_options
def new_project(  # noqa: PLR0913
    name: str,
    brand: str | None,
    style: str | None,
    platforms: tuple[str, ...],
    languages: tuple[str, ...],
    config_dir: Path | None,
    projects_root: Path | None,
) -> None:
    """Create a new project with one output per platform."""

    _finish(
        PRODUCTION_CONTROLLER.new_project(
            NewProjectCommand(
                name=name,
                brand=brand,
                style=style,
                platforms=platforms,
                languages=languages,
                context=ContextOptions(config_dir=config_dir, projects_root=projects_root),
            ),
        ),
        failure="Project was not created.",
    )


@video_explainer.command("plan")
@click.argument("name")
@click.option("--only", multiple=True, help="Output id to include. Can be repeated.")
@click.option("--lang", default=None, help="Single language to plan for.")
@_context_options
def plan(
    name: str,
    only: tuple[str, ...],
    lang: str | None,
    config_dir: Path | None,
    projects_root: Path | None,
) -> None:
    """Show the execution plan and time estimate without running anything."""

    _finish(
        PRODUCTION_CONTROLLER.plan(
            RenderCommand(
                name=name,
                only=only,
                lang=lang,
                context=ContextOptions(config_dir=config_dir, projects_root=projects_root),
            ),
        ),
        failure="Plan could not be built.",
    )


@video_explainer.command("render")
@click.argument("name")
@click.option("--only", multiple=True, help="Output id to render. Can be repeated.")
@click.option("--lang", default=None, help="Single language to render.")
@click.option("--version", "version_label", default=None, help="Version label for this run.")
@_context_options
def render(  # noqa: PLR0913
    name: str,
    only: tuple[str, ...],
    lang: str | None,
    version_label: str | None,
    config_dir: Path | None,
    projects_root: Path | None,
) -> None:
    """Render every requested output of a project.

    The script is generated in the foreground first. Scenes, voiceovers
    and renders then run as background groups whose tasks fan out in
    parallel. Only a failed script makes the command exit non-zero.
    """

    _finish(
        PRODUCTION_CONTROLLER.render(
            RenderCommand(
                name=name,
                only=only,
                lang=lang,
                version=version_label,
                context=ContextOptions(config_dir=config_dir, projects_root=projects_root),
            ),
        ),
        failure="Render failed.",
    )


@video_explainer.command("script")
@click.argument("name")
@click.option("--version", "version_label", default=None, help="Version label for this run.")
@_context_options
def script(
    name: str,
    version_label: str | None,
    config_dir: Path | None,
    projects_root: Path | None,
) -> None:
    """Generate only the script for review."""

    _finish(
        PRODUCTION_CONTROLLER.script(
            StageCommand(
                name=name,
                version=version_label,
                context=ContextOptions(config_dir=config_dir, projects_root=projects_root),
            ),
        ),
        failure="Script generation failed.",
    )


@video_explainer.command("scenes")
@click.argument("name")
@click.option("--version", "version_label", default=None, help="Version label for this run.")
@_context_options
def scenes(
    name: str,
    version_label: str | None,
    config_dir: Path | None,
    projects_root: Path | None,
) -> None:
    """Generate scenes for every aspect ratio the project needs."""

    _finish(
        PRODUCTION_CONTROLLER.scenes(
            StageCommand(
                name=name,
                version=version_label,
                context=ContextOptions(config_dir=config_dir, projects_root=projects_root),
            ),
        ),
        failure="Scene generation failed.",
    )


@video_explainer.command("feedback")
@click.argument("name")
@click.argument("text")
@_context_options
def feedback(
    name: str,
    text: str,
    config_dir: Path | None,
    projects_root: Path | None,
) -> None:
    """Record free-text feedback on the latest production of a project."""

    _finish(
        PRODUCTION_CONTROLLER.feedback(
            FeedbackCommand(
                name=name,
                text=text,
                context=ContextOptions(config_dir=config_dir, projects_root=projects_root),
            ),
        ),
    )


@video_explainer.command("learn")
@click.argument("instruction")
@_context_options
def learn(instruction: str, config_dir: Path | None, projects_root: Path | None) -> None:
    """Teach the system an explicit instruction."""

    _finish(
        PRODUCTION_CONTROLLER.learn(
            LearnCommand(
                instruction=instruction,
                context=ContextOptions(config_dir=config_dir, projects_root=projects_root),
            ),
        ),
    )


@video_explainer.group()
def memory() -> None:
    """Learning memory commands."""


@memory.command("summary")
@_context_options
def memory_summary(config_dir: Path | None, projects_root: Path | None) -> None:
    """Show productions, feedback rounds, top techniques and recent learnings."""

    _finish(
        PRODUCTION_CONTROLLER.memory_summary(
            ContextOptions(config_dir=config_dir, projects_root=projects_root),
        ),
    )


@memory.command("patterns")
@_context_options
def memory_patterns(config_dir: Path | None, projects_root: Path | None) -> None:
    """Show aggregated technique scores, common failures and preferences."""

    _finish(
        PRODUCTION_CONTROLLER.memory_patterns(
            ContextOptions(config_dir=config_dir, projects_root=projects_root),
        ),
    )


@memory.command("preferences")
@_context_options
def memory_preferences(config_dir: Path | None, projects_root: Path | None) -> None:
    """Show recurring user preferences."""

    _finish(
        PRODUCTION_CONTROLLER.memory_preferences(
            ContextOptions(config_dir=config_dir, projects_root=projects_root),
        ),
    )


@memory.command("forget")
@click.argument("item")
@_context_options
def memory_forget(item: str, config_dir: Path | None, projects_root: Path | None) -> None:
    """Remove learnings and preferences that mention ITEM."""

    _finish(
        PRODUCTION_CONTROLLER.forget(
            ForgetCommand(
                item=item,
                context=ContextOptions(config_dir=config_dir, projects_root=projects_root),
            ),
        ),
    )


@video_explainer.group()
def config() -> None:
    """Configuration commands."""


@config.command("platforms")
@_context_options
def config_platforms(config_dir: Path | None, projects_root: Path | None) -> None:
    """List system and user-defined platforms."""

    _finish(
        PRODUCTION_CONTROLLER.list_platforms(
            ContextOptions(config_dir=config_dir, projects_root=projects_root),
        ),
    )


@config.command("set-tool-path")
@click.argument("path")
@_context_options
def config_set_tool_path(path: str, config_dir: Path | None, projects_root: Path | None) -> None:
    """Store the path of the external video production tool."""

    _finish(
        PRODUCTION_CONTROLLER.set_tool_path(
            SetToolPathCommand(
                path=path,
                context=ContextOptions(config_dir=config_dir, projects_root=projects_root),
            ),
        ),
    )


def _finish(result: CommandResult, *, failure: str = "Command failed.") -> None:
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(failure)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    video_explainer()
