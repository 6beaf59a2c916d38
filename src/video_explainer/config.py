"""Runtime configuration for planning, execution and learning memory."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_COMMAND_TEMPLATE = "{tool_path} run-task --manifest {task_manifest}"


@dataclass(slots=True)
class ExecutorSettings:
    """External video tool invocation settings."""

    command_template: str = DEFAULT_COMMAND_TEMPLATE
    timeout_seconds: int = 1_800
    max_parallel_tasks: int = 4
    retries: int = 0
    retry_delay_seconds: int = 30
    workdir_root: Path = Path(".video_explainer/workdir")


@dataclass(slots=True)
class LearningSettings:
    """Learning memory settings."""

    enabled: bool = True
    aggregate_every: int = 5
    min_preference_count: int = 2


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    config_dir: Path = Path.home() / ".video-explainer"
    projects_root: Path = Path("projects")
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)
    learning: LearningSettings = field(default_factory=LearningSettings)

    @property
    def memory_dir(self) -> Path:
        return self.config_dir / "memory"

    @classmethod
    def from_env(cls, config_dir: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        resolved_config_dir = config_dir or Path(
            os.getenv("VIDEO_EXPLAINER_CONFIG_DIR", str(Path.home() / ".video-explainer")),
        )
        return cls(
            config_dir=resolved_config_dir,
            projects_root=Path(os.getenv("VIDEO_EXPLAINER_PROJECTS_ROOT", "projects")),
            executor=ExecutorSettings(
                command_template=os.getenv(
                    "VIDEO_EXPLAINER_COMMAND_TEMPLATE",
                    DEFAULT_COMMAND_TEMPLATE,
                ),
                timeout_seconds=int(os.getenv("VIDEO_EXPLAINER_TASK_TIMEOUT_SECONDS", "1800")),
                max_parallel_tasks=int(os.getenv("VIDEO_EXPLAINER_MAX_PARALLEL_TASKS", "4")),
                retries=int(os.getenv("VIDEO_EXPLAINER_TASK_RETRIES", "0")),
                retry_delay_seconds=int(
                    os.getenv("VIDEO_EXPLAINER_TASK_RETRY_DELAY_SECONDS", "30"),
                ),
                workdir_root=Path(
                    os.getenv(
                        "VIDEO_EXPLAINER_WORKDIR_ROOT",
                        str(resolved_config_dir / "workdir"),
                    ),
                ),
            ),
            learning=LearningSettings(
                enabled=_env_bool("VIDEO_EXPLAINER_LEARNING_ENABLED", default=True),
                aggregate_every=int(os.getenv("VIDEO_EXPLAINER_AGGREGATE_EVERY", "5")),
                min_preference_count=int(
                    os.getenv("VIDEO_EXPLAINER_MIN_PREFERENCE_COUNT", "2"),
                ),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if execution settings are unusable."""

        if "{task_manifest}" not in self.executor.command_template:
            raise ValueError(
                "VIDEO_EXPLAINER_COMMAND_TEMPLATE must include the {task_manifest} placeholder.",
            )
        if self.executor.timeout_seconds <= 0:
            raise ValueError("VIDEO_EXPLAINER_TASK_TIMEOUT_SECONDS must be > 0.")
        if self.executor.max_parallel_tasks <= 0:
            raise ValueError("VIDEO_EXPLAINER_MAX_PARALLEL_TASKS must be > 0.")
        if self.executor.retries < 0:
            raise ValueError("VIDEO_EXPLAINER_TASK_RETRIES must be >= 0.")
        if self.executor.retry_delay_seconds < 0:
            raise ValueError("VIDEO_EXPLAINER_TASK_RETRY_DELAY_SECONDS must be >= 0.")
        if self.learning.aggregate_every <= 0:
            raise ValueError("VIDEO_EXPLAINER_AGGREGATE_EVERY must be > 0.")
        if self.learning.min_preference_count <= 0:
            raise ValueError("VIDEO_EXPLAINER_MIN_PREFERENCE_COUNT must be > 0.")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
