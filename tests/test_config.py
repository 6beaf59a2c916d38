from __future__ import annotations

from pathlib import Path

import allure
import pytest

from video_explainer.config import ExecutorSettings, LearningSettings, Settings

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Runtime Settings"),
]


def test_from_env_reads_overrides(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("VIDEO_EXPLAINER_TASK_TIMEOUT_SECONDS", "42")
    monkeypatch.setenv("VIDEO_EXPLAINER_MAX_PARALLEL_TASKS", "2")
    monkeypatch.setenv("VIDEO_EXPLAINER_TASK_RETRIES", "3")
    monkeypatch.setenv("VIDEO_EXPLAINER_LEARNING_ENABLED", "off")

    settings = Settings.from_env(config_dir=tmp_path / "cfg")

    assert settings.config_dir == tmp_path / "cfg"
    assert settings.memory_dir == tmp_path / "cfg" / "memory"
    assert settings.executor.workdir_root == tmp_path / "cfg" / "workdir"
    assert settings.executor.timeout_seconds == 42
    assert settings.executor.max_parallel_tasks == 2
    assert settings.executor.retries == 3
    assert settings.learning.enabled is False
    assert settings.projects_root == tmp_path / "projects"


def test_from_env_rejects_invalid_boolean(monkeypatch) -> None:
    monkeypatch.setenv("VIDEO_EXPLAINER_LEARNING_ENABLED", "maybe")

    with pytest.raises(ValueError, match="VIDEO_EXPLAINER_LEARNING_ENABLED"):
        Settings.from_env()


def test_validate_requires_manifest_placeholder() -> None:
    settings = Settings(executor=ExecutorSettings(command_template="tool run"))

    with pytest.raises(ValueError, match="task_manifest"):
        settings.validate()


def test_validate_rejects_non_positive_timeout() -> None:
    settings = Settings(executor=ExecutorSettings(timeout_seconds=0))

    with pytest.raises(ValueError, match="TASK_TIMEOUT_SECONDS"):
        settings.validate()


def test_validate_rejects_non_positive_parallelism_and_aggregation() -> None:
    with pytest.raises(ValueError, match="MAX_PARALLEL_TASKS"):
        Settings(executor=ExecutorSettings(max_parallel_tasks=0)).validate()
    with pytest.raises(ValueError, match="AGGREGATE_EVERY"):
        Settings(learning=LearningSettings(aggregate_every=0)).validate()


def test_default_settings_are_valid() -> None:
    Settings().validate()
