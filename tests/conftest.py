"""Shared test fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from video_explainer.catalog.loader import ConfigLoader

ECHO_AGENT_COMMAND_TEMPLATE = (
    f"{sys.executable} -m video_explainer.orchestrator.backend.echo_agent "
    "--task-manifest {task_manifest}"
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch) -> Path:
    """Point every settings lookup at a throwaway config dir and projects root."""

    config_dir = tmp_path / "config"
    monkeypatch.setenv("VIDEO_EXPLAINER_CONFIG_DIR", str(config_dir))
    monkeypatch.setenv("VIDEO_EXPLAINER_PROJECTS_ROOT", str(tmp_path / "projects"))
    for name in (
        "VIDEO_EXPLAINER_COMMAND_TEMPLATE",
        "VIDEO_EXPLAINER_WORKDIR_ROOT",
        "VIDEO_EXPLAINER_LEARNING_ENABLED",
        "VIDEO_EXPLAINER_ECHO_FAIL_TASKS",
    ):
        monkeypatch.delenv(name, raising=False)
    return config_dir


@pytest.fixture()
def echo_agent(monkeypatch) -> str:
    """Route task execution through the local echo agent."""

    monkeypatch.setenv("VIDEO_EXPLAINER_COMMAND_TEMPLATE", ECHO_AGENT_COMMAND_TEMPLATE)
    return ECHO_AGENT_COMMAND_TEMPLATE


@pytest.fixture()
def catalog(tmp_path: Path) -> ConfigLoader:
    return ConfigLoader(tmp_path / "catalog").load()
