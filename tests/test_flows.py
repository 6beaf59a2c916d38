from __future__ import annotations

import json
from pathlib import Path

import allure
import pytest
from click.testing import CliRunner
from prefect.testing.utilities import prefect_test_harness

from video_explainer.main import video_explainer
from video_explainer.orchestrator.flows import render_flow

pytestmark = [
    allure.epic("Production Execution"),
    allure.feature("Render, Script and Scenes Flows"),
]


@pytest.fixture(scope="module", autouse=True)
def prefect_backend():
    with prefect_test_harness():
        yield


def _new_project(runner: CliRunner) -> None:
    created = runner.invoke(
        video_explainer,
        ["new", "demo", "--platform", "youtube", "--platform", "tiktok"],
    )
    assert created.exit_code == 0, created.output


def test_render_produces_every_output_and_records_history(
    tmp_path: Path,
    isolated_env: Path,
    echo_agent: str,
) -> None:
    runner = CliRunner()
    _new_project(runner)

    result = runner.invoke(video_explainer, ["render", "demo", "--version", "v1"])

    assert result.exit_code == 0, result.output
    assert "[FOREGROUND] Script Generation" in result.output
    assert "[BACKGROUND PARALLEL] renders: starting 2 tasks" in result.output
    assert "Render completed for demo: version=v1 outputs=2 failed=0" in result.output
    output_root = tmp_path / "projects" / "demo" / "output" / "v1"
    assert (output_root / "main-en.mp4").is_file()
    assert (output_root / "tiktok-en.mp4").is_file()
    assert (output_root / "scenes-9x16.json").is_file()

    history_files = list((isolated_env / "memory" / "production_history").glob("*-demo.json"))
    assert len(history_files) == 1
    record = json.loads(history_files[0].read_text("utf-8"))
    assert record["version"] == "v1"
    assert record["platforms"] == ["youtube", "tiktok"]


def test_render_background_failure_keeps_exit_code_zero(
    monkeypatch,
    echo_agent: str,
) -> None:
    runner = CliRunner()
    _new_project(runner)
    monkeypatch.setenv("VIDEO_EXPLAINER_ECHO_FAIL_TASKS", "render-tiktok-en")

    result = runner.invoke(video_explainer, ["render", "demo", "--version", "v2"])

    assert result.exit_code == 0, result.output
    assert "failed=1" in result.output
    assert "main (youtube, en): ok" in result.output
    assert "tiktok (tiktok, en): failed" in result.output
    assert "echo agent refused render-tiktok-en" in result.output


def test_render_foreground_failure_exits_non_zero(
    isolated_env: Path,
    monkeypatch,
    echo_agent: str,
) -> None:
    runner = CliRunner()
    _new_project(runner)
    monkeypatch.setenv("VIDEO_EXPLAINER_ECHO_FAIL_TASKS", "script")

    result = runner.invoke(video_explainer, ["render", "demo", "--version", "v3"])

    assert result.exit_code != 0
    assert "Render failed for demo at foreground stage script" in result.output
    assert "[BACKGROUND PARALLEL]" not in result.output
    history_dir = isolated_env / "memory" / "production_history"
    assert list(history_dir.glob("*.json")) == []


def test_script_and_scenes_commands(tmp_path: Path, echo_agent: str) -> None:
    runner = CliRunner()
    _new_project(runner)

    script = runner.invoke(video_explainer, ["script", "demo", "--version", "v4"])
    assert script.exit_code == 0, script.output
    assert "word_count=500 estimated_duration=180s" in script.output
    assert (tmp_path / "projects" / "demo" / "output" / "v4" / "script.json").is_file()

    scenes = runner.invoke(video_explainer, ["scenes", "demo", "--version", "v4"])
    assert scenes.exit_code == 0, scenes.output
    assert "scene_count=20" in scenes.output
    assert "16:9:" in scenes.output
    assert "9:16:" in scenes.output


def test_render_without_tool_path_reports_configuration_error() -> None:
    runner = CliRunner()
    _new_project(runner)

    result = runner.invoke(video_explainer, ["render", "demo", "--version", "v5"])

    assert result.exit_code != 0
    assert "set-tool-path" in result.output


def test_render_flow_exposes_history_parameter() -> None:
    assert "history" in render_flow.parameters.properties
    assert "on_progress" in render_flow.parameters.properties
