"""Subprocess-based backend running the external video tool per task."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from pathlib import Path

from video_explainer.orchestrator.backend.base import BackendRunRequest, BackendRunResult
from video_explainer.orchestrator.contracts import read_manifest, read_task_result
from video_explainer.orchestrator.models import AgentTask, TaskOutcome
from video_explainer.orchestrator.workdir import TaskWorkdirManager, artifact_path

logger = logging.getLogger(__name__)

_STDERR_TAIL_CHARS = 400


class BackendRunError(RuntimeError):
    """Backend execution error with retryability hint."""

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient


class CliToolBackend:
    """Run the command template resolved for one task manifest."""

    def run(self, request: BackendRunRequest) -> BackendRunResult:
        manifest = read_manifest(request.manifest_path)
        stdout_path = Path(manifest.output_stdout_path)
        stderr_path = Path(manifest.output_stderr_path)
        stdout_path.parent.mkdir(parents=True, exist_ok=True)
        stderr_path.parent.mkdir(parents=True, exist_ok=True)

        run_args = _build_run_args(
            command_template=request.command_template,
            manifest_path=request.manifest_path,
            task_type=request.task_type,
            project_name=request.project_name,
            tool_path=request.tool_path,
        )

        env = os.environ.copy()
        env["VIDEO_EXPLAINER_TASK_ID"] = manifest.task_id
        env["VIDEO_EXPLAINER_TASK_TYPE"] = manifest.task_type
        env["VIDEO_EXPLAINER_PROJECT"] = manifest.project_name

        try:
            with (
                stdout_path.open("w", encoding="utf-8") as stdout_handle,
                stderr_path.open("w", encoding="utf-8") as stderr_handle,
            ):
                return _run_subprocess(
                    run_args=run_args,
                    env=env,
                    timeout_seconds=request.timeout_seconds,
                    stdout_handle=stdout_handle,
                    stderr_handle=stderr_handle,
                    stdout_path=stdout_path,
                    stderr_path=stderr_path,
                )
        except FileNotFoundError as error:
            raise BackendRunError(
                f"Video tool command not found: {run_args[0]}",
                transient=False,
            ) from error
        except OSError as error:
            raise BackendRunError(
                f"Video tool failed to start: {error}",
                transient=True,
            ) from error


class CliTaskExecutor:
    """Execute production tasks by materializing a manifest and running the tool."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        project_name: str,
        version: str,
        output_root: Path,
        workdir_mgr: TaskWorkdirManager,
        command_template: str,
        timeout_seconds: int,
        tool_path: str | None = None,
        backend: CliToolBackend | None = None,
    ) -> None:
        self.project_name = project_name
        self.version = version
        self.output_root = output_root
        self._workdir_mgr = workdir_mgr
        self._command_template = command_template
        self._timeout_seconds = timeout_seconds
        self._tool_path = tool_path
        self._backend = backend or CliToolBackend()

    def execute(self, task: AgentTask) -> TaskOutcome:
        expected_artifact = artifact_path(self.output_root, task)
        materialized = self._workdir_mgr.materialize(
            task=task,
            project_name=self.project_name,
            version=self.version,
            artifact=expected_artifact,
        )
        request = BackendRunRequest(
            manifest_path=materialized.manifest_path,
            timeout_seconds=self._timeout_seconds,
            command_template=self._command_template,
            task_type=task.type.value,
            project_name=self.project_name,
            tool_path=self._tool_path,
        )

        started = time.monotonic()
        result = self._backend.run(request)
        elapsed = time.monotonic() - started

        if result.timed_out:
            return TaskOutcome(
                success=False,
                error=f"{task.id} timed out after {elapsed:.1f}s",
            )
        if result.exit_code != 0:
            return TaskOutcome(
                success=False,
                error=(
                    f"{task.id} exited with code {result.exit_code}"
                    f"{_stderr_suffix(result.stderr_path)}"
                ),
            )

        tool_result = read_task_result(Path(materialized.manifest.output_result_path))
        if tool_result is not None and not tool_result.succeeded:
            return TaskOutcome(
                success=False,
                error=tool_result.error or f"{task.id} reported status {tool_result.status}",
                metadata=tool_result.metadata,
            )

        logger.info("Task %s completed in %.1fs", task.id, elapsed)
        return TaskOutcome(
            success=True,
            output_path=(
                tool_result.artifact_path
                if tool_result is not None and tool_result.artifact_path
                else str(expected_artifact)
            ),
            metadata=tool_result.metadata if tool_result is not None else {},
        )


def _build_run_args(
    *,
    command_template: str,
    manifest_path: Path,
    task_type: str,
    project_name: str,
    tool_path: str | None,
) -> list[str]:
    stripped = command_template.strip()
    if not stripped:
        raise BackendRunError("Video tool command template is empty.", transient=False)
    if "{task_manifest}" not in stripped:
        raise BackendRunError(
            "Video tool command template must include {task_manifest}.",
            transient=False,
        )
    if "{tool_path}" in stripped and not tool_path:
        raise BackendRunError(
            "Video tool path is not configured. Run `video-explainer config set-tool-path`.",
            transient=False,
        )

    try:
        rendered = stripped.format(
            task_manifest=shlex.quote(str(manifest_path)),
            task_type=shlex.quote(task_type),
            project=shlex.quote(project_name),
            tool_path=shlex.quote(tool_path or ""),
        )
    except KeyError as error:
        raise BackendRunError(
            f"Unsupported command template placeholder: {error}",
            transient=False,
        ) from error

    argv = shlex.split(rendered)
    if not argv:
        raise BackendRunError(
            "Video tool command template rendered empty command.",
            transient=False,
        )
    return argv


def _run_subprocess(  # noqa: PLR0913
    *,
    run_args: list[str],
    env: dict[str, str],
    timeout_seconds: int,
    stdout_handle,
    stderr_handle,
    stdout_path: Path,
    stderr_path: Path,
) -> BackendRunResult:
    process = subprocess.Popen(  # noqa: S603
        run_args,
        env=env,
        stdout=stdout_handle,
        stderr=stderr_handle,
        text=True,
    )
    try:
        returncode = process.wait(timeout=timeout_seconds)
    except subprocess.TimeoutExpired:
        _terminate_process(process)
        return BackendRunResult(
            exit_code=124,
            timed_out=True,
            stdout_path=stdout_path,
            stderr_path=stderr_path,
        )
    return BackendRunResult(
        exit_code=returncode,
        timed_out=False,
        stdout_path=stdout_path,
        stderr_path=stderr_path,
    )


def _terminate_process(process: subprocess.Popen[str]) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=2)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=2)


def _stderr_suffix(stderr_path: Path) -> str:
    try:
        text = stderr_path.read_text("utf-8").strip()
    except OSError:
        return ""
    if not text:
        return ""
    return f": {text[-_STDERR_TAIL_CHARS:]}"
