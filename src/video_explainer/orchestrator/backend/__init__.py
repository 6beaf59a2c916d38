"""Production task executor backends."""

from video_explainer.orchestrator.backend.base import (
    BackendRunRequest,
    BackendRunResult,
    TaskExecutor,
)
from video_explainer.orchestrator.backend.cli_backend import (
    BackendRunError,
    CliTaskExecutor,
    CliToolBackend,
)

__all__ = [
    "BackendRunError",
    "BackendRunRequest",
    "BackendRunResult",
    "CliTaskExecutor",
    "CliToolBackend",
    "TaskExecutor",
]
