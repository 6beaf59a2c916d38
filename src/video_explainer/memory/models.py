"""Learning memory records and their JSON mapping."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(slots=True)
class SuccessRecord:
    component: str
    description: str
    technique: str | None = None
    feedback: str | None = None


@dataclass(slots=True)
class FailureRecord:
    component: str
    issue: str
    iterations_needed: int = 1
    fix_applied: str = ""


@dataclass(slots=True)
class IterationCounts:
    script: int = 1
    scenes: int = 1
    total_feedback_rounds: int = 0


@dataclass(slots=True)
class ProductionRecord:
    """One completed production run of a project."""

    project: str
    timestamp: str
    version: str = ""
    platforms: list[str] = field(default_factory=list)
    successes: list[SuccessRecord] = field(default_factory=list)
    failures: list[FailureRecord] = field(default_factory=list)
    preferences_detected: list[str] = field(default_factory=list)
    iterations: IterationCounts = field(default_factory=IterationCounts)
    source_type: str | None = None
    topic_domain: str | None = None
    duration: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ProductionRecord:
        project = raw.get("project")
        timestamp = raw.get("timestamp")
        if not isinstance(project, str) or not project:
            raise ValueError("production record project must be a non-empty string")
        if not isinstance(timestamp, str) or not timestamp:
            raise ValueError("production record timestamp must be a non-empty string")
        iterations = raw.get("iterations") or {}
        return cls(
            project=project,
            timestamp=timestamp,
            version=str(raw.get("version", "")),
            platforms=[str(item) for item in raw.get("platforms", [])],
            successes=[SuccessRecord(**item) for item in raw.get("successes", [])],
            failures=[FailureRecord(**item) for item in raw.get("failures", [])],
            preferences_detected=[str(item) for item in raw.get("preferences_detected", [])],
            iterations=IterationCounts(**iterations),
            source_type=raw.get("source_type"),
            topic_domain=raw.get("topic_domain"),
            duration=raw.get("duration"),
        )


@dataclass(slots=True)
class TechniqueScore:
    technique: str
    success_rate: float
    usage_count: int


@dataclass(slots=True)
class CommonFailure:
    issue: str
    frequency: int
    common_fix: str


@dataclass(slots=True)
class AggregatedPatterns:
    effective_techniques: list[TechniqueScore] = field(default_factory=list)
    common_failures: list[CommonFailure] = field(default_factory=list)
    user_preferences: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> AggregatedPatterns:
        return cls(
            effective_techniques=[
                TechniqueScore(**item) for item in raw.get("effective_techniques", [])
            ],
            common_failures=[CommonFailure(**item) for item in raw.get("common_failures", [])],
            user_preferences=[str(item) for item in raw.get("user_preferences", [])],
        )


@dataclass(slots=True)
class LearningInstruction:
    instruction: str
    timestamp: str
    source: str = "user"
    applied: bool = False


@dataclass(slots=True)
class LearningSummary:
    total_productions: int
    total_feedback_rounds: int
    top_techniques: list[TechniqueScore]
    user_preferences: list[str]
    recent_learnings: list[str]
