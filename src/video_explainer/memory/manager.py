"""Learning memory: production history, feedback, learnings and aggregates.

Layout under the memory directory::

    production_history/<timestamp>-<project>.json
    aggregated/patterns.json
    aggregated/learnings.json

Unreadable files fall back to empty state; they are logged and never raised
to the planner.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path

from video_explainer.memory.models import (
    AggregatedPatterns,
    CommonFailure,
    FailureRecord,
    LearningInstruction,
    LearningSummary,
    ProductionRecord,
    SuccessRecord,
    TechniqueScore,
)
from video_explainer.memory.preferences import classify_feedback
from video_explainer.orchestrator.contracts import load_json, write_json
from video_explainer.orchestrator.models import RenderResult

logger = logging.getLogger(__name__)

_SUMMARY_TOP_TECHNIQUES = 5
_SUMMARY_RECENT_LEARNINGS = 5


class MemoryManager:
    """File-backed learning memory shared by all projects."""

    def __init__(
        self,
        memory_dir: Path,
        *,
        aggregate_every: int = 5,
        min_preference_count: int = 2,
    ) -> None:
        self.memory_dir = memory_dir
        self.history_dir = memory_dir / "production_history"
        self.aggregated_dir = memory_dir / "aggregated"
        self._aggregate_every = aggregate_every
        self._min_preference_count = min_preference_count
        self._history: list[ProductionRecord] = []
        self._record_paths: dict[tuple[str, str], Path] = {}
        self._patterns = AggregatedPatterns()
        self._learnings: list[LearningInstruction] = []

    @property
    def history(self) -> list[ProductionRecord]:
        return list(self._history)

    def load(self) -> MemoryManager:
        self.history_dir.mkdir(parents=True, exist_ok=True)
        self.aggregated_dir.mkdir(parents=True, exist_ok=True)
        self._load_history()
        self._patterns = self._load_patterns()
        self._learnings = self._load_learnings()
        return self

    def record_production(self, project_name: str, result: RenderResult) -> ProductionRecord:
        """Append one production record and refresh aggregates periodically."""

        record = ProductionRecord(
            project=project_name,
            timestamp=datetime.now(tz=UTC).isoformat(),
            version=result.version,
            platforms=list(dict.fromkeys(output.platform for output in result.outputs)),
        )
        for output in result.outputs:
            component = f"render:{output.id}-{output.language}"
            if output.success:
                record.successes.append(
                    SuccessRecord(
                        component=component,
                        description=f"Rendered {output.platform} ({output.language}) "
                        f"to {output.path}",
                    ),
                )
            else:
                record.failures.append(
                    FailureRecord(component=component, issue=output.error or "render failed"),
                )

        self._history.append(record)
        self._save_record(record)
        logger.info(
            "Recorded production for %s: version=%s outputs=%d failures=%d",
            project_name,
            result.version,
            len(result.outputs),
            len(record.failures),
        )

        if len(self._history) % self._aggregate_every == 0:
            self.update_aggregated_patterns()
        return record

    def record_feedback(self, project_name: str, feedback: str) -> tuple[str, ...]:
        """Classify feedback and attach it to the project's latest production."""

        detected = classify_feedback(feedback)
        record = next(
            (item for item in reversed(self._history) if item.project == project_name),
            None,
        )
        if record is None:
            logger.info("No production history for %s; feedback not attached", project_name)
            return detected

        record.iterations.total_feedback_rounds += 1
        record.preferences_detected.extend(detected)
        self._save_record(record)
        return detected

    def add_learning(self, instruction: str) -> LearningInstruction:
        learning = LearningInstruction(
            instruction=instruction,
            timestamp=datetime.now(tz=UTC).isoformat(),
        )
        self._learnings.append(learning)
        self._save_learnings()
        logger.info("Learning recorded: %r", instruction)
        return learning

    def forget(self, item: str) -> int:
        """Drop learnings and preferences mentioning ``item``; return how many."""

        needle = item.lower()
        before = len(self._learnings) + len(self._patterns.user_preferences)
        self._learnings = [
            learning for learning in self._learnings if needle not in learning.instruction.lower()
        ]
        self._patterns.user_preferences = [
            preference
            for preference in self._patterns.user_preferences
            if needle not in preference.lower()
        ]
        self._save_learnings()
        self._save_patterns()
        return before - len(self._learnings) - len(self._patterns.user_preferences)

    def learning_summary(self) -> LearningSummary:
        return LearningSummary(
            total_productions=len(self._history),
            total_feedback_rounds=sum(
                record.iterations.total_feedback_rounds for record in self._history
            ),
            top_techniques=self._patterns.effective_techniques[:_SUMMARY_TOP_TECHNIQUES],
            user_preferences=list(self._patterns.user_preferences),
            recent_learnings=[
                learning.instruction
                for learning in self._learnings[-_SUMMARY_RECENT_LEARNINGS:]
            ],
        )

    def patterns(self) -> AggregatedPatterns:
        return self._patterns

    def preferences(self) -> list[str]:
        return list(self._patterns.user_preferences)

    def effectiveness(self) -> list[TechniqueScore]:
        return list(self._patterns.effective_techniques)

    def learnings(self) -> list[LearningInstruction]:
        return list(self._learnings)

    def update_aggregated_patterns(self) -> AggregatedPatterns:
        """Recompute technique scores, common failures and recurring preferences."""

        technique_counts: Counter[str] = Counter()
        failure_counts: Counter[str] = Counter()
        fixes: dict[str, Counter[str]] = {}
        preference_counts: Counter[str] = Counter()
        for record in self._history:
            for success in record.successes:
                if success.technique:
                    technique_counts[success.technique] += 1
            for failure in record.failures:
                failure_counts[failure.issue] += 1
                fixes.setdefault(failure.issue, Counter())[failure.fix_applied] += 1
            preference_counts.update(record.preferences_detected)

        # Only successes carry a technique, so every known technique scores 1.0.
        self._patterns.effective_techniques = sorted(
            (
                TechniqueScore(technique=technique, success_rate=1.0, usage_count=count)
                for technique, count in technique_counts.items()
            ),
            key=lambda score: (-score.success_rate, -score.usage_count, score.technique),
        )
        self._patterns.common_failures = [
            CommonFailure(
                issue=issue,
                frequency=count,
                common_fix=fixes[issue].most_common(1)[0][0],
            )
            for issue, count in failure_counts.most_common()
        ]
        self._patterns.user_preferences = [
            preference
            for preference, count in preference_counts.most_common()
            if count >= self._min_preference_count
        ]
        self._save_patterns()
        return self._patterns

    def _load_history(self) -> None:
        self._history = []
        self._record_paths = {}
        for path in sorted(self.history_dir.glob("*.json")):
            try:
                record = ProductionRecord.from_dict(load_json(path))
            except (OSError, json.JSONDecodeError, TypeError, ValueError) as error:
                logger.warning("Skipping invalid production record %s: %s", path, error)
                continue
            self._history.append(record)
            self._record_paths[(record.project, record.timestamp)] = path
        self._history.sort(key=lambda record: record.timestamp)

    def _load_patterns(self) -> AggregatedPatterns:
        path = self.aggregated_dir / "patterns.json"
        if not path.exists():
            return AggregatedPatterns()
        try:
            return AggregatedPatterns.from_dict(load_json(path))
        except (OSError, json.JSONDecodeError, TypeError, ValueError) as error:
            logger.warning("Ignoring invalid patterns file %s: %s", path, error)
            return AggregatedPatterns()

    def _load_learnings(self) -> list[LearningInstruction]:
        path = self.aggregated_dir / "learnings.json"
        if not path.exists():
            return []
        try:
            raw = load_json(path)
            return [LearningInstruction(**item) for item in raw.get("learnings", [])]
        except (OSError, json.JSONDecodeError, TypeError, ValueError) as error:
            logger.warning("Ignoring invalid learnings file %s: %s", path, error)
            return []

    def _save_record(self, record: ProductionRecord) -> None:
        key = (record.project, record.timestamp)
        path = self._record_paths.get(key)
        if path is None:
            stamp = re.sub(r"[^0-9]", "", record.timestamp)
            path = self.history_dir / f"{stamp}-{record.project}.json"
            self._record_paths[key] = path
        write_json(path, record.to_dict())

    def _save_patterns(self) -> None:
        write_json(self.aggregated_dir / "patterns.json", self._patterns.to_dict())

    def _save_learnings(self) -> None:
        write_json(
            self.aggregated_dir / "learnings.json",
            {"learnings": [asdict(learning) for learning in self._learnings]},
        )
