from __future__ import annotations

import json
from pathlib import Path

import allure

from video_explainer.memory.manager import MemoryManager
from video_explainer.orchestrator.models import OutputResult, RenderResult

pytestmark = [
    allure.epic("Learning Memory"),
    allure.feature("Production History"),
]


def _result(version: str = "v1", *, failed: bool = False) -> RenderResult:
    return RenderResult(
        success=True,
        version=version,
        outputs=[
            OutputResult(id="main", platform="youtube", language="en", path="/out/main-en.mp4",
                         success=True),
            OutputResult(
                id="tiktok",
                platform="tiktok",
                language="en",
                path="",
                success=not failed,
                error="render crashed" if failed else None,
            ),
        ],
    )


def test_record_production_persists_and_reloads(tmp_path: Path) -> None:
    memory = MemoryManager(tmp_path).load()

    record = memory.record_production("demo", _result(failed=True))

    assert record.platforms == ["youtube", "tiktok"]
    assert [item.component for item in record.successes] == ["render:main-en"]
    assert [item.issue for item in record.failures] == ["render crashed"]
    files = list((tmp_path / "production_history").glob("*-demo.json"))
    assert len(files) == 1

    reloaded = MemoryManager(tmp_path).load()
    assert [item.project for item in reloaded.history] == ["demo"]
    assert reloaded.history[0].version == "v1"


def test_feedback_attaches_to_latest_record(tmp_path: Path) -> None:
    memory = MemoryManager(tmp_path).load()
    memory.record_production("demo", _result())

    tags = memory.record_feedback("demo", "Slow down a bit, less text please")

    assert tags == ("prefers_slower_pacing", "prefers_minimal_text")
    reloaded = MemoryManager(tmp_path).load()
    latest = reloaded.history[-1]
    assert latest.iterations.total_feedback_rounds == 1
    assert latest.preferences_detected == ["prefers_slower_pacing", "prefers_minimal_text"]


def test_feedback_without_history_still_classifies(tmp_path: Path) -> None:
    memory = MemoryManager(tmp_path).load()

    assert memory.record_feedback("ghost", "make it faster") == ("prefers_faster_pacing",)
    assert memory.history == []


def test_aggregation_promotes_recurring_preferences(tmp_path: Path) -> None:
    memory = MemoryManager(tmp_path, aggregate_every=1, min_preference_count=2).load()
    memory.record_production("demo", _result("v1", failed=True))
    memory.record_feedback("demo", "slower please")
    memory.record_production("other", _result("v2", failed=True))
    memory.record_feedback("other", "still needs to be slower, more visuals")

    patterns = memory.update_aggregated_patterns()

    assert patterns.user_preferences == ["prefers_slower_pacing"]
    assert patterns.common_failures[0].issue == "render crashed"
    assert patterns.common_failures[0].frequency == 2
    assert memory.preferences() == ["prefers_slower_pacing"]
    stored = json.loads((tmp_path / "aggregated" / "patterns.json").read_text("utf-8"))
    assert stored["user_preferences"] == ["prefers_slower_pacing"]


def test_learnings_can_be_added_and_forgotten(tmp_path: Path) -> None:
    memory = MemoryManager(tmp_path).load()
    memory.add_learning("Always show the formula before the example")
    memory.add_learning("Use dark backgrounds")

    removed = memory.forget("FORMULA")

    assert removed == 1
    reloaded = MemoryManager(tmp_path).load()
    assert [item.instruction for item in reloaded.learnings()] == ["Use dark backgrounds"]
    summary = reloaded.learning_summary()
    assert summary.recent_learnings == ["Use dark backgrounds"]
    assert summary.total_productions == 0


def test_malformed_files_fall_back_to_empty_state(tmp_path: Path) -> None:
    history_dir = tmp_path / "production_history"
    aggregated_dir = tmp_path / "aggregated"
    history_dir.mkdir(parents=True)
    aggregated_dir.mkdir(parents=True)
    (history_dir / "001-broken.json").write_text("{not json", "utf-8")
    (history_dir / "002-nameless.json").write_text(json.dumps({"timestamp": "x"}), "utf-8")
    (aggregated_dir / "patterns.json").write_text("[]", "utf-8")
    (aggregated_dir / "learnings.json").write_text("{oops", "utf-8")

    memory = MemoryManager(tmp_path).load()

    assert memory.history == []
    assert memory.preferences() == []
    assert memory.learnings() == []


def test_effectiveness_ranks_techniques_by_usage(tmp_path: Path) -> None:
    history_dir = tmp_path / "production_history"
    history_dir.mkdir(parents=True)
    techniques = [["progressive_reveal", "split_screen"], ["progressive_reveal"]]
    for index, used in enumerate(techniques, start=1):
        record = {
            "project": f"demo{index}",
            "timestamp": f"2026-01-0{index}T00:00:00",
            "successes": [
                {"component": "scene", "description": "worked", "technique": technique}
                for technique in used
            ],
        }
        (history_dir / f"00{index}-demo{index}.json").write_text(json.dumps(record), "utf-8")
    memory = MemoryManager(tmp_path).load()
    assert memory.effectiveness() == []

    memory.update_aggregated_patterns()

    assert [
        (score.technique, score.usage_count, score.success_rate) for score in memory.effectiveness()
    ] == [("progressive_reveal", 2, 1.0), ("split_screen", 1, 1.0)]
    reloaded = MemoryManager(tmp_path).load()
    assert reloaded.effectiveness()[0].technique == "progressive_reveal"
