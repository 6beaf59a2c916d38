"""Deterministic feedback classification into preference tags."""

from __future__ import annotations

import re

PREFERENCE_CLASSIFIER_VERSION = 1

_PREFERENCE_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"slower|slow down", re.IGNORECASE), "prefers_slower_pacing"),
    (re.compile(r"faster|speed up", re.IGNORECASE), "prefers_faster_pacing"),
    (re.compile(r"less text", re.IGNORECASE), "prefers_minimal_text"),
    (re.compile(r"more visual", re.IGNORECASE), "prefers_more_visuals"),
    (re.compile(r"simpler", re.IGNORECASE), "prefers_simpler_explanations"),
    (re.compile(r"more detail", re.IGNORECASE), "prefers_detailed_explanations"),
)

KNOWN_PREFERENCES: tuple[str, ...] = tuple(tag for _, tag in _PREFERENCE_RULES)


def classify_feedback(text: str) -> tuple[str, ...]:
    """Return every preference tag whose rule matches, in rule-table order."""

    return tuple(tag for pattern, tag in _PREFERENCE_RULES if pattern.search(text))
