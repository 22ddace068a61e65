"""
Read-only snapshot of historical flake scores for one decision cycle.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional

from .signal_normalizer import coerce_unit_interval


class FlakeScoreSnapshot(Mapping):
    """Immutable suite/test id -> flake score in [0, 1]; unknown ids score 0."""

    def __init__(self, scores: Optional[Mapping[str, Any]] = None) -> None:
        cleaned: Dict[str, float] = {}
        for name, value in (scores or {}).items():
            score = coerce_unit_interval(value)
            if not isinstance(name, str) or not name or score is None:
                continue
            cleaned[name] = score
        self._scores = MappingProxyType(cleaned)

    def __getitem__(self, key: str) -> float:
        return self._scores[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._scores)

    def __len__(self) -> int:
        return len(self._scores)

    def __repr__(self) -> str:
        return f"FlakeScoreSnapshot({dict(self._scores)!r})"

    def score_for(self, name: str) -> float:
        return self._scores.get(name, 0.0)


def as_snapshot(scores: Optional[Mapping[str, Any]]) -> FlakeScoreSnapshot:
    if isinstance(scores, FlakeScoreSnapshot):
        return scores
    return FlakeScoreSnapshot(scores)
