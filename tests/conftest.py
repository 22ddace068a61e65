import time
from typing import Any, List, Optional

import pytest

from quality_intelligence.schemas import ChangeDescriptor, RiskAssessment, SuitePrediction


def make_prediction(
    suite_name: str,
    tier: str,
    failure_probability: float,
    run_time: int,
    confidence: float = 0.8,
) -> SuitePrediction:
    return SuitePrediction(
        suite_name=suite_name,
        assessment=RiskAssessment(
            tier=tier,
            failure_probability=failure_probability,
            confidence=confidence,
            reasoning="test fixture",
            suggested_actions=["Run it"],
        ),
        estimated_run_time_seconds=run_time,
    )


def make_change(path: str, category: str, lines: int = 10, kind: str = "modified") -> ChangeDescriptor:
    return ChangeDescriptor(path=path, change_kind=kind, lines_changed=lines, category=category)


class FakeOracle:
    """In-memory oracle that records calls and replays a canned answer."""

    def __init__(
        self,
        answer: Any = None,
        available: bool = True,
        error: Optional[Exception] = None,
        delay_seconds: float = 0.0,
    ) -> None:
        self.answer = answer
        self.available = available
        self.error = error
        self.delay_seconds = delay_seconds
        self.calls: List[tuple] = []

    def is_available(self) -> bool:
        return self.available

    def analyze(self, change_summary: str, affected_files: List[str]) -> Any:
        self.calls.append((change_summary, list(affected_files)))
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def scenario_a_predictions() -> List[SuitePrediction]:
    return [
        make_prediction("Authentication Tests", "high", 0.78, 45),
        make_prediction("API Integration Tests", "high", 0.65, 60),
        make_prediction("UI Component Tests", "medium", 0.34, 90),
    ]


@pytest.fixture
def sample_changes() -> List[ChangeDescriptor]:
    return [
        make_change("src/auth/login.ts", "auth", 23),
        make_change("src/api/users.ts", "api", 12),
        make_change("src/components/UserProfile.tsx", "ui", 8),
        make_change("src/config/database.ts", "config", 5),
    ]
