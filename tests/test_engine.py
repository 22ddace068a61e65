import json

import pytest

from conftest import FakeOracle
from quality_intelligence import QualityIntelligenceEngine, build_engine_from_env
from quality_intelligence.config import QualityPolicy
from quality_intelligence.schemas import DeploymentScores


@pytest.fixture
def engine():
    return QualityIntelligenceEngine()


class TestPlan:
    def test_heuristic_plan(self, engine, sample_changes):
        plan = engine.plan(sample_changes)

        assert plan.strategy.tier_groups == [
            ["Authentication Tests", "API Integration Tests"],
            ["UI Component Tests"],
            ["Integration Tests"],
        ]
        assert plan.strategy.total_estimated_seconds == 270
        assert plan.metrics.suite_count == 4
        assert plan.metrics.mean_failure_probability == pytest.approx(0.465)
        assert plan.metrics.total_retry_budget == 4
        assert plan.metrics.runner_utilization == pytest.approx(1.5)
        assert plan.insights.time_saving == "14.3%"
        assert plan.insights.high_risk_suites == 2
        assert plan.insights.resource_optimization == "6 runners allocated"
        assert plan.recommendations == [
            "Execute 2 high-risk suites first",
            "Use parallel execution for low-risk test suites",
            "Apply intelligent retry logic for flaky tests",
            "High failure probability detected - consider pre-commit validation",
        ]

    def test_empty_change_set_gives_empty_plan(self, engine):
        plan = engine.plan([])

        assert plan.predictions == []
        assert plan.strategy.tier_groups == []
        assert plan.insights.time_saving == "0.0%"
        assert plan.metrics.runner_utilization == 0.0

    def test_flake_scores_raise_retry_budget(self, sample_changes):
        engine = QualityIntelligenceEngine(flake_scores={"Authentication Tests": 0.5})

        plan = engine.plan(sample_changes)

        assert plan.strategy.resource_allocation["Authentication Tests"].retry_budget == 3
        assert plan.metrics.total_retry_budget == 6

    def test_long_plan_suggests_splitting(self):
        engine = QualityIntelligenceEngine(
            oracle=FakeOracle(
                json.dumps(
                    {
                        "riskLevel": "low",
                        "failureProbability": 0.1,
                        "testSuites": [{"name": "Integration Tests", "estimatedRunTime": 400}],
                    }
                )
            )
        )

        plan = engine.plan([{"path": "app.yaml", "change_kind": "modified", "lines_changed": 2, "category": "config"}])

        assert plan.strategy.total_estimated_seconds == 400
        assert "Consider splitting large test suites for better parallelization" in plan.recommendations


class TestGithubActions:
    def test_matrix_for_heuristic_plan(self, engine, sample_changes):
        workflow = engine.github_actions_strategy(engine.plan(sample_changes))

        groups = workflow["matrix"]["test-group"]
        assert [g["priority"] for g in groups] == ["high", "medium", "low"]
        assert groups[0]["tests"] == ["Authentication Tests", "API Integration Tests"]
        assert workflow["env"]["ESTIMATED_TIME_SAVING"] == "14.3%"
        assert workflow["env"]["HIGH_RISK_SUITES"] == "2"

        first, second, _ = workflow["steps"]
        assert first["run"] == "pytest tests/test_auth.py tests/test_api.py --alluredir=allure-results"
        assert first["timeout-minutes"] == 10
        assert first["continue-on-error"] is False
        assert second["continue-on-error"] is True


class TestFailuresAndDeployment:
    def test_handle_failure_uses_shared_flake_scores(self):
        engine = QualityIntelligenceEngine(flake_scores={"UI Component Tests": 0.45})

        decision = engine.handle_failure("UI Component Tests", "Element not found", 1)

        assert decision.action == "retry"

    def test_assess_deployment(self, engine):
        verdict = engine.assess_deployment(
            DeploymentScores(
                test_success_rate=0.92, security_score=0.95, performance_score=0.88, code_quality=0.87
            )
        )

        assert verdict.approved is True
        assert verdict.confidence_score == 91

    def test_assess_from_readers_holds_on_missing_reader(self, engine):
        verdict = engine.assess_from_readers(
            {"tests": lambda: 1.0, "security": lambda: 1.0, "performance": lambda: 1.0}
        )

        assert verdict.approved is False
        assert verdict.reasons[1] == "1 critical issue(s) unresolved"


def test_build_engine_from_env_without_key(tmp_path, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    history = tmp_path / "history.json"
    history.write_text(
        json.dumps({"tests": {"Authentication Tests": {"runs": [{"status": "failed"}, {"status": "passed"}]}}}),
        encoding="utf-8",
    )

    engine = build_engine_from_env(history)

    assert engine.flake_scores.score_for("Authentication Tests") == 1.0
    assert engine.risk_predictor.predict([]) == []


def test_recorded_test_history_raises_suite_retry_budget(tmp_path, monkeypatch, sample_changes):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    history = tmp_path / "history.json"
    history.write_text(
        json.dumps(
            {
                "tests": {
                    "tests/test_auth.py::test_login": {
                        "runs": [{"status": "passed"}, {"status": "failed"}, {"status": "passed"}]
                    }
                }
            }
        ),
        encoding="utf-8",
    )

    plan = build_engine_from_env(history).plan(sample_changes)

    assert plan.strategy.resource_allocation["Authentication Tests"].retry_budget == 3


def test_policy_reaches_strategy_generator(sample_changes):
    policy = QualityPolicy(high_tier_retry_flake_threshold=0.05)
    engine = QualityIntelligenceEngine(flake_scores={"API Integration Tests": 0.1}, policy=policy)

    plan = engine.plan(sample_changes)

    assert plan.strategy.resource_allocation["API Integration Tests"].retry_budget == 3
