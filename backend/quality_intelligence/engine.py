"""
Orchestrates the Quality Intelligence workflow for a build.
Performs risk prediction, strategy generation, failure classification,
and deployment gating.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from . import config
from .config import OracleSettings, QualityPolicy
from .ci_matrix import github_actions_strategy
from .deployment_gate import DeploymentGate, ScoresInput
from .failure_classifier import FailureClassifier
from .flake_scores import as_snapshot
from .gate_inputs import ArtifactReader, collect_gate_inputs
from .oracle_client import OpenAIRiskOracle
from .pipeline_insights import calculate_metrics, generate_insights, generate_recommendations
from .risk_predictor import RiskOracle, RiskPredictor
from .schemas import ChangeDescriptor, DeploymentVerdict, PipelinePlan, RetryDecision
from .strategy_generator import StrategyGenerator

logger = logging.getLogger(__name__)


class QualityIntelligenceEngine:
    """High-level orchestrator for quality intelligence decisions."""

    def __init__(
        self,
        oracle: Optional[RiskOracle] = None,
        flake_scores: Optional[Mapping[str, float]] = None,
        policy: Optional[QualityPolicy] = None,
        oracle_timeout_seconds: float = config.DEFAULT_ORACLE_TIMEOUT_SECONDS,
    ) -> None:
        self.flake_scores = as_snapshot(flake_scores)
        self.risk_predictor = RiskPredictor(oracle=oracle, timeout_seconds=oracle_timeout_seconds)
        self.strategy_generator = StrategyGenerator(self.flake_scores, policy)
        self.failure_classifier = FailureClassifier(self.flake_scores, policy)
        self.deployment_gate = DeploymentGate(policy)

    def plan(self, changes: Sequence[ChangeDescriptor]) -> PipelinePlan:
        """
        Predict suite risk for a change set and derive the execution plan.

        Always returns a complete plan; an empty change set yields an empty one.
        """
        predictions = self.risk_predictor.predict(changes)
        strategy = self.strategy_generator.build_strategy(predictions)
        return PipelinePlan(
            predictions=predictions,
            strategy=strategy,
            metrics=calculate_metrics(predictions, strategy),
            insights=generate_insights(predictions, strategy),
            recommendations=generate_recommendations(predictions, strategy),
        )

    def handle_failure(
        self, suite_or_test_id: str, error_signature: str, attempt_number: int
    ) -> RetryDecision:
        return self.failure_classifier.classify(suite_or_test_id, error_signature, attempt_number)

    def assess_deployment(
        self, scores: ScoresInput, critical_issues: Sequence[str] = ()
    ) -> DeploymentVerdict:
        return self.deployment_gate.decide(scores, critical_issues)

    def assess_from_readers(
        self, readers: Mapping[str, Optional[ArtifactReader]]
    ) -> DeploymentVerdict:
        scores, critical_issues = collect_gate_inputs(readers)
        return self.deployment_gate.decide(scores, critical_issues)

    def github_actions_strategy(self, plan: PipelinePlan) -> Dict[str, Any]:
        return github_actions_strategy(plan)


def build_engine_from_env(history_path: Optional[Path] = None) -> QualityIntelligenceEngine:
    """Wire the engine with the OpenAI oracle and the on-disk run history."""
    from metrics.flake_history import load_flake_scores

    settings = OracleSettings.from_env()
    oracle = OpenAIRiskOracle(settings)
    if not oracle.is_available():
        logger.info("OPENAI_API_KEY not set; risk prediction will use heuristics")
    return QualityIntelligenceEngine(
        oracle=oracle,
        flake_scores=load_flake_scores(history_path),
        oracle_timeout_seconds=settings.timeout_seconds,
    )
