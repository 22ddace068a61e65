"""
Build a tiered execution strategy from suite predictions.
Uses deterministic rules; the result is a plan for the external test runner.
"""

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence

from . import config
from .config import QualityPolicy
from .errors import ContractViolationError
from .flake_scores import as_snapshot
from .schemas import ExecutionStrategy, ResourceAllocation, SuitePrediction

logger = logging.getLogger(__name__)


class StrategyGenerator:
    """Partitions predictions into risk tiers and sizes each suite's resources."""

    def __init__(
        self,
        flake_scores: Optional[Mapping[str, float]] = None,
        policy: Optional[QualityPolicy] = None,
    ) -> None:
        self.flake_scores = as_snapshot(flake_scores)
        self.policy = policy or QualityPolicy()

    def build_strategy(self, predictions: Sequence[SuitePrediction]) -> ExecutionStrategy:
        """
        Compute tier groups, resource allocation and critical-path time.

        - Tiers run sequentially (high, medium, low); suites within a tier run
          in parallel, so each tier costs its slowest suite.
        - Empty tiers are omitted; an empty input yields an empty plan.
        """
        predictions = self._validate(predictions)

        tiers: Dict[str, List[SuitePrediction]] = {tier: [] for tier in config.RISK_TIERS}
        for prediction in predictions:
            tiers[prediction.assessment.tier].append(prediction)

        occupied = [tiers[tier] for tier in config.RISK_TIERS if tiers[tier]]
        tier_groups = [[p.suite_name for p in group] for group in occupied]
        resource_allocation = {p.suite_name: self.allocate(p) for p in predictions}
        total_estimated_seconds = sum(
            max(p.estimated_run_time_seconds for p in group) for group in occupied
        )

        strategy = ExecutionStrategy(
            tier_groups=tier_groups,
            execution_order=[name for group in tier_groups for name in group],
            resource_allocation=resource_allocation,
            total_estimated_seconds=total_estimated_seconds,
        )
        logger.info(
            "Strategy built: %d suites in %d tier groups, estimated %ss",
            len(predictions),
            len(tier_groups),
            total_estimated_seconds,
        )
        return strategy

    def allocate(self, prediction: SuitePrediction) -> ResourceAllocation:
        tier = prediction.assessment.tier
        run_time = prediction.estimated_run_time_seconds
        if tier == "high":
            runner_count = 2
            timeout_seconds = run_time * 2
        else:
            runner_count = 1
            timeout_seconds = math.ceil(run_time * 1.5)
        return ResourceAllocation(
            runner_count=runner_count,
            timeout_seconds=timeout_seconds,
            retry_budget=self.retry_budget(prediction),
        )

    def retry_budget(self, prediction: SuitePrediction) -> int:
        tier = prediction.assessment.tier
        flake_score = self.flake_scores.score_for(prediction.suite_name)
        if tier == "high" and flake_score > self.policy.high_tier_retry_flake_threshold:
            return 3
        if tier == "medium" and flake_score > self.policy.medium_tier_retry_flake_threshold:
            return 2
        return 1

    @staticmethod
    def _validate(predictions: Sequence[SuitePrediction]) -> List[SuitePrediction]:
        validated = list(predictions or [])
        seen = set()
        for prediction in validated:
            if not isinstance(prediction, SuitePrediction):
                raise ContractViolationError(
                    f"Expected SuitePrediction, got {type(prediction).__name__}"
                )
            if prediction.suite_name in seen:
                raise ContractViolationError(
                    f"Duplicate suite name in one scheduling cycle: {prediction.suite_name}"
                )
            seen.add(prediction.suite_name)
        return validated
