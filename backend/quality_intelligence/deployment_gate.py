"""
Deployment gating decisions based on aggregated run scores and critical issues.
"""

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from .config import QualityPolicy
from .errors import ContractViolationError
from .schemas import DeploymentScores, DeploymentVerdict

logger = logging.getLogger(__name__)

ScoresInput = Union[DeploymentScores, Mapping[str, Any]]


def _percent(value: float) -> str:
    return f"{value * 100:.1f}%"


def _score_to_int(overall: float) -> int:
    # half-up on a 6-digit rounded value so 0.905 reads 91, not 90
    scaled = Decimal(repr(round(overall * 100, 6)))
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class DeploymentGate:
    """Determines whether a deployment may proceed."""

    def __init__(self, policy: Optional[QualityPolicy] = None) -> None:
        self.policy = policy or QualityPolicy()

    def decide(
        self, scores: ScoresInput, critical_issues: Sequence[str] = ()
    ) -> DeploymentVerdict:
        """
        Evaluate the four run scores and return a verdict.

        - APPROVE only if the average score is above the threshold AND
          no critical issue is outstanding.
        - Otherwise HOLD and recommend manual review.
        """
        scores = self._coerce_scores(scores)
        issues = self._coerce_issues(critical_issues)
        threshold = self.policy.deployment_threshold

        overall = math.fsum(
            (
                scores.test_success_rate,
                scores.security_score,
                scores.performance_score,
                scores.code_quality,
            )
        ) / 4
        approved = overall > threshold and not issues
        confidence_score = _score_to_int(overall)

        if approved:
            reasons = [
                f"Test success rate: {_percent(scores.test_success_rate)}",
                f"Security score: {_percent(scores.security_score)}",
                f"Performance score: {_percent(scores.performance_score)}",
                f"Code quality: {_percent(scores.code_quality)}",
                f"All metrics above threshold: overall {_percent(overall)} "
                f"exceeds {threshold * 100:.0f}% with no critical issues",
            ]
        else:
            reasons = [
                f"Overall score {_percent(overall)} vs {threshold * 100:.0f}% deployment threshold",
                f"{len(issues)} critical issue(s) unresolved",
                "Manual review recommended before deployment",
            ]

        logger.info(
            "Deployment decision: %s (score %d%%, %d critical issues)",
            "APPROVED" if approved else "HOLD",
            confidence_score,
            len(issues),
        )
        return DeploymentVerdict(
            approved=approved,
            confidence_score=confidence_score,
            reasons=reasons,
        )

    @staticmethod
    def _coerce_scores(scores: ScoresInput) -> DeploymentScores:
        if isinstance(scores, DeploymentScores):
            return scores
        if not isinstance(scores, Mapping):
            raise ContractViolationError("scores must be DeploymentScores or a mapping")
        try:
            return DeploymentScores.model_validate(dict(scores))
        except ValidationError as exc:
            raise ContractViolationError(f"Invalid deployment scores: {exc}") from exc

    @staticmethod
    def _coerce_issues(critical_issues: Sequence[str]) -> List[str]:
        if critical_issues is None:
            return []
        if isinstance(critical_issues, (str, bytes)) or not isinstance(critical_issues, Sequence):
            raise ContractViolationError("critical_issues must be a list of strings")
        issues: List[str] = []
        for issue in critical_issues:
            if not isinstance(issue, str):
                raise ContractViolationError("critical_issues must be a list of strings")
            if issue.strip():
                issues.append(issue.strip())
        return issues
