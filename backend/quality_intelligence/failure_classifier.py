"""
Decide whether a failing suite or test should be retried.
"""

import logging
from typing import Mapping, Optional

from . import config
from .config import QualityPolicy
from .errors import ContractViolationError
from .flake_scores import as_snapshot
from .schemas import RetryDecision

logger = logging.getLogger(__name__)


class FailureClassifier:
    """Stateless retry/fail classifier over a read-only flake-score snapshot."""

    def __init__(
        self,
        flake_scores: Optional[Mapping[str, float]] = None,
        policy: Optional[QualityPolicy] = None,
    ) -> None:
        self.flake_scores = as_snapshot(flake_scores)
        self.policy = policy or QualityPolicy()

    def classify(
        self, suite_or_test_id: str, error_signature: str, attempt_number: int
    ) -> RetryDecision:
        """
        Classify one failure event.

        - attempt_number at or above the ceiling always fails (MAX_ATTEMPTS).
        - A transient error marker or a flaky history retries with backoff.
        - Anything else is a deterministic failure.
        """
        if not isinstance(suite_or_test_id, str) or not suite_or_test_id.strip():
            raise ContractViolationError("suite_or_test_id must be a non-empty string")
        if isinstance(attempt_number, bool) or not isinstance(attempt_number, int):
            raise ContractViolationError("attempt_number must be an integer")
        if attempt_number < 1:
            raise ContractViolationError(f"attempt_number must be >= 1, got {attempt_number}")

        if attempt_number >= self.policy.max_attempts:
            decision = RetryDecision(
                action="fail",
                reason_code="MAX_ATTEMPTS",
                reason="Maximum retry attempts reached",
                confidence=config.MAX_ATTEMPTS_CONFIDENCE,
                backoff_millis=0,
            )
        else:
            decision = self._classify_signature(suite_or_test_id, error_signature, attempt_number)

        logger.debug(
            "Failure %s (attempt %d): %s/%s",
            suite_or_test_id,
            attempt_number,
            decision.action,
            decision.reason_code,
        )
        return decision

    def _classify_signature(
        self, suite_or_test_id: str, error_signature: str, attempt_number: int
    ) -> RetryDecision:
        flake_score = self.flake_scores.score_for(suite_or_test_id)
        marker = self.transient_marker(error_signature)

        if marker or flake_score > self.policy.flaky_suite_threshold:
            if marker:
                reason = f"Transient error pattern detected ({marker})"
            else:
                reason = f"Flaky test detected (score: {flake_score:.2f})"
            return RetryDecision(
                action="retry",
                reason_code="FLAKY_PATTERN",
                reason=reason,
                confidence=config.RETRY_CONFIDENCE,
                backoff_millis=min(
                    config.BACKOFF_STEP_MILLIS * attempt_number, config.MAX_BACKOFF_MILLIS
                ),
            )

        confidence = min(
            config.DETERMINISTIC_BASE_CONFIDENCE + 0.05 * (attempt_number - 1),
            config.DETERMINISTIC_MAX_CONFIDENCE,
        )
        return RetryDecision(
            action="fail",
            reason_code="DETERMINISTIC_ERROR",
            reason="Error pattern indicates real failure, not flakiness",
            confidence=round(confidence, 4),
            backoff_millis=0,
        )

    def transient_marker(self, error_signature: Optional[str]) -> Optional[str]:
        """Return the first transient marker found in the signature, if any."""
        if not isinstance(error_signature, str):
            return None
        lowered = error_signature.lower()
        for marker in self.policy.transient_error_markers:
            if marker in lowered:
                return marker
        return None
