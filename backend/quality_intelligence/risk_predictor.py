"""
Predict per-suite failure risk from a set of change descriptors.

The external oracle is consulted at most once per cycle, with a bounded
timeout. Its answer is sanitized by the signal normalizer; when the oracle is
absent, fails, or says nothing usable, category-based heuristic priors apply.
"""

import logging
import math
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from pydantic import ValidationError

from . import config
from .errors import ContractViolationError
from .schemas import ChangeDescriptor, RiskAssessment, SuitePrediction
from .signal_normalizer import (
    extract_payload,
    is_default_assessment,
    normalize,
    normalize_tier,
)

logger = logging.getLogger(__name__)

_SUITE_HINT_KEYS = ("testSuites", "test_suites", "suites")
_RUN_TIME_KEYS = ("estimatedRunTime", "estimated_run_time", "estimatedRunTimeSeconds")


class RiskOracle(Protocol):
    """
    In-process contract of the external analysis service.

    analyze() runs on a daemon thread; a call that outlives the predictor's
    timeout is abandoned, not cancelled.
    """

    def is_available(self) -> bool:
        ...

    def analyze(self, change_summary: str, affected_files: List[str]) -> Any:
        ...


def describe_changes(changes: Sequence[ChangeDescriptor]) -> str:
    """Render change descriptors as a compact, diff-stat style summary."""
    kind_marks = {"added": "A", "modified": "M", "deleted": "D"}
    lines = [
        f"{kind_marks[change.change_kind]} {change.path} "
        f"({change.lines_changed} lines, {change.category})"
        for change in changes
    ]
    summary = "\n".join(lines)
    return summary[: config.MAX_DIFF_SUMMARY_CHARS]


def suite_for_category(category: str) -> str:
    return config.CATEGORY_SUITES.get(category, config.INTEGRATION_SUITE)


def sort_predictions(predictions: Sequence[SuitePrediction]) -> List[SuitePrediction]:
    """Highest failure probability first; suite name breaks ties."""
    return sorted(
        predictions,
        key=lambda prediction: (
            -prediction.assessment.failure_probability,
            prediction.suite_name,
        ),
    )


def _coerce_run_time(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return max(int(round(value)), config.MIN_RUN_TIME_SECONDS)


def _call_in_daemon_thread(func, *args) -> Future:
    """
    Run func(*args) on a daemon thread and expose the outcome as a Future.

    A call that never returns is abandoned; it cannot block interpreter exit
    the way a ThreadPoolExecutor worker would.
    """
    future: Future = Future()

    def _run() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(func(*args))
        except Exception as exc:
            future.set_exception(exc)

    threading.Thread(target=_run, name="risk-oracle", daemon=True).start()
    return future


def _validate_changes(changes: Any) -> List[ChangeDescriptor]:
    if changes is None:
        return []
    if isinstance(changes, (str, bytes, Mapping)) or not isinstance(changes, Sequence):
        raise ContractViolationError("changes must be a sequence of ChangeDescriptor records")
    validated: List[ChangeDescriptor] = []
    for index, change in enumerate(changes):
        if isinstance(change, ChangeDescriptor):
            validated.append(change)
            continue
        try:
            validated.append(ChangeDescriptor.model_validate(change))
        except ValidationError as exc:
            raise ContractViolationError(f"Invalid change descriptor at index {index}: {exc}") from exc
    return validated


class RiskPredictor:
    """Maps change descriptors to one SuitePrediction per affected suite."""

    def __init__(
        self,
        oracle: Optional[RiskOracle] = None,
        timeout_seconds: float = config.DEFAULT_ORACLE_TIMEOUT_SECONDS,
    ) -> None:
        self.oracle = oracle
        self.timeout_seconds = timeout_seconds

    def predict(self, changes: Sequence[ChangeDescriptor]) -> List[SuitePrediction]:
        """
        Predict failure risk for every suite touched by the change set.

        Output holds one prediction per suite name, sorted by descending
        failure probability. Oracle problems never propagate to the caller.
        """
        validated = _validate_changes(changes)
        if not validated:
            return []

        affected: Dict[str, List[ChangeDescriptor]] = {}
        for change in validated:
            affected.setdefault(suite_for_category(change.category), []).append(change)

        raw = self._consult_oracle(validated)
        assessment = normalize(raw)
        if raw is not None and not is_default_assessment(assessment):
            predictions = self._from_oracle(assessment, raw, affected)
            source = "oracle"
        else:
            predictions = self._from_heuristics(affected)
            source = "heuristic"

        ordered = sort_predictions(predictions)
        logger.info(
            "Generated %d suite predictions from %d changes (%s)",
            len(ordered),
            len(validated),
            source,
        )
        return ordered

    def _oracle_ready(self) -> bool:
        if self.oracle is None:
            return False
        try:
            return bool(self.oracle.is_available())
        except Exception as exc:
            logger.warning("Risk oracle availability check failed: %s", exc)
            return False

    def _consult_oracle(self, changes: List[ChangeDescriptor]) -> Any:
        """Single bounded oracle call; None when unavailable or failed."""
        if not self._oracle_ready():
            logger.debug("Risk oracle not configured; using heuristic analysis")
            return None

        summary = describe_changes(changes)
        affected_files = list(dict.fromkeys(change.path for change in changes))
        future = _call_in_daemon_thread(self.oracle.analyze, summary, affected_files)
        try:
            return future.result(timeout=self.timeout_seconds)
        except FuturesTimeoutError:
            logger.warning(
                "Risk oracle timed out after %.1fs; falling back to heuristic analysis",
                self.timeout_seconds,
            )
        except Exception as exc:
            logger.warning("Risk oracle failed, falling back to heuristic analysis: %s", exc)
        return None

    def _from_oracle(
        self,
        assessment: RiskAssessment,
        raw: Any,
        affected: Dict[str, List[ChangeDescriptor]],
    ) -> List[SuitePrediction]:
        hints = self._suite_hints(raw)
        predictions: List[SuitePrediction] = []
        for suite_name in affected:
            hint = hints.get(suite_name, {})
            suite_assessment = assessment
            tier = normalize_tier(hint.get("priority") or hint.get("tier"))
            if tier and tier != assessment.tier:
                suite_assessment = assessment.model_copy(update={"tier": tier})
            run_time = config.SUITE_RUN_TIME_SECONDS.get(suite_name, config.MIN_RUN_TIME_SECONDS)
            for key in _RUN_TIME_KEYS:
                if key in hint:
                    run_time = _coerce_run_time(hint[key], run_time)
                    break
            predictions.append(
                SuitePrediction(
                    suite_name=suite_name,
                    assessment=suite_assessment,
                    estimated_run_time_seconds=run_time,
                )
            )
        return predictions

    def _suite_hints(self, raw: Any) -> Dict[str, Dict[str, Any]]:
        """Per-suite priority/runtime hints keyed by suite name."""
        try:
            payload = extract_payload(raw) or {}
        except Exception:
            return {}
        entries = None
        for key in _SUITE_HINT_KEYS:
            if isinstance(payload.get(key), list):
                entries = payload[key]
                break
        hints: Dict[str, Dict[str, Any]] = {}
        for entry in entries or []:
            if not isinstance(entry, dict):
                continue
            name = entry.get("name")
            if isinstance(name, str) and name.strip() and name.strip() not in hints:
                hints[name.strip()] = entry
        return hints

    def _from_heuristics(
        self, affected: Dict[str, List[ChangeDescriptor]]
    ) -> List[SuitePrediction]:
        predictions: List[SuitePrediction] = []
        for suite_name, changes in affected.items():
            category = changes[0].category
            prior = config.HEURISTIC_PRIORS.get(category, config.HEURISTIC_PRIORS["other"])
            lines = sum(change.lines_changed for change in changes)
            reasoning = prior.reasoning.format(lines=lines)[: config.MAX_REASONING_CHARS]
            predictions.append(
                SuitePrediction(
                    suite_name=suite_name,
                    assessment=RiskAssessment(
                        tier=prior.tier,
                        failure_probability=prior.failure_probability,
                        confidence=prior.confidence,
                        reasoning=reasoning,
                        suggested_actions=[prior.recommendation],
                    ),
                    estimated_run_time_seconds=config.SUITE_RUN_TIME_SECONDS.get(
                        suite_name, config.MIN_RUN_TIME_SECONDS
                    ),
                )
            )
        return predictions
