"""
Configuration for the Quality Intelligence Engine.
Centralizes tunable policies so non-developers can adjust thresholds safely.
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

# ---------------------------------------------------------------------
# Signal normalizer defaults (substituted for absent/invalid oracle fields)
# ---------------------------------------------------------------------

DEFAULT_TIER: str = "medium"
DEFAULT_FAILURE_PROBABILITY: float = 0.3
DEFAULT_CONFIDENCE: float = 0.6
DEFAULT_REASONING: str = "AI analysis unavailable; default risk assumed"
DEFAULT_SUGGESTED_ACTIONS: Tuple[str, ...] = (
    "Monitor test results",
    "Review code changes",
)

MAX_REASONING_CHARS: int = 100
MAX_SUGGESTED_ACTIONS: int = 3
MAX_ORACLE_REPLY_CHARS: int = 20000
MAX_JSON_CANDIDATES: int = 16

RISK_TIERS: Tuple[str, ...] = ("high", "medium", "low")

# ---------------------------------------------------------------------
# Suite catalogue
# ---------------------------------------------------------------------

AUTH_SUITE = "Authentication Tests"
API_SUITE = "API Integration Tests"
UI_SUITE = "UI Component Tests"
DATABASE_SUITE = "Database Tests"
INTEGRATION_SUITE = "Integration Tests"

CATEGORY_SUITES: Dict[str, str] = {
    "auth": AUTH_SUITE,
    "api": API_SUITE,
    "ui": UI_SUITE,
    "database": DATABASE_SUITE,
    "config": INTEGRATION_SUITE,
    "other": INTEGRATION_SUITE,
}

SUITE_RUN_TIME_SECONDS: Dict[str, int] = {
    AUTH_SUITE: 45,
    API_SUITE: 60,
    UI_SUITE: 90,
    DATABASE_SUITE: 30,
    INTEGRATION_SUITE: 120,
}

MIN_RUN_TIME_SECONDS: int = 10

SUITE_TEST_FILES: Dict[str, str] = {
    AUTH_SUITE: "tests/test_auth.py",
    API_SUITE: "tests/test_api.py",
    UI_SUITE: "tests/test_ui.py",
    DATABASE_SUITE: "tests/test_database.py",
    INTEGRATION_SUITE: "tests/test_integration.py",
}
FALLBACK_TEST_FILE: str = "tests/test_smoke.py"
CI_TEST_COMMAND: str = "pytest {files} --alluredir=allure-results"

# ---------------------------------------------------------------------
# Heuristic priors (used when the oracle is unavailable)
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class HeuristicPrior:
    """Category-based risk prior applied without oracle input."""

    tier: str
    failure_probability: float
    confidence: float
    reasoning: str
    recommendation: str


HEURISTIC_PRIORS: Dict[str, HeuristicPrior] = {
    "auth": HeuristicPrior(
        tier="high",
        failure_probability=0.75,
        confidence=0.91,
        reasoning="Authentication module modified ({lines} lines)",
        recommendation="Run auth tests first with increased timeout",
    ),
    "api": HeuristicPrior(
        tier="high",
        failure_probability=0.65,
        confidence=0.87,
        reasoning="API endpoints modified ({lines} lines)",
        recommendation="Test API endpoints with retry logic",
    ),
    "ui": HeuristicPrior(
        tier="medium",
        failure_probability=0.34,
        confidence=0.82,
        reasoning="UI components modified ({lines} lines)",
        recommendation="Standard execution with visual regression checks",
    ),
    "database": HeuristicPrior(
        tier="low",
        failure_probability=0.2,
        confidence=0.85,
        reasoning="Database schema/queries modified ({lines} lines)",
        recommendation="Run database tests in isolation",
    ),
    "other": HeuristicPrior(
        tier="low",
        failure_probability=0.12,
        confidence=0.75,
        reasoning="General code changes ({lines} lines)",
        recommendation="Standard test execution",
    ),
}

# ---------------------------------------------------------------------
# Retry policy (failure classifier + strategy retry budgets)
# ---------------------------------------------------------------------

MAX_ATTEMPTS: int = 3
BACKOFF_STEP_MILLIS: int = 2000
MAX_BACKOFF_MILLIS: int = 10000
TRANSIENT_ERROR_MARKERS: Tuple[str, ...] = (
    "timeout",
    "network",
    "econnreset",
    "connection refused",
)
FLAKY_SUITE_THRESHOLD: float = 0.3
HIGH_TIER_RETRY_FLAKE_THRESHOLD: float = 0.3
MEDIUM_TIER_RETRY_FLAKE_THRESHOLD: float = 0.2

RETRY_CONFIDENCE: float = 0.82
MAX_ATTEMPTS_CONFIDENCE: float = 0.95
DETERMINISTIC_BASE_CONFIDENCE: float = 0.85
DETERMINISTIC_MAX_CONFIDENCE: float = 0.95

# ---------------------------------------------------------------------
# Deployment gate
# ---------------------------------------------------------------------

DEPLOYMENT_THRESHOLD: float = 0.85
NEUTRAL_READER_SCORE: float = 0.5

# ---------------------------------------------------------------------
# Pipeline insights
# ---------------------------------------------------------------------

LONG_PIPELINE_SECONDS: int = 300
HIGH_PROBABILITY_ALERT: float = 0.7

# ---------------------------------------------------------------------
# Oracle settings (environment driven)
# ---------------------------------------------------------------------

DEFAULT_ORACLE_MODEL: str = "gpt-4o"
DEFAULT_ORACLE_MAX_TOKENS: int = 512
DEFAULT_ORACLE_TEMPERATURE: float = 0.0
DEFAULT_ORACLE_TIMEOUT_SECONDS: float = 15.0
MAX_DIFF_SUMMARY_CHARS: int = 1000


def _env_number(name: str, default, cast):
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class OracleSettings:
    """Connection and request bounds for the external analysis oracle."""

    api_key: Optional[str] = None
    model: str = DEFAULT_ORACLE_MODEL
    max_tokens: int = DEFAULT_ORACLE_MAX_TOKENS
    temperature: float = DEFAULT_ORACLE_TEMPERATURE
    timeout_seconds: float = DEFAULT_ORACLE_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "OracleSettings":
        load_dotenv()
        timeout = _env_number("AI_ORACLE_TIMEOUT_SECONDS", DEFAULT_ORACLE_TIMEOUT_SECONDS, float)
        if timeout <= 0:
            timeout = DEFAULT_ORACLE_TIMEOUT_SECONDS
        return cls(
            api_key=os.getenv("OPENAI_API_KEY") or None,
            model=os.getenv("AI_MODEL_NAME", DEFAULT_ORACLE_MODEL),
            max_tokens=_env_number("AI_MAX_TOKENS", DEFAULT_ORACLE_MAX_TOKENS, int),
            temperature=_env_number("AI_TEMPERATURE", DEFAULT_ORACLE_TEMPERATURE, float),
            timeout_seconds=timeout,
        )

# ---------------------------------------------------------------------
# Policy configuration (what gates releases and retries)
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class QualityPolicy:
    """Container for thresholds shared by the classifier, strategy and gate."""

    deployment_threshold: float = DEPLOYMENT_THRESHOLD
    max_attempts: int = MAX_ATTEMPTS
    flaky_suite_threshold: float = FLAKY_SUITE_THRESHOLD
    high_tier_retry_flake_threshold: float = HIGH_TIER_RETRY_FLAKE_THRESHOLD
    medium_tier_retry_flake_threshold: float = MEDIUM_TIER_RETRY_FLAKE_THRESHOLD
    transient_error_markers: Tuple[str, ...] = TRANSIENT_ERROR_MARKERS

# ---------------------------------------------------------------------
# Public exports
# ---------------------------------------------------------------------

__all__ = [
    "DEFAULT_TIER",
    "DEFAULT_FAILURE_PROBABILITY",
    "DEFAULT_CONFIDENCE",
    "DEFAULT_REASONING",
    "DEFAULT_SUGGESTED_ACTIONS",
    "MAX_REASONING_CHARS",
    "MAX_SUGGESTED_ACTIONS",
    "MAX_ORACLE_REPLY_CHARS",
    "MAX_JSON_CANDIDATES",
    "RISK_TIERS",
    "CATEGORY_SUITES",
    "SUITE_RUN_TIME_SECONDS",
    "MIN_RUN_TIME_SECONDS",
    "SUITE_TEST_FILES",
    "FALLBACK_TEST_FILE",
    "CI_TEST_COMMAND",
    "HeuristicPrior",
    "HEURISTIC_PRIORS",
    "MAX_ATTEMPTS",
    "BACKOFF_STEP_MILLIS",
    "MAX_BACKOFF_MILLIS",
    "TRANSIENT_ERROR_MARKERS",
    "FLAKY_SUITE_THRESHOLD",
    "HIGH_TIER_RETRY_FLAKE_THRESHOLD",
    "MEDIUM_TIER_RETRY_FLAKE_THRESHOLD",
    "DEPLOYMENT_THRESHOLD",
    "NEUTRAL_READER_SCORE",
    "LONG_PIPELINE_SECONDS",
    "HIGH_PROBABILITY_ALERT",
    "MAX_DIFF_SUMMARY_CHARS",
    "OracleSettings",
    "QualityPolicy",
]
