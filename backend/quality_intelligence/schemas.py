"""
Pydantic data contracts for the Quality Intelligence Engine.
These models describe inputs/outputs shared across risk prediction,
strategy generation, failure classification, and deployment gating flows.
"""

from typing import Dict, List, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

RiskTier = Literal["high", "medium", "low"]
ChangeKind = Literal["added", "modified", "deleted"]
ChangeCategory = Literal["auth", "api", "ui", "database", "config", "other"]
RetryAction = Literal["retry", "fail", "skip"]
RetryReason = Literal["MAX_ATTEMPTS", "FLAKY_PATTERN", "DETERMINISTIC_ERROR"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ChangeDescriptor(_Frozen):
    """One modified artifact reported by the change-detection collaborator."""

    path: str
    change_kind: ChangeKind
    lines_changed: int = Field(ge=0)
    category: ChangeCategory


class RiskAssessment(_Frozen):
    """Normalized oracle output; always bounded regardless of the raw input."""

    tier: RiskTier
    failure_probability: float = Field(ge=0.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = Field(max_length=100)
    suggested_actions: List[str] = Field(max_length=3)


class SuitePrediction(_Frozen):
    """One test suite's risk profile for the current scheduling cycle."""

    suite_name: str = Field(min_length=1)
    assessment: RiskAssessment
    estimated_run_time_seconds: int = Field(ge=10)


class ResourceAllocation(_Frozen):
    """Runners, timeout, and retry budget granted to one suite."""

    runner_count: int = Field(ge=1)
    timeout_seconds: int = Field(gt=0)
    retry_budget: int = Field(ge=0)


class ExecutionStrategy(_Frozen):
    """Tiered execution plan; outer group order is execution order."""

    tier_groups: List[List[str]]
    execution_order: List[str]
    resource_allocation: Dict[str, ResourceAllocation]
    total_estimated_seconds: int = Field(ge=0)


class RetryDecision(_Frozen):
    """Classifier output for a single failure event."""

    action: RetryAction
    reason_code: RetryReason
    reason: str
    confidence: float = Field(ge=0.0, le=1.0)
    backoff_millis: int = Field(ge=0, le=10000)


def _score_field(name: str, camel: str):
    return Field(ge=0.0, le=1.0, allow_inf_nan=False, validation_alias=AliasChoices(name, camel))


class DeploymentScores(_Frozen):
    """The four aggregate run scores consumed by the deployment gate."""

    test_success_rate: float = _score_field("test_success_rate", "testSuccessRate")
    security_score: float = _score_field("security_score", "securityScore")
    performance_score: float = _score_field("performance_score", "performanceScore")
    code_quality: float = _score_field("code_quality", "codeQuality")


class DeploymentVerdict(_Frozen):
    """Approve/hold decision with reasoning, most decisive line first."""

    approved: bool
    confidence_score: int = Field(ge=0, le=100)
    reasons: List[str]


class ArtifactReading(_Frozen):
    """Normalized output of one artifact reader (tests, security, ...)."""

    score: float = Field(ge=0.0, le=1.0)
    critical_issues: List[str] = Field(default_factory=list)


class PipelineMetrics(_Frozen):
    """Aggregate figures describing a generated plan."""

    total_duration_seconds: int
    suite_count: int
    mean_failure_probability: float
    total_retry_budget: int
    runner_utilization: float


class PipelineInsights(_Frozen):
    """Human-readable summary of what the plan saves and prioritizes."""

    time_saving: str
    risk_mitigation: str
    resource_optimization: str
    high_risk_suites: int


class PipelinePlan(_Frozen):
    """Everything produced for one scheduling cycle."""

    predictions: List[SuitePrediction]
    strategy: ExecutionStrategy
    metrics: PipelineMetrics
    insights: PipelineInsights
    recommendations: List[str]
