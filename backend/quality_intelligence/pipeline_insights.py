"""
Summarize a generated plan: aggregate metrics, savings vs. a sequential run,
and follow-up recommendations.
"""

from typing import List, Sequence

from . import config
from .schemas import ExecutionStrategy, PipelineInsights, PipelineMetrics, SuitePrediction


def sequential_baseline_seconds(predictions: Sequence[SuitePrediction]) -> int:
    return sum(p.estimated_run_time_seconds for p in predictions)


def high_risk_count(predictions: Sequence[SuitePrediction]) -> int:
    return sum(1 for p in predictions if p.assessment.tier == "high")


def calculate_metrics(
    predictions: Sequence[SuitePrediction], strategy: ExecutionStrategy
) -> PipelineMetrics:
    allocations = strategy.resource_allocation.values()
    suite_count = len(predictions)
    mean_probability = (
        sum(p.assessment.failure_probability for p in predictions) / suite_count
        if suite_count
        else 0.0
    )
    runners = sum(allocation.runner_count for allocation in allocations)
    return PipelineMetrics(
        total_duration_seconds=strategy.total_estimated_seconds,
        suite_count=suite_count,
        mean_failure_probability=round(mean_probability, 4),
        total_retry_budget=sum(allocation.retry_budget for allocation in allocations),
        runner_utilization=round(runners / suite_count, 4) if suite_count else 0.0,
    )


def generate_insights(
    predictions: Sequence[SuitePrediction], strategy: ExecutionStrategy
) -> PipelineInsights:
    baseline = sequential_baseline_seconds(predictions)
    if baseline:
        saving = (baseline - strategy.total_estimated_seconds) / baseline * 100
    else:
        saving = 0.0
    high_risk = high_risk_count(predictions)
    runners = sum(a.runner_count for a in strategy.resource_allocation.values())
    return PipelineInsights(
        time_saving=f"{saving:.1f}%",
        risk_mitigation=f"{high_risk} high-risk suites identified and prioritized",
        resource_optimization=f"{runners} runners allocated",
        high_risk_suites=high_risk,
    )


def generate_recommendations(
    predictions: Sequence[SuitePrediction], strategy: ExecutionStrategy
) -> List[str]:
    recommendations = [
        f"Execute {high_risk_count(predictions)} high-risk suites first",
        "Use parallel execution for low-risk test suites",
        "Apply intelligent retry logic for flaky tests",
    ]

    if strategy.total_estimated_seconds > config.LONG_PIPELINE_SECONDS:
        recommendations.append("Consider splitting large test suites for better parallelization")

    if any(p.assessment.failure_probability > config.HIGH_PROBABILITY_ALERT for p in predictions):
        recommendations.append(
            "High failure probability detected - consider pre-commit validation"
        )

    return recommendations
