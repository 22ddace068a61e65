"""
Render a pipeline plan as a GitHub Actions matrix, environment, and steps.
"""

import math
from typing import Any, Dict, List

from . import config
from .schemas import PipelinePlan


def _test_files(suites: List[str]) -> List[str]:
    files = [config.SUITE_TEST_FILES.get(suite, config.FALLBACK_TEST_FILE) for suite in suites]
    return list(dict.fromkeys(files))


def github_actions_strategy(plan: PipelinePlan) -> Dict[str, Any]:
    """
    Build the matrix/env/steps structure for a CI workflow.

    One matrix entry and one step per tier group; only the first group is
    blocking, later groups run with continue-on-error.
    """
    strategy = plan.strategy
    tiers = {p.suite_name: p.assessment.tier for p in plan.predictions}
    timeout_minutes = math.ceil(strategy.total_estimated_seconds / 60) + 5

    matrix_groups: List[Dict[str, Any]] = []
    steps: List[Dict[str, Any]] = []
    for index, group in enumerate(strategy.tier_groups):
        priority = tiers.get(group[0], "low")
        matrix_groups.append(
            {"name": f"group-{index + 1}", "tests": list(group), "priority": priority}
        )
        steps.append(
            {
                "name": f"AI-Optimized Test Group {index + 1}",
                "if": f"matrix.test-group.priority == '{priority}'",
                "run": config.CI_TEST_COMMAND.format(files=" ".join(_test_files(group))),
                "timeout-minutes": timeout_minutes,
                "continue-on-error": index > 0,
            }
        )

    environment = {
        "AI_OPTIMIZATION_ENABLED": "true",
        "AI_RETRY_ENABLED": "true",
        "ESTIMATED_TIME_SAVING": plan.insights.time_saving,
        "HIGH_RISK_SUITES": str(plan.insights.high_risk_suites),
    }

    return {
        "matrix": {"test-group": matrix_groups},
        "env": environment,
        "steps": steps,
    }
