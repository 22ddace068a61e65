"""
Adapt artifact readers (test report, security scan, performance, lint) into
deployment gate inputs.

Each reader is a zero-argument callable returning a score in [0, 1] plus a
list of critical-issue strings, in any of these shapes: an ArtifactReading,
a mapping with "score" and "critical_issues"/"criticalIssues", a
(score, issues) pair, or a bare number. A reader that is missing, raises,
or returns garbage yields a neutral score and an "analysis incomplete" issue.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from . import config
from .schemas import ArtifactReading, DeploymentScores
from .signal_normalizer import coerce_unit_interval

logger = logging.getLogger(__name__)

ArtifactReader = Callable[[], Any]

GATE_SOURCES: Dict[str, str] = {
    "tests": "test_success_rate",
    "security": "security_score",
    "performance": "performance_score",
    "quality": "code_quality",
}


def incomplete_reading(source: str) -> ArtifactReading:
    return ArtifactReading(
        score=config.NEUTRAL_READER_SCORE,
        critical_issues=[f"{source} analysis incomplete"],
    )


def coerce_reading(source: str, raw: Any) -> ArtifactReading:
    """Normalize one raw reader result; garbage becomes an incomplete reading."""
    if isinstance(raw, ArtifactReading):
        return raw

    issues: Any = []
    if isinstance(raw, Mapping):
        score_value = raw.get("score")
        issues = raw.get("critical_issues", raw.get("criticalIssues", []))
    elif isinstance(raw, tuple) and len(raw) == 2:
        score_value, issues = raw
    else:
        score_value = raw

    score = coerce_unit_interval(score_value)
    if score is None or not isinstance(issues, (list, tuple)):
        logger.warning("Unreadable %s artifact result; marking analysis incomplete", source)
        return incomplete_reading(source)

    cleaned = [str(issue).strip() for issue in issues if issue is not None and str(issue).strip()]
    return ArtifactReading(score=score, critical_issues=cleaned)


def read_artifact(source: str, reader: Optional[ArtifactReader]) -> ArtifactReading:
    if reader is None:
        logger.warning("No %s artifact reader supplied; marking analysis incomplete", source)
        return incomplete_reading(source)
    try:
        return coerce_reading(source, reader())
    except Exception as exc:
        logger.warning("%s artifact reader failed: %s", source, exc)
        return incomplete_reading(source)


def collect_gate_inputs(
    readers: Mapping[str, Optional[ArtifactReader]],
) -> Tuple[DeploymentScores, List[str]]:
    """Run all four readers and merge their scores and critical issues."""
    scores: Dict[str, float] = {}
    critical_issues: List[str] = []
    for source, field_name in GATE_SOURCES.items():
        reading = read_artifact(source, (readers or {}).get(source))
        scores[field_name] = reading.score
        critical_issues.extend(reading.critical_issues)
    return DeploymentScores(**scores), critical_issues
