import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from quality_intelligence import config
from quality_intelligence.flake_scores import FlakeScoreSnapshot

logger = logging.getLogger(__name__)


def get_project_history_path() -> Path:
    """
    Return the path to history.json inside the active project's generated_runs
    directory, with a fallback next to this module if no project is active.
    """
    project_dir = os.environ.get("SMARTAI_PROJECT_DIR")
    if project_dir:
        return Path(project_dir) / "generated_runs" / "src" / "history.json"

    return Path(__file__).resolve().parent / "history.json"


def _statuses(entry: Any) -> List[str]:
    if not isinstance(entry, dict):
        return []
    runs = entry.get("runs")
    if not isinstance(runs, list):
        return []
    return [str(run.get("status") or "unknown") for run in runs if isinstance(run, dict)]


def flake_score_from_runs(statuses: List[str]) -> float:
    """Fraction of consecutive runs whose status flipped; 0 with < 2 runs."""
    if len(statuses) < 2:
        return 0.0
    flips = sum(1 for previous, current in zip(statuses, statuses[1:]) if previous != current)
    return flips / (len(statuses) - 1)


def suite_for_test(test_name: str) -> Optional[str]:
    """
    Map a recorded test name to its suite via the suite's test module stem.

    "tests/test_auth.py::test_login" and "test_auth_login" both belong to
    "Authentication Tests"; names matching no suite module return None.
    """
    tokens = [token for token in re.split(r"[^\w]+", test_name.lower()) if token]
    for suite, test_file in config.SUITE_TEST_FILES.items():
        stem = Path(test_file).stem
        if any(token == stem or token.startswith(stem + "_") for token in tokens):
            return suite
    return None


def suite_scores(test_scores: Dict[str, float]) -> Dict[str, float]:
    """A suite is as flaky as its flakiest recorded test."""
    by_suite: Dict[str, float] = {}
    for name, score in test_scores.items():
        suite = suite_for_test(name)
        if suite is not None:
            by_suite[suite] = max(by_suite.get(suite, 0.0), score)
    return by_suite


def load_flake_scores(history_path: Optional[Path] = None) -> FlakeScoreSnapshot:
    """
    Build a read-only flake snapshot from the run history file.

    A missing or corrupt history yields an empty snapshot; writing history
    is the metrics store's job, not this loader's.
    """
    path = Path(history_path) if history_path else get_project_history_path()
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        logger.warning("No run history at %s; flake scores default to 0", path)
        return FlakeScoreSnapshot()
    except (OSError, ValueError) as exc:
        logger.warning("Could not read run history %s: %s", path, exc)
        return FlakeScoreSnapshot()

    tests = data.get("tests") if isinstance(data, dict) else None
    if not isinstance(tests, dict):
        return FlakeScoreSnapshot()

    scores: Dict[str, float] = {}
    for name, entry in tests.items():
        scores[str(name)] = round(flake_score_from_runs(_statuses(entry)), 4)
    for suite, score in suite_scores(scores).items():
        scores.setdefault(suite, score)
    return FlakeScoreSnapshot(scores)
