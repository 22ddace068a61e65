"""
Turn untrusted oracle output into a strict, bounded RiskAssessment.

The oracle answers with JSON, JSON wrapped in prose or markdown fences, or
plain prose ("Risk level: high", "Failure probability: 0.7", ...). Every
field is read independently; a missing or malformed field falls back to its
own default without invalidating the others. normalize() never raises.
"""

import json
import logging
import math
import re
from typing import Any, Dict, List, Mapping, Optional

from . import config
from .schemas import RiskAssessment

logger = logging.getLogger(__name__)

_TIER_KEYS = ("tier", "riskLevel", "risk_level", "priority")
_PROBABILITY_KEYS = ("failureProbability", "failure_probability", "probability")
_CONFIDENCE_KEYS = ("confidence",)
_REASONING_KEYS = ("reasoning", "reason")
_ACTION_KEYS = ("suggestedActions", "suggested_actions", "recommendations")

_DECODER = json.JSONDecoder()
_PROSE_TIER = re.compile(r"risk\s*level\s*[:=][\s*]*([a-z]+)", re.IGNORECASE)
_PROSE_PROBABILITY = re.compile(
    r"failure\s*probability\s*[:=][\s*]*(-?[\d.]+\s*%?)", re.IGNORECASE
)
_PROSE_CONFIDENCE = re.compile(r"confidence\s*[:=][\s*]*(-?[\d.]+\s*%?)", re.IGNORECASE)
_PROSE_REASONING = re.compile(r"reasoning\s*[:=]\s*(.+)", re.IGNORECASE)
_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.+)$")

DEFAULT_ASSESSMENT = RiskAssessment(
    tier=config.DEFAULT_TIER,
    failure_probability=config.DEFAULT_FAILURE_PROBABILITY,
    confidence=config.DEFAULT_CONFIDENCE,
    reasoning=config.DEFAULT_REASONING,
    suggested_actions=list(config.DEFAULT_SUGGESTED_ACTIONS),
)


def coerce_unit_interval(value: Any) -> Optional[float]:
    """
    Read a probability-like value and clamp it into [0, 1].

    Accepts ints, floats, numeric strings and percent strings ("85%").
    Returns None for booleans, NaN, and anything non-numeric.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        number = value
    elif isinstance(value, int):
        # clamp before float() so huge ints cannot overflow
        number = float(min(max(value, 0), 1))
    elif isinstance(value, str):
        text = value.strip()
        scale = 1.0
        if text.endswith("%"):
            text = text[:-1].strip()
            scale = 100.0
        try:
            number = float(text) / scale
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return min(max(number, 0.0), 1.0)


def normalize_tier(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    tier = value.strip().lower()
    return tier if tier in config.RISK_TIERS else None


def _clean_text(value: str) -> str:
    return " ".join(value.split())


def _read_reasoning(value: Any) -> str:
    if not isinstance(value, str):
        return config.DEFAULT_REASONING
    text = _clean_text(value)
    if not text:
        return config.DEFAULT_REASONING
    return text[: config.MAX_REASONING_CHARS].rstrip()


def _read_actions(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return list(config.DEFAULT_SUGGESTED_ACTIONS)
    actions: List[str] = []
    for entry in value:
        if not isinstance(entry, str):
            continue
        text = _clean_text(entry)
        if text:
            actions.append(text[: config.MAX_REASONING_CHARS].rstrip())
        if len(actions) == config.MAX_SUGGESTED_ACTIONS:
            break
    return actions or list(config.DEFAULT_SUGGESTED_ACTIONS)


def _first(payload: Mapping[str, Any], keys) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def _parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Return the first JSON object in text, whole or embedded in prose.

    Only the first few "{" positions are tried, each with one linear decode.
    """
    start = text.find("{")
    for _ in range(config.MAX_JSON_CANDIDATES):
        if start < 0:
            break
        try:
            value, _end = _DECODER.raw_decode(text, start)
        except (ValueError, RecursionError):
            value = None
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None


def _scrape_prose(text: str) -> Optional[Dict[str, Any]]:
    """Pull labelled fields and bullet recommendations out of free text."""
    payload: Dict[str, Any] = {}

    tier = _PROSE_TIER.search(text)
    if tier:
        payload["tier"] = tier.group(1)
    probability = _PROSE_PROBABILITY.search(text)
    if probability:
        payload["failureProbability"] = probability.group(1)
    confidence = _PROSE_CONFIDENCE.search(text)
    if confidence:
        payload["confidence"] = confidence.group(1)

    labelled = (_PROSE_TIER, _PROSE_PROBABILITY, _PROSE_CONFIDENCE)
    actions: List[str] = []
    for line in text.splitlines():
        reasoning = _PROSE_REASONING.search(line)
        if reasoning and "reasoning" not in payload:
            payload["reasoning"] = reasoning.group(1)
            continue
        bullet = _BULLET.match(line)
        if bullet and not any(pattern.search(line) for pattern in labelled):
            actions.append(bullet.group(1))
    if actions:
        payload["suggestedActions"] = actions

    return payload or None


def extract_payload(raw: Any) -> Optional[Dict[str, Any]]:
    """
    Return the field mapping carried by raw oracle output.

    None means the output is not inspectable at all (null, wrong type,
    empty or unparseable text). Text replies are cut to
    MAX_ORACLE_REPLY_CHARS before any parsing.
    """
    limit = config.MAX_ORACLE_REPLY_CHARS
    if isinstance(raw, RiskAssessment):
        return raw.model_dump()
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw[: limit * 4]).decode("utf-8", errors="ignore")
    if not isinstance(raw, str):
        return None
    text = raw[:limit].strip()
    if not text:
        return None
    parsed = _parse_json_object(text)
    if parsed is not None:
        return parsed
    return _scrape_prose(text)


def normalize(raw: Any) -> RiskAssessment:
    """Sanitize one untrusted analysis result into a RiskAssessment."""
    try:
        payload = extract_payload(raw)
    except Exception as exc:
        logger.warning("Oracle output could not be inspected (%s); using default assessment", exc)
        return DEFAULT_ASSESSMENT
    if payload is None:
        return DEFAULT_ASSESSMENT

    tier = normalize_tier(_first(payload, _TIER_KEYS)) or config.DEFAULT_TIER
    probability = coerce_unit_interval(_first(payload, _PROBABILITY_KEYS))
    confidence = coerce_unit_interval(_first(payload, _CONFIDENCE_KEYS))

    return RiskAssessment(
        tier=tier,
        failure_probability=(
            config.DEFAULT_FAILURE_PROBABILITY if probability is None else probability
        ),
        confidence=config.DEFAULT_CONFIDENCE if confidence is None else confidence,
        reasoning=_read_reasoning(_first(payload, _REASONING_KEYS)),
        suggested_actions=_read_actions(_first(payload, _ACTION_KEYS)),
    )


def is_default_assessment(assessment: RiskAssessment) -> bool:
    return assessment == DEFAULT_ASSESSMENT
