"""
OpenAI-backed risk oracle.

Issues one chat completion per scheduling cycle with a bounded timeout and
no client-side retries. The reply is returned verbatim; callers must pass it
through the signal normalizer before reading any field.
"""

import logging
from typing import Any, List, Optional

from openai import OpenAI

from . import config
from .config import OracleSettings
from .errors import OracleUnavailableError

logger = logging.getLogger(__name__)

_RISK_PROMPT = """You are an expert DevOps engineer analyzing code changes for CI/CD optimization.

CHANGED FILES: {files}

CHANGE SUMMARY:
{summary}

Known test suites: {suites}

Analyze this change and respond with JSON only, in this shape:
{{
  "riskLevel": "high|medium|low",
  "failureProbability": 0.0-1.0,
  "confidence": 0.0-1.0,
  "reasoning": "Brief explanation (max 50 words)",
  "recommendations": ["rec1", "rec2", "rec3"],
  "testSuites": [{{"name": "<suite>", "priority": "high|medium|low", "estimatedRunTime": <seconds>}}]
}}
"""


def build_risk_prompt(change_summary: str, affected_files: List[str]) -> str:
    return _RISK_PROMPT.format(
        files=", ".join(affected_files) or "(none)",
        summary=(change_summary or "")[: config.MAX_DIFF_SUMMARY_CHARS],
        suites=", ".join(config.SUITE_RUN_TIME_SECONDS),
    )


class OpenAIRiskOracle:
    """Risk oracle speaking to an OpenAI-compatible chat completions API."""

    def __init__(self, settings: Optional[OracleSettings] = None, client: Any = None) -> None:
        self.settings = settings or OracleSettings.from_env()
        self._client = client
        if self._client is None and self.settings.api_key:
            self._client = OpenAI(
                api_key=self.settings.api_key,
                timeout=self.settings.timeout_seconds,
                max_retries=0,
            )

    def is_available(self) -> bool:
        return self._client is not None

    def analyze(self, change_summary: str, affected_files: List[str]) -> str:
        if self._client is None:
            raise OracleUnavailableError("Risk oracle is not configured (OPENAI_API_KEY missing)")

        prompt = build_risk_prompt(change_summary, list(affected_files or []))
        try:
            result = self._client.chat.completions.create(
                model=self.settings.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.settings.max_tokens,
                temperature=self.settings.temperature,
                timeout=self.settings.timeout_seconds,
            )
            content = result.choices[0].message.content
        except Exception as exc:
            raise OracleUnavailableError(f"Risk oracle request failed: {exc}") from exc

        logger.debug("Risk oracle (%s) replied with %d chars", self.settings.model, len(content or ""))
        return (content or "").strip()
