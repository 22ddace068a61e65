from types import SimpleNamespace

import pytest

from quality_intelligence.config import OracleSettings
from quality_intelligence.errors import OracleUnavailableError
from quality_intelligence.oracle_client import OpenAIRiskOracle, build_risk_prompt


class _FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_prompt_truncates_summary_and_lists_files():
    prompt = build_risk_prompt("x" * 5000, ["src/auth/login.ts", "src/api/users.ts"])

    assert "x" * 1000 in prompt
    assert "x" * 1001 not in prompt
    assert "src/auth/login.ts, src/api/users.ts" in prompt
    assert "Authentication Tests" in prompt


def test_reply_is_returned_verbatim():
    completions = _FakeCompletions(content='  {"riskLevel": "low"}\n')
    oracle = OpenAIRiskOracle(OracleSettings(model="gpt-4o-mini", max_tokens=64), client=_client(completions))

    assert oracle.is_available() is True
    assert oracle.analyze("M a.py", ["a.py"]) == '{"riskLevel": "low"}'
    request = completions.requests[0]
    assert request["model"] == "gpt-4o-mini"
    assert request["max_tokens"] == 64


def test_missing_api_key_means_unavailable():
    oracle = OpenAIRiskOracle(OracleSettings(api_key=None))

    assert oracle.is_available() is False
    with pytest.raises(OracleUnavailableError):
        oracle.analyze("M a.py", ["a.py"])


def test_client_error_becomes_oracle_unavailable():
    oracle = OpenAIRiskOracle(OracleSettings(), client=_client(_FakeCompletions(error=RuntimeError("429"))))

    with pytest.raises(OracleUnavailableError):
        oracle.analyze("M a.py", ["a.py"])


def test_empty_reply_is_empty_string():
    oracle = OpenAIRiskOracle(OracleSettings(), client=_client(_FakeCompletions(content=None)))

    assert oracle.analyze("", []) == ""


class TestOracleSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("AI_MODEL_NAME", "gpt-4o-mini")
        monkeypatch.setenv("AI_MAX_TOKENS", "256")
        monkeypatch.setenv("AI_ORACLE_TIMEOUT_SECONDS", "5")

        settings = OracleSettings.from_env()

        assert settings.api_key == "sk-test"
        assert settings.model == "gpt-4o-mini"
        assert settings.max_tokens == 256
        assert settings.timeout_seconds == 5.0

    def test_bad_numbers_fall_back_to_defaults(self, monkeypatch):
        monkeypatch.setenv("AI_MAX_TOKENS", "lots")
        monkeypatch.setenv("AI_ORACLE_TIMEOUT_SECONDS", "-3")

        settings = OracleSettings.from_env()

        assert settings.max_tokens == 512
        assert settings.timeout_seconds == 15.0
