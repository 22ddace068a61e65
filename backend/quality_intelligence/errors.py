"""
Error types raised by the Quality Intelligence Engine.

Untrusted oracle output and unavailable collaborators are absorbed with
fallback values; only caller mistakes surface as ContractViolationError.
"""


class QualityIntelligenceError(Exception):
    """Base class for engine errors."""


class ContractViolationError(QualityIntelligenceError, ValueError):
    """A caller passed input that breaks an operation's contract."""


class OracleUnavailableError(QualityIntelligenceError):
    """The analysis oracle is unconfigured, timed out, or failed."""
