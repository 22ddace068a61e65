"""Risk-driven test scheduling and deployment gating."""

from .deployment_gate import DeploymentGate
from .engine import QualityIntelligenceEngine, build_engine_from_env
from .errors import ContractViolationError, OracleUnavailableError, QualityIntelligenceError
from .failure_classifier import FailureClassifier
from .flake_scores import FlakeScoreSnapshot
from .risk_predictor import RiskPredictor
from .schemas import (
    ChangeDescriptor,
    DeploymentScores,
    DeploymentVerdict,
    ExecutionStrategy,
    PipelinePlan,
    ResourceAllocation,
    RetryDecision,
    RiskAssessment,
    SuitePrediction,
)
from .signal_normalizer import normalize
from .strategy_generator import StrategyGenerator

__all__ = [
    "ChangeDescriptor",
    "ContractViolationError",
    "DeploymentGate",
    "DeploymentScores",
    "DeploymentVerdict",
    "ExecutionStrategy",
    "FailureClassifier",
    "FlakeScoreSnapshot",
    "OracleUnavailableError",
    "PipelinePlan",
    "QualityIntelligenceEngine",
    "QualityIntelligenceError",
    "ResourceAllocation",
    "RetryDecision",
    "RiskAssessment",
    "RiskPredictor",
    "StrategyGenerator",
    "SuitePrediction",
    "build_engine_from_env",
    "normalize",
]
