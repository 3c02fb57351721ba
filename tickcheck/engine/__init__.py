#!filepath: tickcheck/engine/__init__.py
from .evaluator import AssertionEvaluator, Mismatch
from .executor import EngineState, ExecutionEngine, PausedAt, PauseReason
from .results import FailureDetail, Outcome, ResultAggregator, RunResult, TestResult
from .runner import Command, RunSession

__all__ = [
    "AssertionEvaluator", "Mismatch",
    "ExecutionEngine", "EngineState", "PausedAt", "PauseReason",
    "Outcome", "FailureDetail", "TestResult", "RunResult", "ResultAggregator",
    "RunSession", "Command",
]
