from stepflow.core.contracts.execution import ExecutionResult, ParameterProcessingResult, StepExecutionResult
from stepflow.core.contracts.functions import (
    CompletionCheckResult,
    EvaluationResult,
    ModelContext,
    ModelResult,
    ModelRole,
    ParameterGenerationResult,
    StreamChunk,
)
from stepflow.core.contracts.gateway import RunRequest, RunResponse
from stepflow.core.contracts.plan import Plan, Step
from stepflow.core.contracts.runs import HistoryEntry, PlannedAction, StrategyResult, ThoughtRecord
from stepflow.core.contracts.tools import ToolContract, ToolDescription, ToolResult

__all__ = [
    "Plan",
    "Step",
    "StepExecutionResult",
    "ExecutionResult",
    "ParameterProcessingResult",
    "ModelRole",
    "ModelContext",
    "ModelResult",
    "StreamChunk",
    "ParameterGenerationResult",
    "CompletionCheckResult",
    "EvaluationResult",
    "ToolContract",
    "ToolResult",
    "ToolDescription",
    "HistoryEntry",
    "PlannedAction",
    "ThoughtRecord",
    "StrategyResult",
    "RunRequest",
    "RunResponse",
]
