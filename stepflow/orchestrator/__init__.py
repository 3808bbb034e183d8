from stepflow.orchestrator.agent import AgentOrchestrator, AgentRunResult
from stepflow.orchestrator.binder import ParameterBinder
from stepflow.orchestrator.executors import FunctionStepExecutor, ToolStepExecutor
from stepflow.orchestrator.plan_executor import PlanExecutor
from stepflow.orchestrator.resolver import ExecutableItem, ExecutableResolver, FunctionItem, ToolItem
from stepflow.orchestrator.session import InMemorySessionStore

__all__ = [
    "ExecutableResolver",
    "ExecutableItem",
    "ToolItem",
    "FunctionItem",
    "ParameterBinder",
    "ToolStepExecutor",
    "FunctionStepExecutor",
    "PlanExecutor",
    "AgentOrchestrator",
    "AgentRunResult",
    "InMemorySessionStore",
]
