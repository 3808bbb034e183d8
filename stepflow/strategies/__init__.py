from stepflow.strategies.base import BaseStrategy, RunContext
from stepflow.strategies.plan_execute import PlanExecuteStrategy
from stepflow.strategies.react import ReActStrategy

STRATEGIES = {
    PlanExecuteStrategy.name: PlanExecuteStrategy,
    ReActStrategy.name: ReActStrategy,
}

__all__ = ["BaseStrategy", "RunContext", "PlanExecuteStrategy", "ReActStrategy", "STRATEGIES"]
