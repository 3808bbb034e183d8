from stepflow.functions.base import ModelFunction, PromptFunction
from stepflow.functions.factory import build_functions
from stepflow.functions.registry import FunctionRegistry

__all__ = ["ModelFunction", "PromptFunction", "FunctionRegistry", "build_functions"]
