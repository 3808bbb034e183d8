from stepflow.tools.base import Tool
from stepflow.tools.langchain_tool import LangChainTool
from stepflow.tools.registry import ToolRegistry, get_tools

__all__ = ["Tool", "ToolRegistry", "LangChainTool", "get_tools"]
