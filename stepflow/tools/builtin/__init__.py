from stepflow.tools.builtin.files import ListDirectoryTool, ReadFileTool, WriteFileTool
from stepflow.tools.builtin.http import HttpRequestTool
from stepflow.tools.builtin.text import EchoTool, TextTransformerTool

__all__ = [
    "EchoTool",
    "TextTransformerTool",
    "ReadFileTool",
    "WriteFileTool",
    "ListDirectoryTool",
    "HttpRequestTool",
]
