from stepflow.llm.factory import build_provider
from stepflow.llm.providers import LangChainProvider, LLMProvider, parse_structured
from stepflow.llm.resilient import ResilientProvider, estimate_tokens

__all__ = [
    "LLMProvider",
    "LangChainProvider",
    "ResilientProvider",
    "build_provider",
    "parse_structured",
    "estimate_tokens",
]
