"""
LLM Module.

This package contains LLM client abstractions and implementations:
- Base LLM class
- LLM factory
- Provider implementations (OpenAI, Novita)
"""

from code_explorer.libs.llm.base_llm import BaseLLM
from code_explorer.libs.llm.llm_factory import LLMFactory
from code_explorer.libs.llm.openai_llm import NovitaLLM, OpenAILLM, OpenAILLMError

LLMFactory.register("openai", OpenAILLM)
LLMFactory.register("novita", NovitaLLM)

__all__ = [
    "BaseLLM",
    "LLMFactory",
    "NovitaLLM",
    "OpenAILLM",
    "OpenAILLMError",
]
