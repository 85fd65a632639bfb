"""
LLM provider adapters (infra). The chat protocol talks to ``ThreadedLLM`` only.

NOTE: Adapters pull in their SDKs at import time. Import them directly from their
module (e.g., ``infra.llm.ollama import OllamaThreadLLM``) so that a deployment only
needs the SDK of the provider it runs.
"""

from infra.llm.base import ProviderConfigError, ProviderError, ThreadedLLM

__all__ = ["ThreadedLLM", "ProviderError", "ProviderConfigError"]
