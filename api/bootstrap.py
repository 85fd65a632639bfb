"""
Process-wide LLM provider. Built lazily on first use and reused for every turn.
Misconfiguration surfaces here as ProviderConfigError, not later as a failed call.
"""

from typing import Optional

from api.config import Settings, get_settings
from api.utils.logger import configure_logging
from infra.llm.base import ProviderConfigError, ThreadedLLM

logger = configure_logging()

_provider: Optional[ThreadedLLM] = None


def build_llm_provider(settings: Settings) -> ThreadedLLM:
    name = (settings.llm_provider or "").strip().lower()
    if name == "openai":
        from infra.llm.openai_assistants import OpenAIAssistantsLLM

        return OpenAIAssistantsLLM(api_key=settings.openai_api_key)
    if name == "ollama":
        from infra.llm.ollama import OllamaThreadLLM

        return OllamaThreadLLM(
            model=settings.ollama_model,
            base_url=settings.ollama_base_url,
            max_threads=settings.ollama_max_threads,
        )
    raise ProviderConfigError(f"Unknown LLM provider: {settings.llm_provider!r}")


def get_llm_provider() -> ThreadedLLM:
    global _provider
    if _provider is None:
        settings = get_settings()
        _provider = build_llm_provider(settings)
        logger.info("llm provider ready provider=%s", settings.llm_provider)
    return _provider


def reset_llm_provider() -> None:
    global _provider
    _provider = None
