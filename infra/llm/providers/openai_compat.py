from infra.llm.errors import LlmError
from infra.llm.types import LlmConfig
from infra.llm.providers import openai


def call_text(config: LlmConfig, prompt: str) -> str:
    if not config.base_url:
        raise LlmError("LLM_BASE_URL is required for openai_compat providers")
    return openai.call_text(config, prompt)
