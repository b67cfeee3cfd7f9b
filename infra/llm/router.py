from infra.llm.errors import LlmError
from infra.llm.types import LlmConfig
from infra.llm.providers import anthropic, gemini, openai, openai_compat


_ALIASES = {
    "openai": "openai",
    "openai_compat": "openai_compat",
    "openai-compatible": "openai_compat",
    "openai-compat": "openai_compat",
    "compat": "openai_compat",
    "deepseek": "openai_compat",
    "qwen": "openai_compat",
    "ollama": "openai_compat",
    "anthropic": "anthropic",
    "claude": "anthropic",
    "gemini": "gemini",
    "google": "gemini",
    "vertex": "gemini",
}

_PROVIDERS = {
    "openai": openai,
    "openai_compat": openai_compat,
    "anthropic": anthropic,
    "gemini": gemini,
}


def resolve_provider_name(name) -> str:
    key = (name or "openai").strip().lower() or "openai"
    return _ALIASES.get(key, key)


def _resolve_provider(config: LlmConfig):
    provider = _PROVIDERS.get(resolve_provider_name(config.provider))
    if provider is None:
        raise LlmError("unknown LLM provider: {}".format(config.provider))
    return provider


def call_text(config: LlmConfig, prompt: str) -> str:
    provider = _resolve_provider(config)
    text = provider.call_text(config, prompt)
    if not text or not text.strip():
        raise LlmError("LLM returned an empty completion")
    return text
