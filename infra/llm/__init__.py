from infra.llm.errors import LlmError, LlmResponseError
from infra.llm.router import call_text as call_llm_text
from infra.llm.router import resolve_provider_name
from infra.llm.types import LlmConfig

__all__ = [
    "LlmConfig",
    "LlmError",
    "LlmResponseError",
    "call_llm_text",
    "resolve_provider_name",
]
