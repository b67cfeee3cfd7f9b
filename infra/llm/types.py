from dataclasses import dataclass
from typing import Optional


@dataclass
class LlmConfig:
    provider: str = "openai"
    api_key: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[float] = None
    timeout: float = 60.0
    base_url: Optional[str] = None
    anthropic_version: Optional[str] = None
    max_tokens: int = 1024
    system_prompt: Optional[str] = "Return exactly one JSON object and nothing else."
