import json

from infra.http.client import post_json
from infra.http.errors import HttpError, HttpResponseError
from infra.llm.errors import LlmError, LlmResponseError
from infra.llm.types import LlmConfig


DEFAULT_GEMINI_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent?key={api_key}"
)


def _build_url(config: LlmConfig) -> str:
    if config.base_url:
        return config.base_url
    if not config.api_key:
        raise LlmError("LLM API key is not set")
    if not config.model:
        raise LlmError("LLM model is not set")
    return DEFAULT_GEMINI_URL.format(model=config.model, api_key=config.api_key)


def _post_gemini(config: LlmConfig, payload: dict) -> str:
    url = _build_url(config)
    try:
        return post_json(url, payload, headers=None, timeout=config.timeout)
    except HttpResponseError as exc:
        raise LlmResponseError(exc.status, exc.body) from exc
    except HttpError as exc:
        raise LlmError("gemini api error: {}".format(exc)) from exc


def _parse_response(body: str) -> str:
    try:
        data = json.loads(body)
        candidates = data.get("candidates") or []
        if not candidates:
            raise LlmError("gemini response missing candidates")
        content = candidates[0].get("content") or {}
        texts = [
            part.get("text", "")
            for part in content.get("parts") or []
            if isinstance(part, dict) and "text" in part
        ]
    except (ValueError, AttributeError, TypeError) as exc:
        raise LlmError("gemini response is not valid JSON") from exc
    if not texts:
        raise LlmError("gemini response missing text content")
    return "".join(texts)


def call_text(config: LlmConfig, prompt: str) -> str:
    payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
    if config.system_prompt:
        payload["systemInstruction"] = {"parts": [{"text": config.system_prompt}]}
    generation = {"responseMimeType": "application/json"}
    if config.temperature is not None:
        generation["temperature"] = config.temperature
    payload["generationConfig"] = generation
    body = _post_gemini(config, payload)
    return _parse_response(body)
