import json

from infra.http.client import post_json
from infra.http.errors import HttpError, HttpResponseError
from infra.llm.errors import LlmError, LlmResponseError
from infra.llm.types import LlmConfig


DEFAULT_OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def _post_openai(config: LlmConfig, payload: dict) -> str:
    if not config.api_key:
        raise LlmError("LLM API key is not set")
    url = config.base_url or DEFAULT_OPENAI_URL
    headers = {"Authorization": "Bearer {}".format(config.api_key)}
    try:
        return post_json(url, payload, headers=headers, timeout=config.timeout)
    except HttpResponseError as exc:
        raise LlmResponseError(exc.status, exc.body) from exc
    except HttpError as exc:
        raise LlmError("openai api error: {}".format(exc)) from exc


def _build_messages(config: LlmConfig, prompt: str) -> list:
    messages = []
    if config.system_prompt:
        messages.append({"role": "system", "content": config.system_prompt})
    messages.append({"role": "user", "content": prompt})
    return messages


def _parse_response(body: str) -> str:
    try:
        data = json.loads(body)
        return data["choices"][0]["message"]["content"] or ""
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise LlmError("openai response missing message content") from exc


def call_text(config: LlmConfig, prompt: str) -> str:
    if not config.model:
        raise LlmError("LLM model is not set")
    payload = {
        "model": config.model,
        "messages": _build_messages(config, prompt),
    }
    if config.temperature is not None:
        payload["temperature"] = config.temperature
    body = _post_openai(config, payload)
    return _parse_response(body)
