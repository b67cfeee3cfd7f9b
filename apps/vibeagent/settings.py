import json
import os
from pathlib import Path
from typing import Optional, Tuple

from dotenv import dotenv_values
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from infra.llm import LlmConfig

ROOT_DIR = Path(__file__).resolve().parents[2]
ENV_FILES = (ROOT_DIR / ".env", ROOT_DIR / ".env.example")


def _read_env_layers() -> list:
    """Process environment first, then env files in priority order."""
    layers = [dict(os.environ)]
    for path in ENV_FILES:
        if path.exists():
            layers.append(dotenv_values(path))
    return layers


def _env_alias(name: str) -> AliasChoices:
    return AliasChoices(name, "VIBE_{}".format(name))


class LLMSettings(BaseModel):
    provider: str = Field(default="openai", validation_alias=_env_alias("LLM_PROVIDER"))
    api_key: Optional[str] = Field(default=None, validation_alias=_env_alias("LLM_API_KEY"))
    model: str = Field(default="gpt-4o", validation_alias=_env_alias("LLM_MODEL"))
    temperature: Optional[float] = Field(
        default=None, validation_alias=_env_alias("LLM_TEMPERATURE")
    )
    timeout: float = Field(default=60.0, validation_alias=_env_alias("LLM_TIMEOUT"))
    base_url: Optional[str] = Field(default=None, validation_alias=_env_alias("LLM_BASE_URL"))
    anthropic_version: Optional[str] = Field(
        default="2023-06-01", validation_alias=_env_alias("ANTHROPIC_VERSION")
    )
    max_tokens: int = Field(default=1024, validation_alias=_env_alias("LLM_MAX_TOKENS"))

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("temperature", "api_key", "base_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class OCRSettings(BaseModel):
    provider: str = Field(default="remote", validation_alias=_env_alias("OCR_PROVIDER"))
    remote_url: Optional[str] = Field(
        default="http://127.0.0.1:8001/ocr",
        validation_alias=_env_alias("OCR_REMOTE_URL"),
    )
    timeout: float = Field(default=30.0, validation_alias=_env_alias("OCR_REMOTE_TIMEOUT"))
    api_key: Optional[str] = Field(default=None, validation_alias=_env_alias("OCR_API_KEY"))
    lang: str = Field(default="en", validation_alias=_env_alias("OCR_LANG"))
    threshold: float = Field(default=0.5, validation_alias=_env_alias("OCR_THRESHOLD"))
    opaque_class_hints: Tuple[str, ...] = Field(
        default=("webview", "composeview", "canvas", "surfaceview"),
        validation_alias=_env_alias("OCR_OPAQUE_CLASS_HINTS"),
    )

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("opaque_class_hints", mode="before")
    @classmethod
    def _split_hints(cls, value):
        if isinstance(value, str):
            return tuple(item.strip().lower() for item in value.split(",") if item.strip())
        return tuple(str(item).lower() for item in value)


class LoopSettings(BaseModel):
    unchanged_depth: int = Field(default=5, validation_alias=_env_alias("UNCHANGED_DEPTH"))
    unchanged_window: float = Field(
        default=3.0, validation_alias=_env_alias("UNCHANGED_WINDOW")
    )
    action_wait: float = Field(default=0.8, validation_alias=_env_alias("ACTION_WAIT"))
    scroll_wait: float = Field(default=4.0, validation_alias=_env_alias("SCROLL_WAIT"))
    unchanged_wait: float = Field(default=2.0, validation_alias=_env_alias("UNCHANGED_WAIT"))
    oracle_min_interval: float = Field(
        default=0.8, validation_alias=_env_alias("ORACLE_MIN_INTERVAL")
    )
    history_window: int = Field(default=10, validation_alias=_env_alias("HISTORY_WINDOW"))
    type_delay_ms: int = Field(default=0, validation_alias=_env_alias("TYPE_DELAY_MS"))

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class MatchSettings(BaseModel):
    ocr_threshold: float = Field(default=0.25, validation_alias=_env_alias("MATCH_THRESHOLD"))
    token_weight: float = Field(default=0.7, validation_alias=_env_alias("MATCH_TOKEN_WEIGHT"))
    prefix_weight: float = Field(
        default=0.3, validation_alias=_env_alias("MATCH_PREFIX_WEIGHT")
    )
    fuzzy_word_ratio: float = Field(
        default=0.7, validation_alias=_env_alias("MATCH_FUZZY_WORD_RATIO")
    )
    bounds_tolerance: float = Field(
        default=5.0, validation_alias=_env_alias("MATCH_BOUNDS_TOLERANCE")
    )
    tap_padding: float = Field(default=2.0, validation_alias=_env_alias("MATCH_TAP_PADDING"))

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ScrollSettings(BaseModel):
    max_attempts: int = Field(default=5, validation_alias=_env_alias("SCROLL_MAX_ATTEMPTS"))
    identical_threshold: int = Field(
        default=2, validation_alias=_env_alias("SCROLL_IDENTICAL_THRESHOLD")
    )
    wait: float = Field(default=1.5, validation_alias=_env_alias("SCROLL_ATTEMPT_WAIT"))

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class VoiceSettings(BaseModel):
    completed_retention: float = Field(
        default=60.0, validation_alias=_env_alias("VOICE_COMPLETED_RETENTION")
    )

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


_SECTIONS = {
    "llm": LLMSettings,
    "ocr": OCRSettings,
    "loop": LoopSettings,
    "match": MatchSettings,
    "scroll": ScrollSettings,
    "voice": VoiceSettings,
}


class AgentSettings(BaseSettings):
    adb_path: str = Field(default="adb", validation_alias=_env_alias("ADB_PATH"))
    device_id: Optional[str] = Field(default=None, validation_alias=_env_alias("DEVICE_ID"))
    adb_ime_id: Optional[str] = Field(default=None, validation_alias=_env_alias("ADB_IME_ID"))
    log_level: str = Field(default="INFO", validation_alias=_env_alias("LOG_LEVEL"))
    llm: LLMSettings = LLMSettings()
    ocr: OCRSettings = OCRSettings()
    loop: LoopSettings = LoopSettings()
    match: MatchSettings = MatchSettings()
    scroll: ScrollSettings = ScrollSettings()
    voice: VoiceSettings = VoiceSettings()

    model_config = SettingsConfigDict(
        env_file=[str(path) for path in ENV_FILES],
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("device_id", "adb_ime_id", mode="before")
    @classmethod
    def _strip_optional(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        return (
            env_settings,
            dotenv_settings,
            _section_env_settings,
            init_settings,
            file_secret_settings,
        )


def _section_env_settings(*_args, **_kwargs) -> dict:
    """Collect flat env names (``LLM_MODEL``, ``VIBE_SCROLL_WAIT``...) into sections."""
    layers = _read_env_layers()
    data = {}
    for section, model in _SECTIONS.items():
        values = {}
        for name, field in model.model_fields.items():
            alias = field.validation_alias
            keys = alias.choices if isinstance(alias, AliasChoices) else [name]
            value = _lookup(layers, keys)
            if value is not None:
                values[name] = value
        if values:
            data[section] = values
    return data


def _lookup(layers, keys) -> Optional[str]:
    for layer in layers:
        for key in keys:
            value = layer.get(key)
            if value not in (None, ""):
                return value
    return None


def load_settings(config_path: Optional[str]) -> AgentSettings:
    data = {}
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError("config not found: {}".format(path))
        data = json.loads(path.read_text(encoding="utf-8"))
    return AgentSettings(**data)


def build_llm_config(
    settings: AgentSettings,
    *,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    temperature: Optional[float] = None,
) -> LlmConfig:
    llm_settings = settings.llm
    provider = (llm_settings.provider or "openai").strip().lower()
    resolved_temp = temperature if temperature is not None else llm_settings.temperature
    return LlmConfig(
        provider=provider,
        api_key=api_key or llm_settings.api_key,
        model=model or llm_settings.model or "gpt-4o",
        temperature=resolved_temp,
        timeout=llm_settings.timeout,
        base_url=llm_settings.base_url,
        anthropic_version=llm_settings.anthropic_version,
        max_tokens=llm_settings.max_tokens,
    )
