import json

import pytest

from vibeagent.settings import AgentSettings, build_llm_config, load_settings


def test_prefixed_env_names_override_env_files(monkeypatch):
    monkeypatch.setenv("VIBE_LLM_MODEL", "claude-test")
    monkeypatch.setenv("UNCHANGED_DEPTH", "7")
    monkeypatch.setenv("VIBE_SCROLL_WAIT", "1.5")

    settings = AgentSettings()

    assert settings.llm.model == "claude-test"
    assert settings.loop.unchanged_depth == 7
    assert settings.loop.scroll_wait == 1.5


def test_opaque_hints_are_split_and_lowered(monkeypatch):
    monkeypatch.setenv("OCR_OPAQUE_CLASS_HINTS", "WebView, FlutterView ,")

    settings = AgentSettings()

    assert settings.ocr.opaque_class_hints == ("webview", "flutterview")


def test_blank_device_id_becomes_none(monkeypatch):
    monkeypatch.setenv("DEVICE_ID", "   ")

    assert AgentSettings().device_id is None


def test_load_settings_from_json(tmp_path):
    path = tmp_path / "agent.json"
    path.write_text(
        json.dumps({"loop": {"history_window": 4}, "llm": {"max_tokens": 256}}),
        encoding="utf-8",
    )

    settings = load_settings(str(path))

    assert settings.loop.history_window == 4
    assert settings.llm.max_tokens == 256


def test_load_settings_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "missing.json"))


def test_build_llm_config_overrides(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "Anthropic")
    monkeypatch.setenv("LLM_TEMPERATURE", "0.2")
    settings = AgentSettings()

    config = build_llm_config(settings, model="override-model", api_key="k")

    assert config.provider == "anthropic"
    assert config.model == "override-model"
    assert config.api_key == "k"
    assert config.temperature == 0.2
