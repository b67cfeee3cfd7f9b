import pytest

from fakes import element
from vibeagent.cli.handlers import build_parser, format_context, resolve_device_id
from vibeagent.domains.observe.types import CurrentApp, ScreenContext
from shared.errors import AdbError


class DevicesOnly:
    def __init__(self, devices):
        self._devices = devices

    def devices(self):
        return self._devices


def test_parser_run_subcommand():
    args = build_parser().parse_args(
        ["--device", "emulator-5554", "run", "--task", "open settings", "--model", "m"]
    )

    assert args.command == "run"
    assert args.task == "open settings"
    assert args.device == "emulator-5554"
    assert args.model == "m"


def test_parser_tap_text_flags():
    args = build_parser().parse_args(["tap-text", "--text", "OK", "--ocr", "--dry-run"])

    assert args.ocr and args.dry_run


def test_resolve_device_id():
    assert resolve_device_id(DevicesOnly([]), "given") == "given"
    assert resolve_device_id(DevicesOnly(["one"]), None) == "one"
    with pytest.raises(AdbError):
        resolve_device_id(DevicesOnly([]), None)
    with pytest.raises(AdbError):
        resolve_device_id(DevicesOnly(["a", "b"]), None)


def test_format_context_lists_app_and_elements():
    context = ScreenContext(
        current_app=CurrentApp("com.android.settings", ".Settings"),
        elements=(element(0, "Wi-Fi"),),
    )

    text = format_context(context)

    assert text.startswith("App: com.android.settings/.Settings")
    assert "Elements (1):" in text
    assert 'text="Wi-Fi"' in text
