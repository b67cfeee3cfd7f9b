from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from infra.llm.errors import LlmError
from vibeagent.domains.observe.types import CurrentApp, Element, OcrReading

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


def element(index, text="", bounds=(0, 0, 100, 50), **kwargs) -> Element:
    return Element(index=index, text=text, bounds=tuple(float(v) for v in bounds), **kwargs)


@dataclass
class Screen:
    package: str = "com.example.app"
    elements: Tuple[Element, ...] = ()
    ocr: Optional[OcrReading] = None
    activity: Optional[str] = None

    @property
    def app(self) -> CurrentApp:
        return CurrentApp(package_name=self.package, activity=self.activity)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeInspector:
    def __init__(self, screens=None, screenshot: Optional[bytes] = PNG_BYTES) -> None:
        self.screens: List[Screen] = list(screens or [Screen()])
        self.position = 0
        self.screenshot = screenshot
        self.error: Optional[Exception] = None
        self.ocr_error: Optional[Exception] = None
        self.screenshot_calls = 0
        self.ocr_calls = 0

    @property
    def screen(self) -> Screen:
        return self.screens[self.position]

    def advance(self) -> None:
        if self.position < len(self.screens) - 1:
            self.position += 1

    def get_current_app(self) -> CurrentApp:
        if self.error is not None:
            raise self.error
        return self.screen.app

    def get_accessibility_tree(self) -> List[Element]:
        if self.error is not None:
            raise self.error
        return list(self.screen.elements)

    def take_screenshot(self) -> Optional[bytes]:
        self.screenshot_calls += 1
        return self.screenshot

    def run_ocr(self, image: bytes) -> OcrReading:
        self.ocr_calls += 1
        if self.ocr_error is not None:
            raise self.ocr_error
        return self.screen.ocr or OcrReading(text="")


class FakeExecutor:
    """Records every call; actions named in ``advancing`` move the inspector to its next screen."""

    def __init__(self, inspector: Optional[FakeInspector] = None, advancing=()) -> None:
        self.inspector = inspector
        self.advancing = set(advancing)
        self.calls: List[tuple] = []
        self.failures = {}

    def fail(self, name: str, times: int = 1) -> None:
        self.failures[name] = times

    def _record(self, name: str, *args) -> bool:
        self.calls.append((name,) + args)
        remaining = self.failures.get(name, 0)
        if remaining:
            self.failures[name] = remaining - 1
            return False
        if self.inspector is not None and name in self.advancing:
            self.inspector.advance()
        return True

    def names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def tap(self, x, y):
        return self._record("tap", x, y)

    def long_press(self, x, y, duration_ms=500):
        return self._record("long_press", x, y, duration_ms)

    def swipe(self, x1, y1, x2, y2, duration_ms=300):
        return self._record("swipe", x1, y1, x2, y2, duration_ms)

    def scroll(self, direction):
        return self._record("scroll", direction)

    def type_text(self, text, clear_first=False, delay_ms=0):
        return self._record("type_text", text, clear_first, delay_ms)

    def key_event(self, keycode):
        return self._record("key_event", keycode)

    def open_app_by_name(self, name):
        return self._record("open_app_by_name", name)

    def back(self):
        return self._record("back")

    def home(self):
        return self._record("home")


@dataclass
class ScriptedOracle:
    responses: List[object] = field(default_factory=list)
    prompts: List[str] = field(default_factory=list)

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise LlmError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class RecordingListener:
    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def on_automation_complete(self, success, error=None):
        self.calls.append((success, error))
