from typing import List, Optional, Protocol, Union

from vibeagent.domains.observe.types import CurrentApp, Element, OcrReading


class ActionExecutor(Protocol):
    def tap(self, x: float, y: float) -> bool:
        ...

    def long_press(self, x: float, y: float, duration_ms: int = 500) -> bool:
        ...

    def swipe(
        self, x1: float, y1: float, x2: float, y2: float, duration_ms: int = 300
    ) -> bool:
        ...

    def scroll(self, direction: str) -> bool:
        ...

    def type_text(self, text: str, clear_first: bool = False, delay_ms: int = 0) -> bool:
        ...

    def key_event(self, keycode: Union[int, str]) -> bool:
        ...

    def open_app_by_name(self, name: str) -> bool:
        ...

    def back(self) -> bool:
        ...

    def home(self) -> bool:
        ...


class ScreenInspector(Protocol):
    def get_accessibility_tree(self) -> List[Element]:
        ...

    def get_current_app(self) -> CurrentApp:
        ...

    def take_screenshot(self) -> Optional[bytes]:
        ...

    def run_ocr(self, image: bytes) -> OcrReading:
        ...


class DecisionOracle(Protocol):
    def generate(self, prompt: str) -> str:
        ...


class EventSink(Protocol):
    def publish(self, event) -> None:
        ...


class CompletionListener(Protocol):
    def on_automation_complete(self, success: bool, error: Optional[str] = None) -> None:
        ...


class CommandSource(Protocol):
    def next_command(self, task) -> Optional[str]:
        ...
