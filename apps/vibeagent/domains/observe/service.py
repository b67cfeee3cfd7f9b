import logging
import time
from typing import Callable, Iterable, List, Optional, Sequence

from vibeagent.domains.observe.dialogs import detect_system_dialogs
from vibeagent.domains.observe.types import CurrentApp, Element, OcrReading, ScreenContext
from vibeagent.domains.ports import ScreenInspector
from shared.errors import AgentError

logger = logging.getLogger("vibeagent.observe")

DEFAULT_OPAQUE_HINTS = ("webview", "composeview", "canvas", "surfaceview")


def looks_opaque(elements: Iterable[Element], hints: Sequence[str] = DEFAULT_OPAQUE_HINTS) -> bool:
    """True when any element class suggests web or canvas content the tree cannot see into."""
    lowered = [hint.lower() for hint in hints]
    for element in elements:
        role = element.role.lower()
        if role and any(hint in role for hint in lowered):
            return True
    return False


def contexts_identical(
    previous: Optional[ScreenContext],
    current: ScreenContext,
    depth: int = 5,
    window: float = 3.0,
) -> bool:
    if previous is None:
        return False
    if previous.degraded or current.degraded:
        return False
    if current.timestamp - previous.timestamp >= window:
        return False
    if len(previous.elements) != len(current.elements):
        return False
    for before, after in zip(previous.elements[:depth], current.elements[:depth]):
        if before.text != after.text or before.bounds != after.bounds:
            return False
    if previous.ocr_text != current.ocr_text:
        return False
    return previous.current_app.package_name == current.current_app.package_name


class ContextBuilder:
    def __init__(
        self,
        inspector: ScreenInspector,
        opaque_hints: Sequence[str] = DEFAULT_OPAQUE_HINTS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._inspector = inspector
        self._opaque_hints = tuple(opaque_hints)
        self._clock = clock
        self.latest: Optional[ScreenContext] = None

    def capture(self, force_ocr: bool = False) -> ScreenContext:
        try:
            context = self._capture(force_ocr)
        except AgentError as exc:
            logger.warning("screen capture degraded: %s", exc)
            context = self._degraded(str(exc))
        except Exception as exc:
            logger.exception("screen inspector raised an unexpected error")
            context = self._degraded("{}: {}".format(type(exc).__name__, exc))
        self.latest = context
        return context

    def _degraded(self, error: str) -> ScreenContext:
        return ScreenContext(current_app=CurrentApp(), timestamp=self._clock(), error=error)

    def _capture(self, force_ocr: bool) -> ScreenContext:
        current_app = self._inspector.get_current_app()
        elements: List[Element] = list(self._inspector.get_accessibility_tree())
        tree_empty = not elements
        opaque = looks_opaque(elements, self._opaque_hints)
        reading: Optional[OcrReading] = None
        screenshot_available = False
        if tree_empty or opaque or force_ocr:
            reading, screenshot_available = self._read_screen(tree_empty, opaque)
        ocr_text = ""
        blocks = ()
        image_size = None
        if reading is not None:
            ocr_text = (reading.text or "").strip()
            blocks = tuple(reading.blocks)
            if reading.image_width and reading.image_height:
                image_size = (int(reading.image_width), int(reading.image_height))
        logger.debug(
            "captured app=%s elements=%d ocr_chars=%d",
            current_app.package_name or "unknown",
            len(elements),
            len(ocr_text),
        )
        return ScreenContext(
            current_app=current_app,
            elements=tuple(elements),
            ocr_text=ocr_text,
            ocr_blocks=blocks,
            ocr_image_size=image_size,
            screenshot_available=screenshot_available,
            system_dialogs=tuple(detect_system_dialogs(elements)),
            timestamp=self._clock(),
        )

    def _read_screen(self, tree_empty: bool, opaque: bool):
        screenshot = self._inspector.take_screenshot()
        if not screenshot:
            logger.info("OCR needed but no screenshot is obtainable")
            return None, False
        logger.info(
            "accessibility tree is %s, running OCR",
            "empty" if tree_empty else ("possibly web content" if opaque else "complete"),
        )
        try:
            return self._inspector.run_ocr(screenshot), True
        except AgentError as exc:
            logger.warning("OCR failed: %s", exc)
            return None, True
        except Exception:
            logger.exception("OCR raised an unexpected error")
            return None, True
