import logging
import time
from typing import Callable, Iterable, List, Optional, Tuple, Union

from infra.adb import AdbClient
from infra.ocr import OcrRequest, run_ocr
from infra.uiautomator import DEFAULT_PARSER, UiAutomatorParser
from vibeagent.domains.observe.types import CurrentApp, Element, OcrBlock, OcrReading
from shared.errors import AdbError, InspectionFailure
from shared.text import normalize_text

logger = logging.getLogger("vibeagent.device")

KEYCODE_HOME = 3
KEYCODE_BACK = 4
KEYCODE_MOVE_END = 123
CLEAR_CHAR_COUNT = 64

KNOWN_APPS = {
    "settings": "com.android.settings",
    "chrome": "com.android.chrome",
    "youtube": "com.google.android.youtube",
    "gmail": "com.google.android.gm",
    "maps": "com.google.android.apps.maps",
    "google maps": "com.google.android.apps.maps",
    "play store": "com.android.vending",
    "camera": "com.android.camera",
    "whatsapp": "com.whatsapp",
    "whatsapp business": "com.whatsapp.w4b",
    "spotify": "com.spotify.music",
    "messages": "com.google.android.apps.messaging",
    "phone": "com.google.android.dialer",
    "contacts": "com.google.android.contacts",
    "calculator": "com.google.android.calculator",
    "clock": "com.google.android.deskclock",
    "photos": "com.google.android.apps.photos",
}


def best_package_match(app_name: str, packages: Iterable[str]) -> Optional[str]:
    """Pick the installed package that best matches a human app label."""
    name = normalize_text(app_name)
    if not name:
        return None
    installed = list(packages)
    known = KNOWN_APPS.get(name)
    if known and known in installed:
        return known
    compact = name.replace(" ", "")
    best = None
    best_key: Tuple[int, int] = (0, 0)
    for package in installed:
        segments = package.lower().split(".")
        if compact in segments:
            score = 3
        elif compact in segments[-1]:
            score = 2
        elif compact in package.lower():
            score = 1
        else:
            continue
        key = (score, -len(package))
        if key > best_key:
            best, best_key = package, key
    return best


class AdbActionExecutor:
    def __init__(
        self,
        adb: AdbClient,
        scroll_duration_ms: int = 400,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._adb = adb
        self.scroll_duration_ms = scroll_duration_ms
        self._sleep = sleep
        self._screen_size: Optional[Tuple[int, int]] = None

    def _run(self, label: str, func, *args) -> bool:
        try:
            func(*args)
        except AdbError as exc:
            logger.warning("%s failed: %s", label, exc)
            return False
        return True

    def screen_size(self) -> Tuple[int, int]:
        if self._screen_size is None:
            self._screen_size = self._adb.screen_size()
        return self._screen_size

    def tap(self, x: float, y: float) -> bool:
        return self._run("tap", self._adb.tap, x, y)

    def long_press(self, x: float, y: float, duration_ms: int = 500) -> bool:
        return self._run("long press", self._adb.long_press, x, y, duration_ms)

    def swipe(self, x1: float, y1: float, x2: float, y2: float, duration_ms: int = 300) -> bool:
        return self._run("swipe", self._adb.swipe, x1, y1, x2, y2, duration_ms)

    def scroll(self, direction: str) -> bool:
        try:
            width, height = self.screen_size()
        except AdbError as exc:
            logger.warning("scroll failed: %s", exc)
            return False
        cx, cy = width / 2.0, height / 2.0
        dx, dy = width * 0.3, height * 0.25
        # Content moves opposite to the finger.
        vectors = {
            "down": (cx, cy + dy, cx, cy - dy),
            "up": (cx, cy - dy, cx, cy + dy),
            "right": (cx + dx, cy, cx - dx, cy),
            "left": (cx - dx, cy, cx + dx, cy),
        }
        vector = vectors.get(direction)
        if vector is None:
            logger.warning("unknown scroll direction %s", direction)
            return False
        return self.swipe(*vector, duration_ms=self.scroll_duration_ms)

    def type_text(self, text: str, clear_first: bool = False, delay_ms: int = 0) -> bool:
        try:
            if clear_first:
                self._adb.keyevent(KEYCODE_MOVE_END)
                self._adb.delete_chars(CLEAR_CHAR_COUNT)
            if delay_ms and delay_ms > 0:
                for char in text:
                    self._adb.input_text(char)
                    self._sleep(delay_ms / 1000.0)
            else:
                self._adb.input_text(text)
        except AdbError as exc:
            logger.warning("type failed: %s", exc)
            return False
        return True

    def key_event(self, keycode: Union[int, str]) -> bool:
        return self._run("key event", self._adb.keyevent, keycode)

    def back(self) -> bool:
        return self.key_event(KEYCODE_BACK)

    def home(self) -> bool:
        return self.key_event(KEYCODE_HOME)

    def open_app_by_name(self, name: str) -> bool:
        try:
            package = best_package_match(name, self._adb.list_packages())
        except AdbError as exc:
            logger.warning("listing packages failed: %s", exc)
            return False
        if not package:
            logger.warning("no installed app matches '%s'", name)
            return False
        logger.info("launching %s for '%s'", package, name)
        return self._run("launch", self._adb.start_app, package)


class AdbScreenInspector:
    def __init__(
        self,
        adb: AdbClient,
        parser: UiAutomatorParser = DEFAULT_PARSER,
        ocr_provider: str = "remote",
        ocr_url: Optional[str] = None,
        ocr_timeout: float = 30.0,
        ocr_api_key: Optional[str] = None,
        ocr_lang: str = "en",
        ocr_threshold: float = 0.5,
    ) -> None:
        self._adb = adb
        self._parser = parser
        self.ocr_provider = ocr_provider
        self.ocr_url = ocr_url
        self.ocr_timeout = ocr_timeout
        self.ocr_api_key = ocr_api_key
        self.ocr_lang = ocr_lang
        self.ocr_threshold = ocr_threshold

    def get_accessibility_tree(self) -> List[Element]:
        try:
            xml_text = self._adb.dump_ui()
        except AdbError as exc:
            raise InspectionFailure("ui dump failed: {}".format(exc)) from exc
        elements: List[Element] = []
        for node in self._parser.iter_nodes(xml_text):
            bounds = node.get("bounds")
            if not bounds:
                continue
            text = str(node.get("text") or "")
            label = str(node.get("content_desc") or "")
            interactive = node.get("clickable") or node.get("scrollable") or node.get("editable")
            if not (text or label or interactive):
                continue
            elements.append(
                Element(
                    index=len(elements),
                    text=text,
                    label=label,
                    role=str(node.get("class") or ""),
                    bounds=tuple(float(value) for value in bounds),
                    clickable=bool(node.get("clickable")),
                    scrollable=bool(node.get("scrollable")),
                    editable=bool(node.get("editable")),
                    focused=bool(node.get("focused")),
                    package=str(node.get("package") or ""),
                    resource_id=str(node.get("resource_id") or ""),
                )
            )
        return elements

    def get_current_app(self) -> CurrentApp:
        try:
            package, activity = self._adb.current_focus()
        except AdbError as exc:
            raise InspectionFailure("current app lookup failed: {}".format(exc)) from exc
        return CurrentApp(package_name=package or "", activity=activity)

    def take_screenshot(self) -> Optional[bytes]:
        try:
            return self._adb.screenshot_bytes() or None
        except AdbError as exc:
            logger.warning("screenshot failed: %s", exc)
            return None

    def run_ocr(self, image: bytes) -> OcrReading:
        result = run_ocr(
            OcrRequest(
                png_bytes=image,
                lang=self.ocr_lang,
                threshold=self.ocr_threshold,
                provider=self.ocr_provider,
                remote_url=self.ocr_url,
                remote_timeout=self.ocr_timeout,
                remote_api_key=self.ocr_api_key,
            )
        )
        blocks = [
            OcrBlock(text=block["text"], bounds=tuple(float(value) for value in block["bounds"]))
            for block in result.blocks
        ]
        return OcrReading(
            text=result.text,
            blocks=blocks,
            image_width=result.image_width,
            image_height=result.image_height,
        )
