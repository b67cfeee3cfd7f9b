import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

Bounds = Tuple[float, float, float, float]


@dataclass(frozen=True)
class Element:
    index: int
    text: str = ""
    label: str = ""
    role: str = ""
    bounds: Optional[Bounds] = None
    clickable: bool = False
    scrollable: bool = False
    editable: bool = False
    focused: bool = False
    package: str = ""
    resource_id: str = ""

    @property
    def display_text(self) -> str:
        return self.text or self.label


@dataclass(frozen=True)
class OcrBlock:
    text: str
    bounds: Bounds


@dataclass(frozen=True)
class OcrReading:
    text: str
    blocks: List[OcrBlock] = field(default_factory=list)
    image_width: Optional[int] = None
    image_height: Optional[int] = None


@dataclass(frozen=True)
class CurrentApp:
    package_name: str = ""
    activity: Optional[str] = None


@dataclass(frozen=True)
class SystemDialog:
    element: Element
    dialog_type: str


@dataclass(frozen=True)
class ScreenContext:
    current_app: CurrentApp
    elements: Tuple[Element, ...] = ()
    ocr_text: str = ""
    ocr_blocks: Tuple[OcrBlock, ...] = ()
    ocr_image_size: Optional[Tuple[int, int]] = None
    screenshot_available: bool = False
    system_dialogs: Tuple[SystemDialog, ...] = ()
    timestamp: float = field(default_factory=time.time)
    error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    def screen_extent(self) -> Optional[Tuple[float, float]]:
        """Estimated on-screen size: max right/bottom over element bounds."""
        rights = [element.bounds[2] for element in self.elements if element.bounds]
        bottoms = [element.bounds[3] for element in self.elements if element.bounds]
        if not rights or not bottoms:
            return None
        width, height = max(rights), max(bottoms)
        if width <= 0 or height <= 0:
            return None
        return width, height

    def snapshot(self) -> str:
        lines = ["{}|{}".format(element.text, element.label) for element in self.elements]
        return "\n".join(lines) + "\n---OCR---\n" + self.ocr_text

    def contains_text(self, target: str) -> bool:
        needle = (target or "").strip().lower()
        if not needle:
            return False
        for element in self.elements:
            if needle in element.text.lower() or needle in element.label.lower():
                return True
        return needle in self.ocr_text.lower()
