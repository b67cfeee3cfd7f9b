import logging
import time
from typing import Callable, Optional, Set

from vibeagent.domains.observe.types import ScreenContext
from vibeagent.domains.ports import ActionExecutor
from vibeagent.domains.resolve.matching import match_score
from vibeagent.domains.resolve.service import TargetResolver
from shared.utils.geometry import padded_center

logger = logging.getLogger("vibeagent.agent")

INPUT_CUES = ("search", "search for", "type", "enter", "find", "go", "ok", "submit")
SEARCH_CUES = ("search", "search for")
TOP_AREA_LIMIT = 400


class ProcessedFieldSet:
    """Field ids already tapped for focus on the current screen."""

    def __init__(self) -> None:
        self._fields: Set[str] = set()

    def __contains__(self, field_id: str) -> bool:
        return field_id in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def add(self, field_id: str) -> None:
        self._fields.add(field_id)

    def clear(self) -> None:
        self._fields.clear()


def element_field_id(index: int) -> str:
    return "a11y_{}".format(index)


def ocr_field_id(x: float, y: float) -> str:
    return "ocr_{}_{}".format(int(round(x)), int(round(y)))


class InputFocuser:
    def __init__(
        self,
        executor: ActionExecutor,
        resolver: TargetResolver,
        fields: ProcessedFieldSet,
        settle: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._executor = executor
        self._resolver = resolver
        self.fields = fields
        self.settle = settle
        self._sleep = sleep

    def refocus(self, context: ScreenContext) -> Optional[str]:
        """Tap an input field not yet focused on this screen; return its field id."""
        for element in context.elements:
            if not element.editable or not element.bounds:
                continue
            field_id = element_field_id(element.index)
            if field_id in self.fields:
                continue
            self.fields.add(field_id)
            x, y = padded_center(element.bounds, self._resolver.padding)
            logger.info("refocusing input element %d", element.index)
            return self._tap(field_id, x, y)
        best = None
        best_score = 0.0
        for cue in INPUT_CUES:
            for block in context.ocr_blocks:
                if match_score(block.text, cue) < self._resolver.ocr_threshold:
                    continue
                score = 1.0 if cue in SEARCH_CUES else 0.7
                if block.bounds[1] < TOP_AREA_LIMIT:
                    score += 0.2
                if score > best_score:
                    best, best_score = block, score
        if best is None:
            return None
        x, y = self._resolver.normalize_ocr_point(
            context, *padded_center(best.bounds, self._resolver.padding)
        )
        field_id = ocr_field_id(x, y)
        if field_id in self.fields:
            logger.info("skipping already processed OCR field %s", field_id)
            return None
        self.fields.add(field_id)
        logger.info("refocusing input via OCR '%s' at (%d, %d)", best.text, x, y)
        return self._tap(field_id, x, y)

    def _tap(self, field_id: str, x: float, y: float) -> Optional[str]:
        if not self._executor.tap(x, y):
            return None
        self._sleep(self.settle)
        return field_id
