import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from vibeagent.domains.observe.types import Bounds, Element, OcrBlock, ScreenContext
from vibeagent.domains.resolve.matching import (
    MIN_OCR_SCORE,
    PREFIX_WEIGHT,
    TOKEN_WEIGHT,
    best_match,
)
from shared.errors import TargetNotFound
from shared.utils.geometry import bounds_close, padded_center

logger = logging.getLogger("vibeagent.resolve")

SOURCE_ACCESSIBILITY = "accessibility"
SOURCE_OCR = "ocr"


@dataclass(frozen=True)
class Resolution:
    x: float
    y: float
    source: str
    element: Optional[Element] = None
    block: Optional[OcrBlock] = None
    score: float = 1.0


def _valid_bounds(bounds) -> bool:
    if not bounds or len(bounds) != 4:
        return False
    left, top, right, bottom = bounds
    return right > left and bottom > top


class TargetResolver:
    def __init__(
        self,
        tolerance: float = 5.0,
        padding: float = 2.0,
        ocr_threshold: float = MIN_OCR_SCORE,
        token_weight: float = TOKEN_WEIGHT,
        prefix_weight: float = PREFIX_WEIGHT,
    ) -> None:
        self.tolerance = tolerance
        self.padding = padding
        self.ocr_threshold = ocr_threshold
        self.token_weight = token_weight
        self.prefix_weight = prefix_weight

    def _element_point(self, element: Element, score: float = 1.0) -> Resolution:
        if not _valid_bounds(element.bounds):
            raise TargetNotFound("element {} has no usable bounds".format(element.index))
        x, y = padded_center(element.bounds, self.padding)
        return Resolution(x=x, y=y, source=SOURCE_ACCESSIBILITY, element=element, score=score)

    def resolve_by_index(self, context: ScreenContext, index: int) -> Resolution:
        if index < 0 or index >= len(context.elements):
            raise TargetNotFound(
                "no element at index {} ({} elements on screen)".format(
                    index, len(context.elements)
                )
            )
        return self._element_point(context.elements[index])

    def resolve_by_bounds(self, context: ScreenContext, bounds: Bounds) -> Resolution:
        if not _valid_bounds(bounds):
            raise TargetNotFound("invalid bounds {}".format(bounds))
        for element in context.elements:
            if element.bounds and bounds_close(element.bounds, bounds, self.tolerance):
                return self._element_point(element)
        x, y = padded_center(bounds, self.padding)
        return Resolution(x=x, y=y, source=SOURCE_ACCESSIBILITY)

    def resolve_by_text(
        self, context: ScreenContext, text: str, source: str = SOURCE_ACCESSIBILITY
    ) -> Resolution:
        target = (text or "").strip()
        if not target:
            raise TargetNotFound("empty target text")
        if source == SOURCE_OCR:
            return self._resolve_ocr_text(context, target)
        needle = target.lower()
        for element in context.elements:
            if needle in element.text.lower() or needle in element.label.lower():
                if _valid_bounds(element.bounds):
                    return self._element_point(element)
        raise TargetNotFound("no element matching '{}'".format(target))

    def _resolve_ocr_text(self, context: ScreenContext, target: str) -> Resolution:
        match = best_match(
            ((block.text, block) for block in context.ocr_blocks),
            target,
            threshold=self.ocr_threshold,
            token_weight=self.token_weight,
            prefix_weight=self.prefix_weight,
        )
        if match is None:
            raise TargetNotFound("no OCR text matching '{}'".format(target))
        block, score = match
        logger.info("OCR match score=%.2f for '%s'", score, target)
        x, y = self.normalize_ocr_point(context, *padded_center(block.bounds, self.padding))
        return Resolution(x=x, y=y, source=SOURCE_OCR, block=block, score=score)

    def resolve_ocr_bounds(self, context: ScreenContext, bounds: Bounds) -> Resolution:
        if not _valid_bounds(bounds):
            raise TargetNotFound("invalid OCR bounds {}".format(bounds))
        x, y = self.normalize_ocr_point(context, *padded_center(bounds, self.padding))
        return Resolution(x=x, y=y, source=SOURCE_OCR)

    def normalize_ocr_point(self, context: ScreenContext, x: float, y: float) -> Tuple[float, float]:
        """Map a point in OCR-image pixels to device UI coordinates when both sizes are known."""
        extent = context.screen_extent()
        if not extent or not context.ocr_image_size:
            return x, y
        ocr_width, ocr_height = context.ocr_image_size
        if ocr_width <= 0 or ocr_height <= 0:
            return x, y
        screen_width, screen_height = extent
        return x * screen_width / ocr_width, y * screen_height / ocr_height
