import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from vibeagent.domains.observe.service import ContextBuilder
from vibeagent.domains.observe.types import ScreenContext
from vibeagent.domains.ports import ActionExecutor
from vibeagent.domains.resolve.matching import FUZZY_WORD_RATIO, fuzzy_words_present

logger = logging.getLogger("vibeagent.scroll")

REVERSE_DIRECTIONS = {"up": "down", "down": "up", "left": "right", "right": "left"}


def reverse_direction(direction: str) -> str:
    return REVERSE_DIRECTIONS.get(direction, direction)


@dataclass(frozen=True)
class ScrollResult:
    found: bool
    direction: str
    attempts: int
    reversed: bool
    context: Optional[ScreenContext] = None


class DynamicScroller:
    def __init__(
        self,
        builder: ContextBuilder,
        executor: ActionExecutor,
        max_attempts: int = 5,
        identical_threshold: int = 2,
        wait: float = 1.5,
        fuzzy_ratio: float = FUZZY_WORD_RATIO,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._builder = builder
        self._executor = executor
        self.max_attempts = max_attempts
        self.identical_threshold = identical_threshold
        self.wait = wait
        self.fuzzy_ratio = fuzzy_ratio
        self._sleep = sleep

    def target_found(self, context: ScreenContext, target: str) -> bool:
        if context.contains_text(target):
            return True
        return fuzzy_words_present(target, context.ocr_text, self.fuzzy_ratio)

    def scroll(
        self,
        direction: str,
        target_text: str,
        max_attempts: Optional[int] = None,
        identical_threshold: Optional[int] = None,
        wait: Optional[float] = None,
        context: Optional[ScreenContext] = None,
    ) -> ScrollResult:
        """Scroll toward ``target_text`` until it shows up or the surface stops changing.

        Reverses direction at most once per call, and the reversed pass only gets
        the attempts the first pass left unused.
        """
        return self._search(
            direction,
            target_text,
            max(0, max_attempts if max_attempts is not None else self.max_attempts),
            max(1, identical_threshold or self.identical_threshold),
            self.wait if wait is None else wait,
            context,
            allow_reverse=True,
        )

    def _search(self, direction, target, budget, threshold, wait, context, allow_reverse):
        if context is None:
            context = self._builder.capture()
        if context.contains_text(target):
            logger.info("'%s' already visible, no scroll needed", target)
            return ScrollResult(True, direction, 0, not allow_reverse, context)
        previous = None
        identical = 0
        attempts = 0
        while attempts < budget:
            snapshot = context.snapshot()
            if snapshot == previous:
                identical += 1
                if identical >= threshold:
                    remaining = budget - attempts
                    if allow_reverse and remaining > 0:
                        reverse = reverse_direction(direction)
                        logger.info(
                            "end of content scrolling %s, reversing to %s", direction, reverse
                        )
                        result = self._search(
                            reverse, target, remaining, threshold, wait, context, False
                        )
                        return ScrollResult(
                            result.found,
                            result.direction,
                            attempts + result.attempts,
                            True,
                            result.context,
                        )
                    logger.info("end of content scrolling %s", direction)
                    break
            else:
                identical = 0
            previous = snapshot
            attempts += 1
            if not self._executor.scroll(direction):
                logger.warning("scroll %s rejected, attempt %d of %d", direction, attempts, budget)
                continue
            self._sleep(wait)
            context = self._builder.capture()
            if self.target_found(context, target):
                logger.info("found '%s' after %d scroll(s) %s", target, attempts, direction)
                return ScrollResult(True, direction, attempts, not allow_reverse, context)
        return ScrollResult(False, direction, attempts, not allow_reverse, context)
