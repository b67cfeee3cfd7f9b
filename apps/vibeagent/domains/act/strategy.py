import logging
from dataclasses import dataclass
from typing import Optional

from vibeagent.contracts import (
    Action,
    AdvancedTypeText,
    Message,
    OpenAppByName,
    PerformBack,
    PerformDynamicScroll,
    PerformEnter,
    PerformHome,
    PerformLongPress,
    PerformScroll,
    PerformSwipe,
    PerformTap,
    SendKeyEvent,
    TapElementByBounds,
    TapElementByIndex,
    TapElementByText,
    TapOcrBounds,
    TapOcrText,
    TypeText,
    Unrecognized,
)
from vibeagent.domains.act.focus import InputFocuser, element_field_id
from vibeagent.domains.observe.types import ScreenContext
from vibeagent.domains.ports import ActionExecutor
from vibeagent.domains.resolve.service import SOURCE_OCR, Resolution, TargetResolver
from vibeagent.domains.scroll.service import DynamicScroller
from shared.errors import ExecutorFailure, SequenceViolation, TargetNotFound

logger = logging.getLogger("vibeagent.agent")

KEYCODE_ENTER = 66

SETTLE_NONE = "none"
SETTLE_ACTION = "action"
SETTLE_SCROLL = "scroll"

_KEYCODES = {
    "KEYCODE_HOME": 3,
    "KEYCODE_BACK": 4,
    "KEYCODE_VOLUME_UP": 24,
    "KEYCODE_VOLUME_DOWN": 25,
    "KEYCODE_POWER": 26,
    "KEYCODE_TAB": 61,
    "KEYCODE_SPACE": 62,
    "KEYCODE_ENTER": 66,
    "KEYCODE_DEL": 67,
    "KEYCODE_MENU": 82,
    "KEYCODE_SEARCH": 84,
    "KEYCODE_ESCAPE": 111,
    "KEYCODE_FORWARD_DEL": 112,
    "KEYCODE_APP_SWITCH": 187,
}


def normalize_keycode(value):
    if value is None:
        raise SequenceViolation("send_key_event missing keyCode")
    if isinstance(value, int):
        return value
    value = str(value).strip()
    if not value:
        raise SequenceViolation("send_key_event missing keyCode")
    name = value.upper()
    if not name.startswith("KEYCODE_"):
        name = "KEYCODE_" + name
    mapped = _KEYCODES.get(name)
    if mapped is not None:
        return mapped
    if value.lstrip("-").isdigit():
        return int(value)
    raise SequenceViolation("unknown key code {!r}".format(value))


@dataclass
class ActionOutcome:
    detail: str
    settle: str = SETTLE_ACTION
    target_editable: bool = False
    refocused: Optional[str] = None
    context: Optional[ScreenContext] = None


class ActionDispatcher:
    def __init__(
        self,
        executor: ActionExecutor,
        resolver: TargetResolver,
        scroller: DynamicScroller,
        focuser: InputFocuser,
        type_delay_ms: int = 0,
    ) -> None:
        self._executor = executor
        self._resolver = resolver
        self._scroller = scroller
        self._focuser = focuser
        self.type_delay_ms = type_delay_ms

    def execute(self, action: Action, context: ScreenContext) -> ActionOutcome:
        """Run one decided action against ``context``.

        Raises TargetNotFound, SequenceViolation or ExecutorFailure.
        """
        if isinstance(action, Unrecognized):
            raise SequenceViolation("{}: {}".format(action.reason, action.name))
        if isinstance(action, Message):
            return ActionOutcome(detail=action.text, settle=SETTLE_NONE)
        if isinstance(action, TapElementByIndex):
            return self._tap(action, self._resolver.resolve_by_index(context, action.index))
        if isinstance(action, TapElementByText):
            return self._tap(action, self._resolve_text(context, action.text))
        if isinstance(action, TapElementByBounds):
            return self._tap(action, self._resolver.resolve_by_bounds(context, action.bounds))
        if isinstance(action, TapOcrText):
            return self._tap(
                action, self._resolver.resolve_by_text(context, action.text, SOURCE_OCR)
            )
        if isinstance(action, TapOcrBounds):
            return self._tap(action, self._resolver.resolve_ocr_bounds(context, action.bounds))
        if isinstance(action, PerformTap):
            self._check(action, self._executor.tap(action.x, action.y))
            return ActionOutcome(detail="tap ({:.0f}, {:.0f})".format(action.x, action.y))
        if isinstance(action, PerformLongPress):
            self._check(
                action, self._executor.long_press(action.x, action.y, action.duration_ms)
            )
            return ActionOutcome(
                detail="long press ({:.0f}, {:.0f})".format(action.x, action.y)
            )
        if isinstance(action, PerformSwipe):
            self._check(
                action,
                self._executor.swipe(
                    action.start_x,
                    action.start_y,
                    action.end_x,
                    action.end_y,
                    action.duration_ms,
                ),
            )
            return ActionOutcome(detail="swipe", settle=SETTLE_SCROLL)
        if isinstance(action, PerformScroll):
            self._check(action, self._executor.scroll(action.direction))
            return ActionOutcome(detail="scroll {}".format(action.direction), settle=SETTLE_SCROLL)
        if isinstance(action, PerformDynamicScroll):
            return self._dynamic_scroll(action, context)
        if isinstance(action, (TypeText, AdvancedTypeText)):
            return self._type(action, context)
        if isinstance(action, SendKeyEvent):
            keycode = normalize_keycode(action.keycode)
            self._check(action, self._executor.key_event(keycode))
            return ActionOutcome(detail="key {}".format(keycode))
        if isinstance(action, PerformEnter):
            self._check(action, self._executor.key_event(KEYCODE_ENTER))
            return ActionOutcome(detail="enter")
        if isinstance(action, PerformBack):
            self._check(action, self._executor.back())
            return ActionOutcome(detail="back")
        if isinstance(action, PerformHome):
            self._check(action, self._executor.home())
            return ActionOutcome(detail="home")
        if isinstance(action, OpenAppByName):
            self._check(action, self._executor.open_app_by_name(action.app_name))
            return ActionOutcome(detail="opened {}".format(action.app_name))
        raise SequenceViolation("unsupported action {}".format(type(action).__name__))

    def _check(self, action: Action, ok: bool) -> None:
        if not ok:
            raise ExecutorFailure(action.kind)

    def _resolve_text(self, context: ScreenContext, text: str) -> Resolution:
        try:
            return self._resolver.resolve_by_text(context, text)
        except TargetNotFound:
            if not context.ocr_blocks:
                raise
        return self._resolver.resolve_by_text(context, text, SOURCE_OCR)

    def _tap(self, action: Action, resolution: Resolution) -> ActionOutcome:
        self._check(action, self._executor.tap(resolution.x, resolution.y))
        editable = bool(resolution.element and resolution.element.editable)
        if editable:
            self._focuser.fields.add(element_field_id(resolution.element.index))
        return ActionOutcome(
            detail="tap ({:.0f}, {:.0f}) via {}".format(
                resolution.x, resolution.y, resolution.source
            ),
            target_editable=editable,
        )

    def _dynamic_scroll(self, action: PerformDynamicScroll, context: ScreenContext) -> ActionOutcome:
        wait = action.wait_ms / 1000.0 if action.wait_ms is not None else None
        result = self._scroller.scroll(
            action.direction,
            action.target_text,
            max_attempts=action.max_attempts,
            identical_threshold=action.identical_threshold,
            wait=wait,
            context=context,
        )
        if not result.found:
            raise TargetNotFound(
                "'{}' not found after {} scroll(s)".format(action.target_text, result.attempts)
            )
        return ActionOutcome(
            detail="found '{}' after {} scroll(s)".format(action.target_text, result.attempts),
            settle=SETTLE_NONE,
            context=result.context,
        )

    def _type(self, action, context: ScreenContext) -> ActionOutcome:
        clear_first = getattr(action, "clear_first", False)
        delay_ms = getattr(action, "delay_ms", 0) or self.type_delay_ms
        if self._executor.type_text(action.text, clear_first, delay_ms):
            return ActionOutcome(detail="typed '{}'".format(action.text))
        logger.info("typing rejected, trying to refocus an input field")
        field_id = self._focuser.refocus(context)
        if field_id and self._executor.type_text(action.text, clear_first, delay_ms):
            return ActionOutcome(
                detail="typed '{}' after refocusing {}".format(action.text, field_id),
                refocused=field_id,
            )
        raise ExecutorFailure(action.kind, "text input failed after refocus attempt")
