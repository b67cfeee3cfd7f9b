from .focus import InputFocuser, ProcessedFieldSet
from .strategy import (
    SETTLE_ACTION,
    SETTLE_NONE,
    SETTLE_SCROLL,
    ActionDispatcher,
    ActionOutcome,
    normalize_keycode,
)

__all__ = [
    "SETTLE_ACTION",
    "SETTLE_NONE",
    "SETTLE_SCROLL",
    "ActionDispatcher",
    "ActionOutcome",
    "InputFocuser",
    "ProcessedFieldSet",
    "normalize_keycode",
]
