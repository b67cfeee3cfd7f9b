from .history import (
    StepHistory,
    TaskStep,
    classify_interaction,
    extract_ui_context,
    is_tap_action,
    validate_sequence,
)

__all__ = [
    "StepHistory",
    "TaskStep",
    "classify_interaction",
    "extract_ui_context",
    "is_tap_action",
    "validate_sequence",
]
