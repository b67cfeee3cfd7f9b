import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from shared.errors import SequenceViolation

SEARCH_INITIATION = "search_initiation"
INPUT_FOCUS = "input_focus"
SEARCH_QUERY_INPUT = "search_query_input"
TEXT_INPUT = "text_input"
UI_ELEMENT_CLICK = "ui_element_click"
NAVIGATION_SCROLL = "navigation_scroll"
APP_LAUNCH = "app_launch"
GENERAL_ACTION = "general_action"

TAP_ACTIONS = ("perform_tap", "find_and_click")
TAP_PREFIXES = ("tap_element", "tap_ocr")
SCROLL_ACTIONS = ("perform_scroll", "perform_dynamic_scroll", "perform_swipe")
FOCUS_TYPES = (SEARCH_INITIATION, INPUT_FOCUS, UI_ELEMENT_CLICK)


def is_tap_action(action: str) -> bool:
    return action in TAP_ACTIONS or action.startswith(TAP_PREFIXES)


@dataclass
class TaskStep:
    step_number: int
    action: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    description: str = ""
    success: bool = True
    timestamp: float = field(default_factory=time.time)
    interaction_type: str = GENERAL_ACTION
    ui_context: Dict[str, bool] = field(default_factory=dict)
    error: Optional[str] = None
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "step": self.step_number,
            "action": self.action,
            "parameters": dict(self.parameters),
            "description": self.description,
            "success": self.success,
            "timestamp": self.timestamp,
            "interaction_type": self.interaction_type,
            "ui_context": dict(self.ui_context),
        }
        if self.error:
            payload["error"] = self.error
        if self.note:
            payload["note"] = self.note
        return payload


def extract_ui_context(action: str, description: str, task: str) -> Dict[str, bool]:
    desc = (description or "").lower()
    task_mentions_search = "search" in (task or "").lower()
    return {
        "is_search_related": "search" in desc
        or "find" in desc
        or (action == "type_text" and task_mentions_search),
        "is_input_interaction": any(word in desc for word in ("input", "field", "text", "edit"))
        or action == "type_text",
        "is_button_click": is_tap_action(action) or "button" in desc or "click" in desc,
    }


def classify_interaction(
    action: str, description: str, task: str, target_editable: bool = False
) -> str:
    desc = (description or "").lower()
    if is_tap_action(action) and "search" in desc:
        return SEARCH_INITIATION
    if is_tap_action(action) and target_editable:
        return INPUT_FOCUS
    if action in ("type_text", "advanced_type_text"):
        if "search" in (task or "").lower():
            return SEARCH_QUERY_INPUT
        return TEXT_INPUT
    if is_tap_action(action):
        return UI_ELEMENT_CLICK
    if action in SCROLL_ACTIONS:
        return NAVIGATION_SCROLL
    if action == "open_app_by_name":
        return APP_LAUNCH
    return GENERAL_ACTION


def _prepared_for_input(step: TaskStep) -> bool:
    if not step.success:
        return False
    if step.interaction_type in FOCUS_TYPES:
        return True
    return bool(
        step.ui_context.get("is_input_interaction") or step.ui_context.get("is_search_related")
    )


def validate_sequence(action: str, parameters: Dict[str, Any], task: str, history: Sequence[TaskStep]) -> None:
    """Reject a bare ``type_text`` that skipped focusing an input first."""
    if action != "type_text":
        return
    recent = list(history)[-2:]
    if not any(_prepared_for_input(step) for step in recent):
        raise SequenceViolation(
            "type_text needs an input field or search box tapped in the previous "
            "one or two steps; tap the field first"
        )
    if "search" in (task or "").lower() and str(parameters.get("text") or "").strip():
        searched = any(
            step.success
            and (
                step.interaction_type == SEARCH_INITIATION
                or (step.ui_context.get("is_search_related") and step.ui_context.get("is_button_click"))
            )
            for step in history
        )
        if not searched:
            raise SequenceViolation(
                "search query typed before opening search; tap the search button or field first"
            )


class StepHistory:
    def __init__(self) -> None:
        self._steps: List[TaskStep] = []

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self):
        return iter(list(self._steps))

    @property
    def steps(self) -> List[TaskStep]:
        return list(self._steps)

    def append(self, step: TaskStep) -> TaskStep:
        self._steps.append(step)
        return step

    def clear(self) -> None:
        self._steps = []

    def last(self) -> Optional[TaskStep]:
        return self._steps[-1] if self._steps else None
