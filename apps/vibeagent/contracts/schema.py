import json
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional, Tuple, Union


class SchemaError(ValueError):
    pass


Bounds = Tuple[float, float, float, float]


@dataclass(frozen=True)
class TapElementByIndex:
    kind: ClassVar[str] = "tap_element_by_index"
    index: int


@dataclass(frozen=True)
class TapElementByText:
    kind: ClassVar[str] = "tap_element_by_text"
    text: str


@dataclass(frozen=True)
class TapElementByBounds:
    kind: ClassVar[str] = "tap_element_by_bounds"
    bounds: Bounds


@dataclass(frozen=True)
class TapOcrText:
    kind: ClassVar[str] = "tap_ocr_text"
    text: str


@dataclass(frozen=True)
class TapOcrBounds:
    kind: ClassVar[str] = "tap_ocr_bounds"
    bounds: Bounds


@dataclass(frozen=True)
class PerformTap:
    kind: ClassVar[str] = "perform_tap"
    x: float
    y: float


@dataclass(frozen=True)
class PerformLongPress:
    kind: ClassVar[str] = "perform_long_press"
    x: float
    y: float
    duration_ms: int = 500


@dataclass(frozen=True)
class PerformSwipe:
    kind: ClassVar[str] = "perform_swipe"
    start_x: float
    start_y: float
    end_x: float
    end_y: float
    duration_ms: int = 300


@dataclass(frozen=True)
class PerformScroll:
    kind: ClassVar[str] = "perform_scroll"
    direction: str


@dataclass(frozen=True)
class PerformDynamicScroll:
    kind: ClassVar[str] = "perform_dynamic_scroll"
    direction: str
    target_text: str
    max_attempts: Optional[int] = None
    identical_threshold: Optional[int] = None
    wait_ms: Optional[int] = None


@dataclass(frozen=True)
class TypeText:
    kind: ClassVar[str] = "type_text"
    text: str


@dataclass(frozen=True)
class AdvancedTypeText:
    kind: ClassVar[str] = "advanced_type_text"
    text: str
    clear_first: bool = False
    delay_ms: int = 0


@dataclass(frozen=True)
class SendKeyEvent:
    kind: ClassVar[str] = "send_key_event"
    keycode: Union[int, str]


@dataclass(frozen=True)
class PerformEnter:
    kind: ClassVar[str] = "perform_enter"


@dataclass(frozen=True)
class PerformBack:
    kind: ClassVar[str] = "perform_back"


@dataclass(frozen=True)
class PerformHome:
    kind: ClassVar[str] = "perform_home"


@dataclass(frozen=True)
class OpenAppByName:
    kind: ClassVar[str] = "open_app_by_name"
    app_name: str


@dataclass(frozen=True)
class Message:
    kind: ClassVar[str] = "message"
    text: str


@dataclass(frozen=True)
class Unrecognized:
    kind: ClassVar[str] = "unrecognized"
    name: str
    parameters: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    reason: str = "unknown action"


Action = Union[
    TapElementByIndex,
    TapElementByText,
    TapElementByBounds,
    TapOcrText,
    TapOcrBounds,
    PerformTap,
    PerformLongPress,
    PerformSwipe,
    PerformScroll,
    PerformDynamicScroll,
    TypeText,
    AdvancedTypeText,
    SendKeyEvent,
    PerformEnter,
    PerformBack,
    PerformHome,
    OpenAppByName,
    Message,
    Unrecognized,
]

SCROLL_DIRECTIONS = ("up", "down", "left", "right")


@dataclass
class Decision:
    name: str
    action: Optional[Action]
    parameters: Dict[str, Any] = field(default_factory=dict)
    description: str = ""
    reasoning: str = ""
    is_complete: bool = False
    raw_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.name or None,
            "parameters": dict(self.parameters),
            "description": self.description,
            "reasoning": self.reasoning,
            "is_complete": self.is_complete,
        }


def action_to_dict(action: Action) -> Dict[str, Any]:
    payload = asdict(action)
    if isinstance(action, Unrecognized):
        payload["type"] = action.name
    else:
        payload["type"] = action.kind
    return payload


def _pick(params: Dict[str, Any], *keys, default=None):
    for key in keys:
        value = params.get(key)
        if value is not None:
            return value
    return default


def _require_text(params: Dict[str, Any], *keys) -> str:
    value = _pick(params, *keys)
    if value is None or not str(value).strip():
        raise SchemaError("missing {}".format(keys[0]))
    return str(value)


def _require_number(params: Dict[str, Any], *keys) -> float:
    value = _pick(params, *keys)
    if value is None or isinstance(value, bool):
        raise SchemaError("missing {}".format(keys[0]))
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise SchemaError("invalid {}: {!r}".format(keys[0], value)) from exc


def _optional_int(params: Dict[str, Any], *keys, default=None) -> Optional[int]:
    value = _pick(params, *keys)
    if value is None:
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError) as exc:
        raise SchemaError("invalid {}: {!r}".format(keys[0], value)) from exc


def _parse_bounds(params: Dict[str, Any]) -> Bounds:
    raw = params.get("bounds")
    if isinstance(raw, dict):
        params = raw
    elif isinstance(raw, (list, tuple)):
        if len(raw) != 4:
            raise SchemaError("bounds must have four values")
        try:
            return tuple(float(value) for value in raw)
        except (TypeError, ValueError) as exc:
            raise SchemaError("invalid bounds: {!r}".format(raw)) from exc
    return (
        _require_number(params, "left"),
        _require_number(params, "top"),
        _require_number(params, "right"),
        _require_number(params, "bottom"),
    )


def _parse_direction(params: Dict[str, Any]) -> str:
    direction = str(_pick(params, "direction", default="down")).strip().lower()
    if direction not in SCROLL_DIRECTIONS:
        raise SchemaError("invalid direction: {}".format(direction))
    return direction


def _parse_index(params: Dict[str, Any]) -> TapElementByIndex:
    value = _pick(params, "index", "element_index", "elementIndex")
    if value is None or isinstance(value, bool):
        raise SchemaError("missing index")
    try:
        index = int(value)
    except (TypeError, ValueError) as exc:
        raise SchemaError("invalid index: {!r}".format(value)) from exc
    if index < 0:
        raise SchemaError("index must be non-negative")
    return TapElementByIndex(index=index)


def _parse_keycode(params: Dict[str, Any]) -> SendKeyEvent:
    value = _pick(params, "keyCode", "keycode", "key_code", "key")
    if value is None or (isinstance(value, str) and not value.strip()):
        raise SchemaError("missing keyCode")
    if isinstance(value, float):
        value = int(value)
    return SendKeyEvent(keycode=value)


_BUILDERS = {
    "tap_element_by_index": _parse_index,
    "tap_element_by_text": lambda p: TapElementByText(
        text=_require_text(p, "text", "target_text", "targetText")
    ),
    "tap_element_by_bounds": lambda p: TapElementByBounds(bounds=_parse_bounds(p)),
    "tap_ocr_text": lambda p: TapOcrText(text=_require_text(p, "text", "target_text")),
    "tap_ocr_bounds": lambda p: TapOcrBounds(bounds=_parse_bounds(p)),
    "perform_tap": lambda p: PerformTap(
        x=_require_number(p, "x"), y=_require_number(p, "y")
    ),
    "perform_long_press": lambda p: PerformLongPress(
        x=_require_number(p, "x"),
        y=_require_number(p, "y"),
        duration_ms=_optional_int(p, "duration", "duration_ms", "durationMs", default=500),
    ),
    "perform_swipe": lambda p: PerformSwipe(
        start_x=_require_number(p, "startX", "start_x", "x1"),
        start_y=_require_number(p, "startY", "start_y", "y1"),
        end_x=_require_number(p, "endX", "end_x", "x2"),
        end_y=_require_number(p, "endY", "end_y", "y2"),
        duration_ms=_optional_int(p, "duration", "duration_ms", "durationMs", default=300),
    ),
    "perform_scroll": lambda p: PerformScroll(direction=_parse_direction(p)),
    "perform_dynamic_scroll": lambda p: PerformDynamicScroll(
        direction=_parse_direction(p),
        target_text=_require_text(p, "targetText", "target_text", "text"),
        max_attempts=_optional_int(p, "maxScrollAttempts", "max_scroll_attempts"),
        identical_threshold=_optional_int(
            p, "consecutiveIdenticalThreshold", "consecutive_identical_threshold"
        ),
        wait_ms=_optional_int(p, "scrollWaitDurationMs", "scroll_wait_duration_ms"),
    ),
    "type_text": lambda p: TypeText(text=_require_text(p, "text")),
    "advanced_type_text": lambda p: AdvancedTypeText(
        text=_require_text(p, "text"),
        clear_first=_coerce_bool(_pick(p, "clearFirst", "clear_first", default=False)),
        delay_ms=_optional_int(p, "delayMs", "delay_ms", default=0),
    ),
    "send_key_event": _parse_keycode,
    "perform_enter": lambda p: PerformEnter(),
    "perform_back": lambda p: PerformBack(),
    "perform_home": lambda p: PerformHome(),
    "open_app_by_name": lambda p: OpenAppByName(
        app_name=_require_text(p, "appName", "app_name", "name")
    ),
    "message": lambda p: Message(text=_require_text(p, "text", "message")),
}

_ALIASES = {
    "perform_advanced_type": "advanced_type_text",
    "find_and_click": "tap_element_by_text",
    "open_app": "open_app_by_name",
}


def parse_action(name: str, parameters: Optional[Dict[str, Any]]) -> Action:
    params = dict(parameters or {})
    key = _ALIASES.get(name, name)
    builder = _BUILDERS.get(key)
    if builder is None:
        return Unrecognized(name=name, parameters=params, reason="unknown action")
    try:
        return builder(params)
    except SchemaError as exc:
        return Unrecognized(
            name=name,
            parameters=params,
            reason="malformed parameters for {}: {}".format(name, exc),
        )


_FENCE_RE = re.compile(r"```(?:json|JSON)?")


def _extract_json(text: str) -> str:
    cleaned = _FENCE_RE.sub("", text or "").strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        raise SchemaError("model response did not include JSON")
    return cleaned[start : end + 1]


_DECISION_VALIDATOR = None


def _get_decision_validator():
    global _DECISION_VALIDATOR
    if _DECISION_VALIDATOR is None:
        try:
            from jsonschema import Draft202012Validator
        except ImportError as exc:
            raise SchemaError("jsonschema is required for decision validation") from exc
        schema_path = Path(__file__).with_name("decision.schema.json")
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
        _DECISION_VALIDATOR = Draft202012Validator(schema)
    return _DECISION_VALIDATOR


def _format_schema_path(path) -> str:
    if not path:
        return "$"
    parts = ["$"]
    for item in path:
        if isinstance(item, int):
            parts.append("[{}]".format(item))
        else:
            parts.append(".{}".format(item))
    return "".join(parts)


def _coerce_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "y")
    return False


def parse_decision_text(text: str) -> Decision:
    try:
        data = json.loads(_extract_json(text))
    except json.JSONDecodeError as exc:
        raise SchemaError("model response is not valid JSON: {}".format(exc)) from exc
    validator = _get_decision_validator()
    errors = sorted(validator.iter_errors(data), key=lambda error: list(error.path))
    if errors:
        error = errors[0]
        raise SchemaError(
            "decision JSON schema validation failed at {}: {}".format(
                _format_schema_path(error.path), error.message
            )
        )
    complete_value = data.get("is_complete")
    if complete_value is None:
        complete_value = data.get("isComplete")
    is_complete = _coerce_bool(complete_value)
    name = str(data.get("action") or "").strip()
    parameters = data.get("parameters") or {}
    if not name and not is_complete:
        raise SchemaError("model response missing action")
    action = parse_action(name, parameters) if name else None
    return Decision(
        name=name,
        action=action,
        parameters=dict(parameters),
        description=str(data.get("description") or ""),
        reasoning=str(data.get("reasoning") or ""),
        is_complete=is_complete,
        raw_text=text,
    )
