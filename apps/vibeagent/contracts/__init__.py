from vibeagent.contracts.schema import (
    SCROLL_DIRECTIONS,
    Action,
    AdvancedTypeText,
    Decision,
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
    SchemaError,
    SendKeyEvent,
    TapElementByBounds,
    TapElementByIndex,
    TapElementByText,
    TapOcrBounds,
    TapOcrText,
    TypeText,
    Unrecognized,
    action_to_dict,
    parse_action,
    parse_decision_text,
)

__all__ = [
    "SCROLL_DIRECTIONS",
    "Action",
    "AdvancedTypeText",
    "Decision",
    "Message",
    "OpenAppByName",
    "PerformBack",
    "PerformDynamicScroll",
    "PerformEnter",
    "PerformHome",
    "PerformLongPress",
    "PerformScroll",
    "PerformSwipe",
    "PerformTap",
    "SchemaError",
    "SendKeyEvent",
    "TapElementByBounds",
    "TapElementByIndex",
    "TapElementByText",
    "TapOcrBounds",
    "TapOcrText",
    "TypeText",
    "Unrecognized",
    "action_to_dict",
    "parse_action",
    "parse_decision_text",
]
