from infra.uiautomator.parser import DEFAULT_PARSER, EDITABLE_CLASSES, UiAutomatorParser

__all__ = [
    "DEFAULT_PARSER",
    "EDITABLE_CLASSES",
    "UiAutomatorParser",
]
