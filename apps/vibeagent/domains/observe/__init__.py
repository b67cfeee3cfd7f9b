from .dialogs import detect_system_dialogs
from .service import ContextBuilder, contexts_identical, looks_opaque
from .types import (
    Bounds,
    CurrentApp,
    Element,
    OcrBlock,
    OcrReading,
    ScreenContext,
    SystemDialog,
)

__all__ = [
    "Bounds",
    "ContextBuilder",
    "CurrentApp",
    "Element",
    "OcrBlock",
    "OcrReading",
    "ScreenContext",
    "SystemDialog",
    "contexts_identical",
    "detect_system_dialogs",
    "looks_opaque",
]
