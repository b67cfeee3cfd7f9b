from typing import Iterable, List

from vibeagent.domains.observe.types import Element, SystemDialog

SYSTEM_UI_PACKAGE = "com.android.systemui"
SETTINGS_PACKAGE = "com.android.settings"


def classify_dialog(element: Element) -> str:
    text = element.text.lower()
    label = element.label.lower()
    if element.package == SYSTEM_UI_PACKAGE:
        return "system_ui"
    if "Dialog" in element.role:
        return "alert_dialog"
    if "permission" in text or "permission" in label or "allow" in text or "deny" in text:
        return "permission_dialog"
    if element.package == SETTINGS_PACKAGE and "settings" in text:
        return "settings_dialog"
    if "notification" in text or "notification" in label:
        return "notification_dialog"
    return ""


def detect_system_dialogs(elements: Iterable[Element]) -> List[SystemDialog]:
    dialogs = []
    for element in elements:
        dialog_type = classify_dialog(element)
        if dialog_type:
            dialogs.append(SystemDialog(element=element, dialog_type=dialog_type))
    return dialogs
