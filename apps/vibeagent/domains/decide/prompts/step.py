from typing import Iterable, List, Sequence

ACTION_VOCABULARY = (
    'tap_element_by_index {"index": n} - tap an accessibility element by its index',
    'tap_element_by_text {"text": "..."} - tap the first element whose text or label contains the text',
    'tap_element_by_bounds {"left": x1, "top": y1, "right": x2, "bottom": y2} - tap element bounds',
    'tap_ocr_text {"text": "..."} - tap OCR-detected text',
    'tap_ocr_bounds {"left": x1, "top": y1, "right": x2, "bottom": y2} - tap OCR block bounds',
    'perform_tap {"x": x, "y": y} - tap raw screen coordinates',
    'perform_long_press {"x": x, "y": y, "duration": ms}',
    'perform_swipe {"startX": x1, "startY": y1, "endX": x2, "endY": y2, "duration": ms}',
    'perform_scroll {"direction": "up|down|left|right"}',
    'perform_dynamic_scroll {"direction": "up|down|left|right", "targetText": "...", '
    '"maxScrollAttempts": n} - scroll until the text appears',
    'type_text {"text": "..."} - type into the focused field (tap the field first)',
    'advanced_type_text {"text": "...", "clearFirst": true, "delayMs": n}',
    'send_key_event {"keyCode": n}',
    "perform_enter",
    "perform_back",
    "perform_home",
    'open_app_by_name {"appName": "App Name"} - preferred way to open or switch apps',
)


def _format_bounds(bounds) -> str:
    if not bounds:
        return "-"
    return "[{},{},{},{}]".format(*(int(value) for value in bounds))


def format_elements(elements: Sequence) -> str:
    if not elements:
        return "(no accessibility elements)"
    lines = []
    for element in elements:
        flags = [
            name
            for name, enabled in (
                ("clickable", element.clickable),
                ("scrollable", element.scrollable),
                ("editable", element.editable),
                ("focused", element.focused),
            )
            if enabled
        ]
        role = element.role.rsplit(".", 1)[-1] if element.role else "View"
        lines.append(
            '[{index}] {role} text="{text}" desc="{label}" flags={flags} bounds={bounds}'.format(
                index=element.index,
                role=role,
                text=element.text,
                label=element.label,
                flags=",".join(flags) or "-",
                bounds=_format_bounds(element.bounds),
            )
        )
    return "\n".join(lines)


def format_ocr(ocr_text: str, blocks: Sequence) -> str:
    if not ocr_text and not blocks:
        return "(no OCR text)"
    lines = [ocr_text] if ocr_text else []
    if blocks:
        lines.append("OCR blocks:")
        for block in blocks:
            lines.append('"{}" bounds={}'.format(block.text, _format_bounds(block.bounds)))
    return "\n".join(lines)


def format_dialogs(dialogs: Sequence) -> str:
    if not dialogs:
        return "(no system dialogs)"
    return "\n".join(
        '[{}] {} text="{}" desc="{}"'.format(
            dialog.element.index,
            dialog.dialog_type,
            dialog.element.text,
            dialog.element.label,
        )
        for dialog in dialogs
    )


def format_history(steps: Iterable) -> str:
    lines: List[str] = []
    for step in steps:
        status = "ok" if step.success else "failed"
        line = "{}. {} - {} ({})".format(step.step_number, step.action, step.description, status)
        if step.note:
            line += " NOTE: {}".format(step.note)
        elif step.error:
            line += " ERROR: {}".format(step.error)
        lines.append(line)
    return "\n".join(lines) if lines else "(no steps yet)"


def editable_hints(elements: Sequence) -> List[str]:
    hints = []
    for element in elements:
        if element.editable:
            label = (element.text or element.label or element.role).strip()
            if label:
                hints.append(label)
    return hints


def build_step_prompt(task, step_number, context, history) -> str:
    return (
        "You are an Android automation agent. Decide the single next action that "
        "moves the task forward, based only on the current screen.\n"
        "Return JSON only with this schema:\n"
        "{{\n"
        '  "action": "tap_element_by_index",\n'
        '  "parameters": {{"index": 0}},\n'
        '  "description": "what this step does",\n'
        '  "reasoning": "why",\n'
        '  "is_complete": false\n'
        "}}\n"
        "Rules:\n"
        "- Exactly one action per response.\n"
        "- Set is_complete=true only when the task is fully done; the action is then ignored.\n"
        "- Prefer element indices; they are only valid for this screen.\n"
        "- Tap an input field (or the search button) before typing into it.\n"
        "- Check the tree and OCR text for the target before scrolling.\n"
        "- Use open_app_by_name to open or switch apps.\n"
        "Actions:\n"
        "{actions}\n"
        "Task: {task}\n"
        "Step: {step}\n"
        "Completed steps:\n"
        "{history}\n"
        "Current app: {package}\n"
        "Capture: {capture}\n"
        "Editable fields: {hints}\n"
        "Accessibility elements ({count}):\n"
        "{elements}\n"
        "System dialogs:\n"
        "{dialogs}\n"
        "OCR text:\n"
        "{ocr}\n"
    ).format(
        actions="\n".join("- " + item for item in ACTION_VOCABULARY),
        task=task,
        step=step_number,
        history=format_history(history),
        package=context.current_app.package_name or "unknown",
        capture="degraded ({})".format(context.error) if context.error else "ok",
        hints=editable_hints(context.elements) or "[]",
        count=len(context.elements),
        elements=format_elements(context.elements),
        dialogs=format_dialogs(context.system_dialogs),
        ocr=format_ocr(context.ocr_text, context.ocr_blocks),
    )
