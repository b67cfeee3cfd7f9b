import re
from typing import Dict, Iterable, Optional, Tuple
from xml.etree import ElementTree as ET

from shared.errors import InspectionFailure

EDITABLE_CLASSES = ("EditText", "AutoCompleteTextView")


def _flag(value: str) -> bool:
    return str(value or "").strip().lower() == "true"


class UiAutomatorParser:
    def parse_bounds(self, bounds: str) -> Optional[Tuple[int, int, int, int]]:
        match = re.search(r"\[(-?\d+),(-?\d+)\]\[(-?\d+),(-?\d+)\]", bounds or "")
        if not match:
            return None
        left, top, right, bottom = (int(group) for group in match.groups())
        return left, top, right, bottom

    def iter_nodes(self, xml_text: str) -> Iterable[Dict[str, object]]:
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as exc:
            raise InspectionFailure("invalid UI hierarchy: {}".format(exc)) from exc
        for node in root.iter():
            if node.tag != "node":
                continue
            class_name = node.attrib.get("class", "")
            yield {
                "text": node.attrib.get("text", ""),
                "resource_id": node.attrib.get("resource-id", ""),
                "class": class_name,
                "package": node.attrib.get("package", ""),
                "content_desc": node.attrib.get("content-desc", ""),
                "bounds": self.parse_bounds(node.attrib.get("bounds", "")),
                "clickable": _flag(node.attrib.get("clickable")),
                "scrollable": _flag(node.attrib.get("scrollable")),
                "focused": _flag(node.attrib.get("focused")),
                "editable": any(name in class_name for name in EDITABLE_CLASSES),
            }


DEFAULT_PARSER = UiAutomatorParser()
