from typing import Any, Dict, List, Optional, Tuple

from shared.errors import InspectionFailure


def _get_value(mapping: Dict[str, Any], keys, default=None):
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return default


def _bounds_from_box(box) -> Optional[Tuple[int, int, int, int]]:
    xs = []
    ys = []
    for point in box or []:
        if isinstance(point, dict):
            x, y = point.get("x"), point.get("y")
        else:
            try:
                x, y = point[0], point[1]
            except (TypeError, IndexError, KeyError):
                continue
        if x is None or y is None:
            continue
        xs.append(float(x))
        ys.append(float(y))
    if not xs or not ys:
        return None
    return int(min(xs)), int(min(ys)), int(max(xs)), int(max(ys))


def _parse_bounds(value) -> Optional[Tuple[int, int, int, int]]:
    if value is None:
        return None
    if isinstance(value, dict):
        try:
            return (
                int(value["left"]),
                int(value["top"]),
                int(value["right"]),
                int(value["bottom"]),
            )
        except (KeyError, TypeError, ValueError):
            return None
    if isinstance(value, (list, tuple)):
        if len(value) == 4 and all(isinstance(item, (int, float)) for item in value):
            return tuple(int(item) for item in value)
        return _bounds_from_box(value)
    return None


def _parse_block(item: Dict[str, Any], threshold: float) -> Optional[Dict[str, Any]]:
    text = str(_get_value(item, ("text", "label"), "")).strip()
    if not text:
        return None
    score = _get_value(item, ("confidence", "score"))
    if score is not None:
        try:
            if float(score) < threshold:
                return None
        except (TypeError, ValueError):
            pass
    bounds = _parse_bounds(
        _get_value(item, ("boundingBox", "bounding_box", "bounds", "bbox"))
    )
    if bounds is None:
        bounds = _bounds_from_box(_get_value(item, ("cornerPoints", "box", "poly")))
    if bounds is None:
        return None
    return {"text": text, "bounds": bounds, "confidence": score}


def parse_ocr_payload(
    payload: Dict[str, Any], threshold: float = 0.0
) -> Tuple[str, List[Dict[str, Any]], Optional[int], Optional[int]]:
    """Normalize an OCR server payload into (full_text, blocks, width, height).

    Accepts both the block form (``blocks`` + ``boundingBox`` dicts) and the
    element form (``elements`` + ``[x1, y1, x2, y2]`` bounds).
    """
    raw_blocks = _get_value(payload, ("blocks", "elements", "results"), [])
    blocks: List[Dict[str, Any]] = []
    for item in raw_blocks if isinstance(raw_blocks, list) else []:
        if not isinstance(item, dict):
            continue
        block = _parse_block(item, threshold)
        if block:
            blocks.append(block)
    text = _get_value(payload, ("text", "full_text", "fullText"))
    if text is None:
        text = "\n".join(block["text"] for block in blocks)
    width = _get_value(payload, ("imageWidth", "image_width", "width"))
    height = _get_value(payload, ("imageHeight", "image_height", "height"))
    return (
        str(text).strip(),
        blocks,
        _parse_size(width, "image width"),
        _parse_size(height, "image height"),
    )


def _parse_size(value, label: str) -> Optional[int]:
    if not value:
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError) as exc:
        raise InspectionFailure("OCR payload has invalid {}: {!r}".format(label, value)) from exc
