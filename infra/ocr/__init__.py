from infra.ocr.parsing import parse_ocr_payload
from infra.ocr.router import run_ocr
from infra.ocr.types import OcrRequest, OcrResult

__all__ = [
    "OcrRequest",
    "OcrResult",
    "parse_ocr_payload",
    "run_ocr",
]
