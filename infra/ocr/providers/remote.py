import json

from infra.http.client import post_multipart_sync
from infra.http.errors import HttpError, HttpResponseError
from infra.ocr.parsing import parse_ocr_payload
from infra.ocr.types import OcrRequest, OcrResult
from shared.errors import InspectionFailure
from shared.utils.png import is_png, png_size


def remote_ocr_request(url, png_bytes, lang="en", score_threshold=0.5, timeout=30, api_key=None):
    headers = {}
    if api_key:
        headers["X-API-Key"] = api_key
    try:
        text = post_multipart_sync(
            url,
            fields={"lang": lang, "threshold": score_threshold},
            files=[
                {
                    "name": "image",
                    "content": png_bytes,
                    "filename": "screen.png",
                    "content_type": "image/png",
                }
            ],
            headers=headers,
            timeout=timeout,
        )
    except HttpResponseError as exc:
        raise InspectionFailure(
            "remote OCR failed: {} {}".format(exc.status, exc.body)
        ) from exc
    except HttpError as exc:
        raise InspectionFailure("remote OCR request failed: {}".format(exc)) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InspectionFailure("remote OCR returned invalid JSON") from exc


def run(request: OcrRequest) -> OcrResult:
    if not request.remote_url:
        raise InspectionFailure("remote OCR endpoint is not configured")
    payload = remote_ocr_request(
        request.remote_url,
        request.png_bytes,
        lang=request.lang,
        score_threshold=request.threshold,
        timeout=request.remote_timeout,
        api_key=request.remote_api_key,
    )
    if not isinstance(payload, dict):
        raise InspectionFailure("remote OCR returned unexpected payload")
    text, blocks, width, height = parse_ocr_payload(payload, request.threshold)
    if (not width or not height) and is_png(request.png_bytes):
        width, height = png_size(request.png_bytes)
    return OcrResult(
        text=text,
        blocks=blocks,
        image_width=width,
        image_height=height,
        payload=payload,
    )
