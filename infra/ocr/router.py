from infra.ocr.providers import remote as remote_provider
from infra.ocr.types import OcrRequest, OcrResult
from shared.errors import InspectionFailure


_PROVIDERS = {
    "remote": remote_provider.run,
    "http": remote_provider.run,
}


def run_ocr(request: OcrRequest) -> OcrResult:
    provider = (request.provider or "remote").strip().lower()
    handler = _PROVIDERS.get(provider)
    if not handler:
        raise InspectionFailure("unknown OCR provider: {}".format(provider))
    return handler(request)
