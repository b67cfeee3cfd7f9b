from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class OcrRequest:
    png_bytes: bytes
    lang: str = "en"
    threshold: float = 0.5
    provider: str = "remote"
    remote_url: Optional[str] = None
    remote_timeout: float = 30.0
    remote_api_key: Optional[str] = None


@dataclass
class OcrResult:
    text: str
    blocks: List[Dict[str, Any]] = field(default_factory=list)
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    payload: Optional[Dict[str, Any]] = None
