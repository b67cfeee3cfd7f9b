from infra.http.client import post_json, post_multipart, post_multipart_sync
from infra.http.errors import HttpError, HttpResponseError

__all__ = [
    "HttpError",
    "HttpResponseError",
    "post_json",
    "post_multipart",
    "post_multipart_sync",
]
