import logging
from typing import Any, Dict, Optional

import requests
from PIL import Image

from .codec import decode_any
from .colors import color_to_rgb_dict
from .errors import DecodeError, FetchError

logger = logging.getLogger(__name__)

# How much of an unexpected response body is kept for diagnostics
_BODY_PREVIEW_CHARS = 512


def _preview(body: bytes) -> str:
    return body[:_BODY_PREVIEW_CHARS].decode("utf-8", errors="replace")


def fetch_url(url: str, timeout: Optional[float] = None) -> bytes:
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise FetchError(f"Failed to fetch {url}: {e}") from e
    return resp.content


def load_source(data: bytes, url: str, timeout: Optional[float] = None) -> bytes:
    """Return inline bytes when present, otherwise download url."""
    if data:
        return data
    if not url:
        raise FetchError("Neither image bytes nor image url were provided")
    return fetch_url(url, timeout=timeout)


class WxaCodeClient:
    """Client for the unlimited mini-program code endpoint.

    The access token is supplied per request; this service never stores it.
    """

    def __init__(self, endpoint: str, timeout: Optional[float] = None):
        self.endpoint = endpoint
        self.timeout = timeout

    def build_payload(
        self,
        *,
        scene: str,
        page: str,
        width: int,
        auto_color: bool,
        line_color: str,
        is_hyaline: bool,
    ) -> Dict[str, Any]:
        return {
            "scene": scene,
            "page": page,
            "width": width,
            "auto_color": auto_color,
            "line_color": color_to_rgb_dict(line_color),
            "is_hyaline": is_hyaline,
        }

    def generate(self, access_token: str, **params: Any) -> Image.Image:
        payload = self.build_payload(**params)
        try:
            resp = requests.post(
                self.endpoint,
                params={"access_token": access_token},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise FetchError(f"Mini-program code request failed: {e}") from e

        body = resp.content or b""
        if not resp.ok:
            logger.error(f"Mini-program code request returned {resp.status_code}: {_preview(body)}")
            raise FetchError(f"Mini-program code request returned {resp.status_code}", body=_preview(body))
        # Errors come back as a 200 with a JSON envelope ({"errcode": ..., "errmsg": ...})
        ctype = (resp.headers.get("Content-Type") or "").lower()
        if "json" in ctype:
            logger.error(f"Mini-program code service rejected the request: {_preview(body)}")
            raise FetchError("Mini-program code service returned an error", body=_preview(body))
        try:
            return decode_any(body)
        except DecodeError as e:
            logger.error(f"Mini-program code body is not an image: {_preview(body)}")
            raise FetchError(f"Mini-program code response could not be decoded: {e}", body=_preview(body)) from e
