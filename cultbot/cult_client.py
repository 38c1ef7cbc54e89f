from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from cultbot.config import Settings
from cultbot.domain import ApiError, TransportError

logger = logging.getLogger(__name__)

CLASSES_PATH = "/api/cult/classes/v2"
PRODUCT_TYPE = "FITNESS"
USER_AGENT = "CultBot-Booking-Bot"


def build_headers(settings: Settings) -> dict[str, str]:
    return {
        "accept": "application/json",
        "content-type": "application/json",
        "user-agent": USER_AGENT,
        "st": settings.st,
        "at": settings.at,
        "osname": settings.osname,
    }


def build_book_path(activity_id: str) -> str:
    return f"/api/cult/class/{activity_id}/book"


def _decode_body(response: httpx.Response) -> Any:
    # Provider sometimes answers with HTML or plain text; keep it readable instead of failing.
    text = response.text
    content_type = response.headers.get("content-type", "").lower()
    if text and "application/json" in content_type:
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text
    return text


def format_body(body: Any) -> str:
    return body if isinstance(body, str) else json.dumps(body, ensure_ascii=False)


class CultClient:
    """Thin wrapper over httpx.Client for the two Cult endpoints we need."""

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._client = httpx.Client(
            base_url=f"https://{settings.host}",
            headers=build_headers(settings),
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    def __enter__(self) -> CultClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise TransportError(f"{method} {path} failed: {type(e).__name__}: {e}") from e

        body = _decode_body(response)
        status = response.status_code
        logger.debug("%s %s -> %s", method, path, status)

        if status < 200 or status >= 300:
            raise ApiError(status, body, f"HTTP {status} {method} {path}: {format_body(body)}")
        return body

    def get_classes(self) -> Any:
        return self._request("GET", CLASSES_PATH, params={"productType": PRODUCT_TYPE})

    def book_class(self, activity_id: str) -> Any:
        # No idempotency key: the endpoint does not support one.
        return self._request("POST", build_book_path(activity_id), json={})
