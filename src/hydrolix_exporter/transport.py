from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from .errors import TransportError

JSON_HEADERS = {
    "Content-Type": "application/json; charset=UTF-8",
    "Accept": "application/json",
}


async def send(
    http: httpx.AsyncClient,
    method: str,
    url: str,
    payload: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.Response:
    """Issue one HTTP request, mapping httpx request failures to TransportError."""
    try:
        return await http.request(method, url, json=payload, headers=headers)
    except httpx.TimeoutException as exc:
        raise TransportError(f"{method} {url} timed out: {exc}") from exc
    except httpx.RequestError as exc:
        raise TransportError(f"{method} {url} failed: {exc}") from exc


def decode_body(response: httpx.Response) -> Any:
    """Response body as JSON when declared as such, plain text otherwise, None when empty."""
    if not response.content:
        return None
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text
