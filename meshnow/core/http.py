"""Response checking shared by the upstream clients."""

from __future__ import annotations

import httpx

from meshnow.core.errors import AuthError, UpstreamError


def error_detail(response: httpx.Response) -> str:
    """Pull a human-readable message out of an error response."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            if data.get(key):
                return str(data[key])
    body = response.text.strip().replace("\n", " ")
    return body[:200]


def raise_for_status(response: httpx.Response, service: str) -> None:
    """Raise ``AuthError`` or ``UpstreamError`` for a non-2xx response."""
    if response.status_code < 400:
        return
    detail = error_detail(response)
    message = f"{service} API error {response.status_code}"
    if detail:
        message = f"{message}: {detail}"
    if response.status_code in {401, 403}:
        raise AuthError(message, status_code=response.status_code)
    raise UpstreamError(message, status_code=response.status_code, body=response.text)


def json_object(response: httpx.Response, service: str) -> dict:
    """Decode a 2xx body that must be a JSON object.

    A body that is not an object is reported as a bad gateway (502).
    """
    try:
        data = response.json()
    except ValueError as exc:
        raise UpstreamError(
            f"{service} API returned an invalid JSON response",
            status_code=502,
            body=response.text,
        ) from exc
    if not isinstance(data, dict):
        raise UpstreamError(
            f"{service} API returned an invalid JSON response",
            status_code=502,
            body=response.text,
        )
    return data
