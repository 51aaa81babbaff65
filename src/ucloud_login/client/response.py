"""Response helpers shared by the token, role and OCR stages.

After a JSON endpoint answers, the stages need the same two steps: reject
non-2xx statuses with :class:`~ucloud_login.exceptions.AuthServerError`
and decode the body, reporting garbage as
:class:`~ucloud_login.exceptions.ProtocolError`.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from ucloud_login.exceptions import AuthServerError, ProtocolError


def ensure_success(response: httpx.Response, action: str) -> None:
    """Raise :class:`AuthServerError` unless *response* has a 2xx status.

    Args:
        response: The response to check.
        action: Short description used in the message (``"refresh token"``).
    """
    if response.is_success:
        return
    message = extract_message(response)
    text = f"Failed to {action}: HTTP {response.status_code} {response.reason_phrase}"
    if message:
        text = f"{text} ({message})"
    raise AuthServerError(
        text, status_code=response.status_code, server_message=message
    )


def extract_message(response: httpx.Response) -> str | None:
    """Best-effort error text from a JSON error body, else ``None``."""
    try:
        detail = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if isinstance(detail, dict):
        msg = detail.get("msg") or detail.get("message") or detail.get("error_description")
        return str(msg) if msg else None
    return None


def json_body(response: httpx.Response, action: str) -> Any:
    """Decode the JSON body of *response*.

    Raises:
        ProtocolError: If the body is empty or not valid JSON.
    """
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProtocolError(f"Failed to {action}: response is not JSON") from exc
