"""Captcha resolution strategies.

When the login page embeds a captcha, one of two interchangeable resolvers
turns the challenge into text:

- :class:`CallbackResolver` -- hands the image URL and session cookie to a
  caller-supplied function (typically a human at a prompt).
- :class:`OcrResolver` -- asks the OCR service, retrying a bounded number
  of times.

:func:`select_resolver` picks one from the caller's
:class:`~ucloud_login.models.LoginOptions`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Optional, Protocol

from ucloud_login.client import UCloudClient
from ucloud_login.client.response import json_body
from ucloud_login.exceptions import ConfigError, LoginError, OcrError
from ucloud_login.models import CaptchaCallback, CaptchaChallenge, LoginOptions, OcrOptions

logger = logging.getLogger(__name__)


class CaptchaResolver(Protocol):
    """Anything that can turn a captcha challenge into its text."""

    async def resolve(self, challenge: CaptchaChallenge, cookie: str) -> str:
        ...


class CallbackResolver:
    """Resolve captchas through a caller-supplied function.

    The callback receives ``(image_url, cookie)`` and may be a plain
    function or a coroutine function. It is called exactly once; whatever
    it raises reaches the caller of the login unchanged.
    """

    def __init__(self, callback: CaptchaCallback) -> None:
        self._callback = callback

    async def resolve(self, challenge: CaptchaChallenge, cookie: str) -> str:
        result = self._callback(challenge.image_url, cookie)
        if inspect.isawaitable(result):
            result = await result
        return str(result)


class OcrResolver:
    """Resolve captchas through the OCR service.

    Attempts run one after another, never in parallel, with
    ``options.retry_delay`` seconds between them. Failed attempts are
    logged and discarded; if every attempt fails, the last attempt's
    exception is raised as-is.

    Args:
        client: An open :class:`~ucloud_login.client.UCloudClient`.
        options: OCR token and retry policy.
    """

    def __init__(self, client: UCloudClient, options: OcrOptions) -> None:
        self._client = client
        self._options = options

    async def resolve(self, challenge: CaptchaChallenge, cookie: str) -> str:
        max_retries = self._options.max_retries
        last_error: Optional[LoginError] = None

        for attempt in range(1, max_retries + 1):
            try:
                return await self._recognise(challenge, cookie)
            except LoginError as exc:
                last_error = exc
                logger.warning(
                    "OCR attempt %d/%d failed: %s", attempt, max_retries, exc
                )
                if attempt < max_retries and self._options.retry_delay:
                    await asyncio.sleep(self._options.retry_delay)

        assert last_error is not None
        raise last_error

    async def _recognise(self, challenge: CaptchaChallenge, cookie: str) -> str:
        """Run one OCR request and return the recognised text."""
        response = await self._client.get(
            self._client.settings.ocr_url,
            params={
                "url": challenge.image_url,
                "token": self._options.token,
                "cookie": cookie,
            },
        )
        data = json_body(response, "recognise captcha")
        text = data.get("text") if isinstance(data, dict) else None
        if not text:
            detail = data.get("detail") if isinstance(data, dict) else None
            raise OcrError(f"OCR failed: {detail or 'unknown error'}")
        return str(text)


def select_resolver(
    options: Optional[LoginOptions], client: UCloudClient
) -> CaptchaResolver:
    """Pick the captcha strategy configured in *options*.

    A callback takes precedence over OCR when both are configured.

    Raises:
        ConfigError: If neither strategy is configured.
    """
    if options is not None and options.on_captcha is not None:
        if options.ocr is not None:
            logger.warning("Both on_captcha and ocr are configured; using on_captcha")
        return CallbackResolver(options.on_captcha)
    if options is not None and options.ocr is not None:
        return OcrResolver(client, options.ocr)
    raise ConfigError("Captcha challenge present but no resolver configured")
