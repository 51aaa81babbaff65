"""Asynchronous HTTP client shared by every stage of the login flow.

This module provides :class:`UCloudClient`, a thin wrapper around
:class:`httpx.AsyncClient` that carries the resolved
:class:`~ucloud_login.config.Settings`, never follows redirects (the
submitter must see the raw 302 from the SSO gateway), logs every exchange
at DEBUG level, and turns request failures (network, timeout, undecodable
body) into :class:`~ucloud_login.exceptions.ConnectionError_`.

HTTP status codes are *not* mapped here: each stage decides what a given
status means (a 302 is success for the SSO form, failure anywhere else).
See :mod:`ucloud_login.client.response` for the shared helpers.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ucloud_login.config import Settings, load_settings
from ucloud_login.exceptions import ConnectionError_

logger = logging.getLogger(__name__)


class UCloudClient:
    """Asynchronous HTTP client for the SSO, OAuth, role and OCR endpoints.

    Must be used as an async context manager. Each login run normally gets
    its own instance, so concurrent logins share no connection pool or
    cookie jar.

    Args:
        settings: Endpoint settings. Defaults to :func:`load_settings`.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Example::

        async with UCloudClient() as client:
            response = await client.get(client.settings.login_page_url)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> UCloudClient:
        self._client = httpx.AsyncClient(
            timeout=self.settings.timeout,
            verify=self.settings.verify_ssl,
            follow_redirects=False,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send one request without following redirects.

        Args:
            method: HTTP method (GET or POST).
            url: Absolute URL.
            params: Query parameters.
            headers: Extra request headers.
            data: Form-encoded body (``application/x-www-form-urlencoded``).

        Returns:
            The :class:`httpx.Response`, whatever its status.

        Raises:
            ConnectionError_: On network, timeout or body decoding errors.
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"

        kwargs: dict[str, Any] = {
            "method": method,
            "url": url,
            "headers": headers or {},
            "params": params,
        }
        if data is not None:
            kwargs["data"] = data

        try:
            response = await self._client.request(**kwargs)
        except httpx.HTTPError as exc:
            logger.debug("%s %s failed: %s", method, url, exc)
            raise ConnectionError_(f"{method} {url} failed: {exc}") from exc

        logger.debug("%s %s -> %s", method, url, response.status_code)
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a GET request. ``kwargs`` are forwarded to :meth:`request`."""
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a POST request. ``kwargs`` are forwarded to :meth:`request`."""
        return await self.request("POST", url, **kwargs)
