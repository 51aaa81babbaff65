"""Credential submission to the SSO gateway.

Posts the login form and reads the raw answer: a 302 whose ``Location``
carries a ``ticket`` means success; anything else is turned into the
matching :mod:`ucloud_login.exceptions` type using the error banner the
gateway renders.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ucloud_login.client import UCloudClient
from ucloud_login.exceptions import AuthServerError, InvalidCredentialsError, ProtocolError
from ucloud_login.models import SessionContext
from ucloud_login.scraper import PageScraper, SoupPageScraper

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials."

_SUBMIT_LABEL = "登录"


def build_form(username: str, password: str, context: SessionContext) -> dict[str, str]:
    """Return the login form fields in the order the web page sends them."""
    form = {"username": username, "password": password}
    if context.captcha_text:
        form["captcha"] = context.captcha_text
    form["submit"] = _SUBMIT_LABEL
    form["type"] = "username_password"
    form["execution"] = context.execution
    form["_eventId"] = "submit"
    return form


async def submit_credentials(
    client: UCloudClient,
    username: str,
    password: str,
    context: SessionContext,
    scraper: Optional[PageScraper] = None,
) -> str:
    """Submit the login form and return the authorization ticket.

    Args:
        client: An open :class:`~ucloud_login.client.UCloudClient`.
        username: SSO username (student or staff number).
        password: SSO password.
        context: Session from the bootstrap stage, with the captcha text
            filled in when a challenge was solved.
        scraper: HTML scraper used to read the error banner.

    Returns:
        The ticket from the redirect ``Location``.

    Raises:
        InvalidCredentialsError: On 401 with the invalid-credentials banner.
        AuthServerError: On any other non-302 response.
        ProtocolError: On a 302 without ``Location`` or ``ticket``.
    """
    scraper = scraper or SoupPageScraper()
    settings = client.settings
    response = await client.post(
        settings.login_page_url,
        headers={
            "Cookie": context.cookie,
            "Referer": settings.login_page_url,
            "User-Agent": settings.user_agent,
        },
        data=build_form(username, password, context),
    )

    if response.status_code != 302:
        _raise_for_failure(response, scraper)

    location = response.headers.get("location")
    if not location:
        raise ProtocolError("Login redirect has no Location header")

    ticket = httpx.URL(location).params.get("ticket")
    if not ticket:
        raise ProtocolError("Login redirect has no ticket")

    logger.debug("SSO accepted credentials for %s", username)
    return ticket


def _raise_for_failure(response: httpx.Response, scraper: PageScraper) -> None:
    """Map a non-302 submission response to an exception."""
    status = response.status_code
    message = scraper.error_message(response.text)

    if status == 401:
        if message == INVALID_CREDENTIALS_MESSAGE:
            raise InvalidCredentialsError("Invalid username or password")
        raise AuthServerError(
            f"Login rejected: {message or 'unknown error'}",
            status_code=status,
            server_message=message,
        )

    text = f"Login failed: HTTP {status} {response.reason_phrase}"
    if message:
        text = f"{text} ({message})"
    raise AuthServerError(text, status_code=status, server_message=message)
