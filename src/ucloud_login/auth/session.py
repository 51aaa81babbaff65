"""Session bootstrap: the first request of every login.

Loads the SSO login page and pulls out the three things the rest of the
flow needs: the session cookie, the hidden ``execution`` form token, and
(when the server demands one) the captcha challenge.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

import httpx

from ucloud_login.client import UCloudClient
from ucloud_login.config import Settings
from ucloud_login.exceptions import ProtocolError
from ucloud_login.models import CaptchaChallenge, SessionContext
from ucloud_login.scraper import PageScraper, SoupPageScraper

logger = logging.getLogger(__name__)


def session_cookie(response: httpx.Response) -> Optional[str]:
    """Return the ``name=value`` part of the first ``Set-Cookie`` header."""
    values = response.headers.get_list("set-cookie")
    if not values:
        return None
    cookie = values[0].split(";", 1)[0].strip()
    return cookie or None


def captcha_image_url(settings: Settings, challenge_id: str) -> str:
    """Build the captcha image URL with a 5-digit cache-busting suffix."""
    bust = f"{random.randint(0, 99999):05d}"
    return f"{settings.captcha_url}?captchaId={challenge_id}&r={bust}"


async def bootstrap(
    client: UCloudClient,
    scraper: Optional[PageScraper] = None,
) -> tuple[SessionContext, Optional[CaptchaChallenge]]:
    """Fetch the login page and extract the session state.

    Args:
        client: An open :class:`~ucloud_login.client.UCloudClient`.
        scraper: HTML scraper; defaults to
            :class:`~ucloud_login.scraper.SoupPageScraper`.

    Returns:
        The :class:`SessionContext` and, if the page embeds one, the
        :class:`CaptchaChallenge` that must be solved before submitting.

    Raises:
        ProtocolError: If the page sets no cookie or has no execution token.
    """
    scraper = scraper or SoupPageScraper()
    response = await client.get(client.settings.login_page_url)

    cookie = session_cookie(response)
    if not cookie:
        raise ProtocolError("Login page returned no cookie")

    page = response.text
    execution = scraper.execution_token(page)
    if not execution:
        raise ProtocolError("Login page has no execution token")

    context = SessionContext(cookie=cookie, execution=execution)

    challenge_id = scraper.captcha_id(page)
    if not challenge_id:
        return context, None

    logger.debug("Login page requires a captcha (id=%s)", challenge_id)
    challenge = CaptchaChallenge(
        challenge_id=challenge_id,
        image_url=captcha_image_url(client.settings, challenge_id),
    )
    return context, challenge
