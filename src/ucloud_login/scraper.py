"""HTML scraping for the SSO login pages.

Everything the login flow needs to read out of HTML goes through the
:class:`PageScraper` interface: the hidden ``execution`` form token, the
embedded captcha id, and the error banner shown after a failed submission.
The state machine only talks to this interface.

:class:`SoupPageScraper` is the default. It parses the markup with
BeautifulSoup; only the captcha id, which lives inside an inline
``<script>`` object literal, is pulled out with a regular expression.
"""

from __future__ import annotations

import re
from typing import Optional, Protocol

from bs4 import BeautifulSoup


class PageScraper(Protocol):
    """Extracts login-relevant values from SSO HTML pages.

    Every method returns ``None`` when the value is absent; deciding whether
    absence is an error is up to the caller.
    """

    def execution_token(self, page: str) -> Optional[str]:
        """Return the hidden ``execution`` form value of the login page."""
        ...

    def captcha_id(self, page: str) -> Optional[str]:
        """Return the id from an embedded ``config.captcha`` block."""
        ...

    def error_message(self, page: str) -> Optional[str]:
        """Return the text of the ``alert-danger`` error banner."""
        ...


_CAPTCHA_RE = re.compile(r"config\.captcha[^{]*{[^}]*id:\s*'(.*?)'")


class SoupPageScraper:
    """Default :class:`PageScraper` backed by BeautifulSoup.

    Args:
        features: Parser name handed to :class:`~bs4.BeautifulSoup`.
    """

    def __init__(self, features: str = "html.parser") -> None:
        self._features = features

    def _soup(self, page: str) -> BeautifulSoup:
        return BeautifulSoup(page, self._features)

    def execution_token(self, page: str) -> Optional[str]:
        field = self._soup(page).select_one("input[name='execution']")
        if field is None:
            return None
        value = field.get("value")
        if not isinstance(value, str) or not value:
            return None
        return value

    def captcha_id(self, page: str) -> Optional[str]:
        soup = self._soup(page)
        for script in soup.find_all("script"):
            match = _CAPTCHA_RE.search(script.get_text())
            if match and match.group(1):
                return match.group(1)
        return None

    def error_message(self, page: str) -> Optional[str]:
        banner = self._soup(page).select_one("div.alert-danger p")
        if banner is None:
            return None
        text = banner.get_text(" ", strip=True)
        return text or None
