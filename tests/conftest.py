"""Shared test fixtures for ucloud_login.

Provides a fake of the four backends the login talks to (SSO gateway,
OAuth token endpoint, role listing, OCR service) served through
:class:`httpx.MockTransport`, so every stage can be exercised without
network access. These fixtures are automatically discovered by pytest.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Optional, Union
from urllib.parse import parse_qs

import httpx
import pytest

from ucloud_login.client import UCloudClient
from ucloud_login.config import Settings
from ucloud_login.output import reset_output


LOGIN_PAGE = """<!DOCTYPE html>
<html>
<body>
<form id="fm1" action="login" method="post">
  <input id="username" name="username" type="text" value=""/>
  <input id="password" name="password" type="password" value=""/>
  <input name="execution" value="e1s1-token"/>
  <input type="hidden" name="_eventId" value="submit"/>
</form>
</body>
</html>
"""

CAPTCHA_SCRIPT = """<script>
  config.captcha = {
    type: 'image',
    id: 'cap-4711'
  };
</script>
"""

ERROR_PAGE = """<html><body>
<div class="alert alert-danger" id="errorDiv">
  <span class="fa fa-exclamation-circle"></span>
  <p>{message}</p>
</div>
</body></html>
"""

TICKET = "ST-123-abcdef-cas"

TOKEN_RESPONSE: dict[str, Any] = {
    "access_token": "access-ticket",
    "token_type": "bearer",
    "refresh_token": "refresh-ticket",
    "expires_in": 3599,
    "scope": "all",
    "tenant_id": "000000",
    "license": "powered by blade",
    "loginId": "login-42",
    "user_id": "1560000000000000042",
    "user_name": "2021210000",
    "real_name": "张三",
    "avatar": "",
    "dept_id": "dept-7",
    "client_id": "portal",
    "account": "2021210000",
    "jti": "jti-1",
}

ROLES: list[dict[str, Any]] = [
    {
        "id": "identity-student",
        "roleId": "role-1",
        "roleAliase": "student",
        "roleName": "学生",
        "domainId": "domain-1",
        "domainName": "北京邮电大学",
        "tenantId": "000000",
    },
    {
        "id": "identity-assistant",
        "roleId": "role-3",
        "roleAliase": "assistant",
        "roleName": "助教",
        "domainId": "domain-1",
        "domainName": "北京邮电大学",
        "tenantId": "000000",
    },
]

OcrReply = Union[dict[str, Any], Exception, httpx.Response]


def _bare(url: httpx.URL) -> str:
    """*url* without its query string."""
    return f"{url.scheme}://{url.host}{url.path}"


def form_of(request: httpx.Request) -> dict[str, str]:
    """Decode a form-encoded request body into a flat dict."""
    parsed = parse_qs(request.content.decode(), keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items()}


class FakeBackend:
    """In-memory stand-in for the SSO, OAuth, role and OCR endpoints.

    Tests tweak the public attributes before running a login, then inspect
    :attr:`requests` to see what was sent.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.requests: list[httpx.Request] = []

        self.set_cookie: Optional[str] = "SESSION=abc123; Path=/authserver; HttpOnly"
        self.login_page = LOGIN_PAGE
        self.captcha = False
        self.submit: Callable[[httpx.Request], httpx.Response] = self._accept
        self.token_status = 200
        self.token_response: dict[str, Any] = copy.deepcopy(TOKEN_RESPONSE)
        self.roles_status = 200
        self.roles: list[dict[str, Any]] = copy.deepcopy(ROLES)
        self.ocr_replies: list[OcrReply] = []

    # ------------------------------------------------------------------ #
    # Wiring
    # ------------------------------------------------------------------ #

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self) -> UCloudClient:
        return UCloudClient(self.settings, transport=self.transport())

    def requests_to(self, url: str, method: Optional[str] = None) -> list[httpx.Request]:
        """Requests whose URL (without query) equals *url*."""
        return [
            r
            for r in self.requests
            if _bare(r.url) == url
            and (method is None or r.method == method)
        ]

    @property
    def submissions(self) -> list[httpx.Request]:
        return self.requests_to(self.settings.login_url, "POST")

    @property
    def token_forms(self) -> list[dict[str, str]]:
        return [form_of(r) for r in self.requests_to(self.settings.token_url)]

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = _bare(request.url)
        s = self.settings

        if url == s.login_url and request.method == "GET":
            return self._login_page()
        if url == s.login_url and request.method == "POST":
            return self.submit(request)
        if url == s.token_url:
            return self._token(request)
        if url == s.roles_url:
            return self._roles(request)
        if url == s.ocr_url:
            return self._ocr(request)
        return httpx.Response(404, text="not found")

    def _login_page(self) -> httpx.Response:
        body = self.login_page
        if self.captcha:
            body = body.replace("</body>", CAPTCHA_SCRIPT + "</body>")
        headers = {"content-type": "text/html;charset=UTF-8"}
        if self.set_cookie is not None:
            headers["set-cookie"] = self.set_cookie
        return httpx.Response(200, headers=headers, text=body)

    def _accept(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            302, headers={"location": f"{self.settings.service_url}/?ticket={TICKET}"}
        )

    def _token(self, request: httpx.Request) -> httpx.Response:
        if self.token_status != 200:
            return httpx.Response(self.token_status, json={"msg": "token endpoint unhappy"})
        form = form_of(request)
        payload = dict(self.token_response)
        if form.get("grant_type") == "refresh_token":
            identity = form.get("identity", "default")
            payload["access_token"] = f"access-{identity}"
            payload["refresh_token"] = f"refresh-{identity}"
        return httpx.Response(200, json=payload)

    def _roles(self, request: httpx.Request) -> httpx.Response:
        if self.roles_status != 200:
            return httpx.Response(self.roles_status, json={"msg": "roles unavailable"})
        return httpx.Response(200, json={"code": 200, "success": True, "data": self.roles})

    def _ocr(self, request: httpx.Request) -> httpx.Response:
        reply = self.ocr_replies.pop(0) if self.ocr_replies else {"detail": "no reply queued"}
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, json=reply)


def error_page(message: str) -> str:
    return ERROR_PAGE.replace("{message}", message)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation.
    """
    yield
    reset_output()


@pytest.fixture
def backend() -> FakeBackend:
    """A fresh fake backend with a captcha-free, always-accepting SSO."""
    return FakeBackend()




@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
