"""Tests for the login state machine and the public coroutines."""

from __future__ import annotations

import asyncio
import importlib

import httpx
import pytest

from conftest import TICKET, TOKEN_RESPONSE, FakeBackend, error_page, form_of
from ucloud_login import get_user_roles, login, refresh
from ucloud_login.auth.login import LoginFlow, LoginState
from ucloud_login.exceptions import (
    AuthServerError,
    ConfigError,
    InvalidCredentialsError,
    NoRoleError,
    OcrError,
    ProtocolError,
    RoleNotFoundError,
)
from ucloud_login.models import LoginOptions, LoginResult, OcrOptions, RoleName


HAPPY_PATH = [
    LoginState.START,
    LoginState.BOOTSTRAPPED,
    LoginState.SUBMITTED,
    LoginState.TICKET_EXCHANGED,
    LoginState.ROLES_FETCHED,
    LoginState.REFRESHED,
]


def _ocr_options(max_retries: int = 3) -> LoginOptions:
    return LoginOptions(ocr=OcrOptions(token="ocr-token", max_retries=max_retries, retry_delay=0))


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestLoginSuccess:
    @pytest.mark.asyncio
    async def test_result_matches_oauth_response(self, backend: FakeBackend) -> None:
        async with backend.client() as client:
            result = await login("2021210000", "secret", client=client)

        assert isinstance(result, LoginResult)
        assert [r.id for r in result.roles] == ["identity-student", "identity-assistant"]
        assert result.user_id == TOKEN_RESPONSE["user_id"]
        assert result.student_id == TOKEN_RESPONSE["user_name"]
        assert result.real_name == TOKEN_RESPONSE["real_name"]
        # Scoped to the first role by default.
        assert result.access_token == "access-identity-student"
        assert result.refresh_token == "refresh-identity-student"

    @pytest.mark.asyncio
    async def test_numeric_ids_from_server(self, backend: FakeBackend) -> None:
        backend.token_response["user_id"] = 1560000000000000042
        backend.roles[0]["id"] = 1001
        async with backend.client() as client:
            result = await login("u", "p", client=client)

        assert result.user_id == "1560000000000000042"
        assert result.roles[0].id == "1001"
        assert result.access_token == "access-1001"

    @pytest.mark.asyncio
    async def test_request_sequence(self, backend: FakeBackend) -> None:
        async with backend.client() as client:
            await login("2021210000", "secret", client=client)

        s = backend.settings
        methods_and_urls = [
            (r.method, f"{r.url.scheme}://{r.url.host}{r.url.path}") for r in backend.requests
        ]
        assert methods_and_urls == [
            ("GET", s.login_url),
            ("POST", s.login_url),
            ("POST", s.token_url),
            ("GET", s.roles_url),
            ("POST", s.token_url),
        ]
        ticket_form, refresh_form = backend.token_forms
        assert ticket_form == {"ticket": TICKET, "grant_type": "third"}
        assert refresh_form == {
            "grant_type": "refresh_token",
            "refresh_token": "refresh-ticket",
            "identity": "identity-student",
        }
        (roles_request,) = backend.requests_to(s.roles_url)
        assert roles_request.headers["blade-auth"] == "refresh-ticket"

    @pytest.mark.asyncio
    async def test_requested_role(self, backend: FakeBackend) -> None:
        options = LoginOptions(role=RoleName.ASSISTANT)
        async with backend.client() as client:
            result = await login("u", "p", options, client=client)

        assert result.access_token == "access-identity-assistant"
        assert len(result.roles) == 2

    @pytest.mark.asyncio
    async def test_state_history(self, backend: FakeBackend) -> None:
        async with backend.client() as client:
            flow = LoginFlow(client, "u", "p")
            await flow.run()

        assert flow.state is LoginState.REFRESHED
        assert flow.history == HAPPY_PATH
        assert flow.error is None

    @pytest.mark.asyncio
    async def test_flow_runs_once(self, backend: FakeBackend) -> None:
        async with backend.client() as client:
            flow = LoginFlow(client, "u", "p")
            await flow.run()
            with pytest.raises(RuntimeError):
                await flow.run()

    @pytest.mark.asyncio
    async def test_result_is_frozen(self, backend: FakeBackend) -> None:
        async with backend.client() as client:
            result = await login("u", "p", client=client)
        with pytest.raises(Exception):
            result.access_token = "tampered"  # type: ignore[misc]

    @pytest.mark.asyncio
    async def test_concurrent_logins_are_independent(self) -> None:
        first, second = FakeBackend(), FakeBackend()
        second.token_response["real_name"] = "李四"

        async def run(backend: FakeBackend) -> LoginResult:
            async with backend.client() as client:
                return await login("u", "p", client=client)

        a, b = await asyncio.gather(run(first), run(second))
        assert a.real_name == "张三"
        assert b.real_name == "李四"


# ---------------------------------------------------------------------------
# Captcha
# ---------------------------------------------------------------------------


class TestLoginCaptcha:
    @pytest.mark.asyncio
    async def test_callback_text_is_submitted(self, backend: FakeBackend) -> None:
        backend.captcha = True
        seen: list[tuple[str, str]] = []

        async def solve(url: str, cookie: str) -> str:
            seen.append((url, cookie))
            return "h4x0"

        async with backend.client() as client:
            flow = LoginFlow(client, "u", "p", LoginOptions(on_captcha=solve))
            await flow.run()

        (url, cookie), = seen
        assert "captchaId=cap-4711" in url
        assert cookie == "SESSION=abc123"
        assert form_of(backend.submissions[0])["captcha"] == "h4x0"
        assert flow.history == [
            LoginState.START,
            LoginState.BOOTSTRAPPED,
            LoginState.CAPTCHA_PENDING,
            LoginState.CAPTCHA_RESOLVED,
            *HAPPY_PATH[2:],
        ]

    @pytest.mark.asyncio
    async def test_no_resolver_fails_before_submission(self, backend: FakeBackend) -> None:
        backend.captcha = True
        async with backend.client() as client:
            flow = LoginFlow(client, "u", "p")
            with pytest.raises(ConfigError):
                await flow.run()

        assert backend.submissions == []
        assert flow.state is LoginState.FAILED
        assert isinstance(flow.error, ConfigError)

    @pytest.mark.asyncio
    async def test_ocr_third_attempt(self, backend: FakeBackend) -> None:
        backend.captcha = True
        backend.ocr_replies = [
            {"detail": "unreadable"},
            httpx.ReadTimeout("slow"),
            {"text": "ok42"},
        ]
        async with backend.client() as client:
            result = await login("u", "p", _ocr_options(3), client=client)

        assert result.roles
        assert len(backend.requests_to(backend.settings.ocr_url)) == 3
        assert form_of(backend.submissions[0])["captcha"] == "ok42"

    @pytest.mark.asyncio
    async def test_ocr_always_failing(self, backend: FakeBackend) -> None:
        backend.captcha = True
        backend.ocr_replies = [{"detail": "one"}, {"detail": "two"}, {"detail": "three"}]
        async with backend.client() as client:
            with pytest.raises(OcrError, match="three"):
                await login("u", "p", _ocr_options(3), client=client)

        assert backend.submissions == []

    @pytest.mark.asyncio
    async def test_callback_error_propagates(self, backend: FakeBackend) -> None:
        backend.captcha = True

        def give_up(url: str, cookie: str) -> str:
            raise EOFError("no input")

        async with backend.client() as client:
            flow = LoginFlow(client, "u", "p", LoginOptions(on_captcha=give_up))
            with pytest.raises(EOFError):
                await flow.run()
        assert flow.state is LoginState.FAILED
        assert backend.submissions == []


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestLoginFailures:
    @pytest.mark.asyncio
    async def test_no_cookie_never_submits(self, backend: FakeBackend) -> None:
        backend.set_cookie = None
        async with backend.client() as client:
            with pytest.raises(ProtocolError):
                await login("u", "p", client=client)
        assert backend.submissions == []

    @pytest.mark.asyncio
    async def test_invalid_credentials(self, backend: FakeBackend) -> None:
        backend.submit = lambda r: httpx.Response(401, text=error_page("Invalid credentials."))
        async with backend.client() as client:
            flow = LoginFlow(client, "u", "wrong")
            with pytest.raises(InvalidCredentialsError):
                await flow.run()
        assert flow.history[-2:] == [LoginState.BOOTSTRAPPED, LoginState.FAILED]
        assert backend.token_forms == []

    @pytest.mark.asyncio
    async def test_ticket_exchange_failure(self, backend: FakeBackend) -> None:
        backend.token_status = 500
        async with backend.client() as client:
            with pytest.raises(AuthServerError):
                await login("u", "p", client=client)

    @pytest.mark.asyncio
    async def test_no_roles(self, backend: FakeBackend) -> None:
        backend.roles = []
        async with backend.client() as client:
            flow = LoginFlow(client, "u", "p")
            with pytest.raises(NoRoleError):
                await flow.run()

        assert flow.history[-2:] == [LoginState.TICKET_EXCHANGED, LoginState.FAILED]
        assert len(backend.token_forms) == 1

    @pytest.mark.asyncio
    async def test_requested_role_missing(self, backend: FakeBackend) -> None:
        options = LoginOptions(role=RoleName.TEACHER)
        async with backend.client() as client:
            with pytest.raises(RoleNotFoundError):
                await login("u", "p", options, client=client)

        assert [f["grant_type"] for f in backend.token_forms] == ["third"]


# ---------------------------------------------------------------------------
# refresh / get_user_roles
# ---------------------------------------------------------------------------


class TestPublicHelpers:
    @pytest.mark.asyncio
    async def test_refresh_missing_role(self, backend: FakeBackend) -> None:
        async with backend.client() as client:
            with pytest.raises(RoleNotFoundError):
                await refresh("refresh-1", RoleName.TEACHER, client=client)
        assert backend.token_forms == []

    @pytest.mark.asyncio
    async def test_refresh_with_role(self, backend: FakeBackend) -> None:
        async with backend.client() as client:
            bundle = await refresh("refresh-1", "assistant", client=client)
        assert bundle.access_token == "access-identity-assistant"

    @pytest.mark.asyncio
    async def test_refresh_empty_role_is_unscoped(self, backend: FakeBackend) -> None:
        async with backend.client() as client:
            bundle = await refresh("refresh-1", "", client=client)
        assert bundle.access_token == "access-default"
        assert backend.requests_to(backend.settings.roles_url) == []

    @pytest.mark.asyncio
    async def test_get_user_roles_idempotent(self, backend: FakeBackend) -> None:
        async with backend.client() as client:
            first = await get_user_roles("token", client=client)
            second = await get_user_roles("token", client=client)
        assert first == second
        assert [r.role_name for r in first] == [RoleName.STUDENT, RoleName.ASSISTANT]

    @pytest.mark.asyncio
    async def test_opens_own_client_when_none_given(
        self, backend: FakeBackend, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # ``ucloud_login.auth.login`` is shadowed by the re-exported coroutine.
        login_module = importlib.import_module("ucloud_login.auth.login")
        monkeypatch.setattr(login_module, "UCloudClient", lambda: backend.client())
        roles = await get_user_roles("token")
        assert len(roles) == 2
