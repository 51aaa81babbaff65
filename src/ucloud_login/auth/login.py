"""Login orchestration and the public coroutine API.

:class:`LoginFlow` runs the full login protocol as an explicit state
machine::

    START -> BOOTSTRAPPED -> [CAPTCHA_PENDING -> CAPTCHA_RESOLVED]
          -> SUBMITTED -> TICKET_EXCHANGED -> ROLES_FETCHED -> REFRESHED

Any failure moves the flow to ``FAILED`` and re-raises the stage's
exception; there is no retry at this level. The module-level coroutines
:func:`login`, :func:`refresh` and :func:`get_user_roles` are the public
API and open a fresh :class:`~ucloud_login.client.UCloudClient` per call
unless one is passed in.
"""

from __future__ import annotations

import enum
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

from ucloud_login.auth import roles as roles_stage
from ucloud_login.auth import tokens as tokens_stage
from ucloud_login.auth.captcha import select_resolver
from ucloud_login.auth.credentials import submit_credentials
from ucloud_login.auth.session import bootstrap
from ucloud_login.client import UCloudClient
from ucloud_login.exceptions import LoginError, NoRoleError
from ucloud_login.models import LoginOptions, LoginResult, Role, RoleName, TokenBundle
from ucloud_login.scraper import PageScraper, SoupPageScraper

logger = logging.getLogger(__name__)


class LoginState(str, enum.Enum):
    """States of a :class:`LoginFlow`. ``REFRESHED`` and ``FAILED`` are terminal."""

    START = "start"
    BOOTSTRAPPED = "bootstrapped"
    CAPTCHA_PENDING = "captcha_pending"
    CAPTCHA_RESOLVED = "captcha_resolved"
    SUBMITTED = "submitted"
    TICKET_EXCHANGED = "ticket_exchanged"
    ROLES_FETCHED = "roles_fetched"
    REFRESHED = "refreshed"
    FAILED = "failed"


class LoginFlow:
    """One run of the login protocol.

    A flow is single-use: :meth:`run` may be awaited once. After it
    returns or raises, :attr:`state` is terminal, :attr:`history` lists
    every state visited and :attr:`error` holds the failure, if any.

    Args:
        client: An open :class:`~ucloud_login.client.UCloudClient`.
        username: SSO username.
        password: SSO password.
        options: Role and captcha options.
        scraper: HTML scraper for the SSO pages.

    Example::

        async with UCloudClient() as client:
            flow = LoginFlow(client, "2021210000", "secret")
            result = await flow.run()
    """

    def __init__(
        self,
        client: UCloudClient,
        username: str,
        password: str,
        options: Optional[LoginOptions] = None,
        scraper: Optional[PageScraper] = None,
    ) -> None:
        self._client = client
        self._username = username
        self._password = password
        self._options = options or LoginOptions()
        self._scraper = scraper or SoupPageScraper()
        self.state = LoginState.START
        self.history: list[LoginState] = [LoginState.START]
        self.error: Optional[LoginError] = None

    def _advance(self, state: LoginState) -> None:
        logger.debug("Login %s: %s -> %s", self._username, self.state.value, state.value)
        self.state = state
        self.history.append(state)

    async def run(self) -> LoginResult:
        """Run every stage in order and return the role-scoped result.

        Raises:
            LoginError: The first stage failure, unchanged. Exceptions raised
                by a captcha callback also propagate unchanged.
            RuntimeError: If the flow has already been run.
        """
        if self.state is not LoginState.START:
            raise RuntimeError(f"LoginFlow already ran (state: {self.state.value})")
        try:
            return await self._run()
        except Exception as exc:
            if isinstance(exc, LoginError):
                self.error = exc
            self._advance(LoginState.FAILED)
            logger.debug("Login %s failed: %s", self._username, exc)
            raise

    async def _run(self) -> LoginResult:
        client = self._client

        context, challenge = await bootstrap(client, self._scraper)
        self._advance(LoginState.BOOTSTRAPPED)

        if challenge is not None:
            self._advance(LoginState.CAPTCHA_PENDING)
            resolver = select_resolver(self._options, client)
            text = await resolver.resolve(challenge, context.cookie)
            context = context.model_copy(update={"captcha_text": text})
            self._advance(LoginState.CAPTCHA_RESOLVED)

        ticket = await submit_credentials(
            client, self._username, self._password, context, self._scraper
        )
        self._advance(LoginState.SUBMITTED)

        bundle = await tokens_stage.exchange_ticket(client, ticket)
        self._advance(LoginState.TICKET_EXCHANGED)

        roles = await roles_stage.get_user_roles(client, bundle.refresh_token)
        if not roles:
            raise NoRoleError("User has no role")
        self._advance(LoginState.ROLES_FETCHED)

        role = roles_stage.select_role(roles, self._options.role)
        scoped = await tokens_stage.refresh_token(
            client, bundle.refresh_token, role.role_name, roles=roles
        )
        self._advance(LoginState.REFRESHED)
        logger.info("Logged in as %s (%s)", scoped.student_id or self._username, role.role_name)
        return LoginResult.from_parts(scoped, roles)


@asynccontextmanager
async def _client_scope(client: Optional[UCloudClient]) -> AsyncIterator[UCloudClient]:
    """Yield *client* as-is, or a fresh client closed on exit."""
    if client is not None:
        yield client
        return
    async with UCloudClient() as fresh:
        yield fresh


async def login(
    username: str,
    password: str,
    options: Optional[LoginOptions] = None,
    *,
    client: Optional[UCloudClient] = None,
) -> LoginResult:
    """Log in through the SSO gateway and return tokens plus roles.

    Example::

        result = await login("2021210000", "secret", LoginOptions(
            on_captcha=lambda url, cookie: input(f"Captcha at {url}: "),
        ))
        print(result.real_name, result.access_token)

    Args:
        username: SSO username.
        password: SSO password.
        options: Role to scope to and captcha strategy.
        client: Optional open client; a new one is used otherwise.

    Returns:
        A :class:`~ucloud_login.models.LoginResult`.

    Raises:
        LoginError: A subclass describing the first failure.
    """
    async with _client_scope(client) as active:
        return await LoginFlow(active, username, password, options).run()


async def refresh(
    refresh_token: str,
    role: Optional[Union[RoleName, str]] = None,
    *,
    client: Optional[UCloudClient] = None,
) -> TokenBundle:
    """Exchange *refresh_token* for a new bundle, optionally scoped to *role*.

    Raises:
        RoleNotFoundError: If the user does not have *role*.
        AuthServerError: If a backend answers with a non-2xx status.
    """
    async with _client_scope(client) as active:
        return await tokens_stage.refresh_token(active, refresh_token, role)


async def get_user_roles(
    token: str, *, client: Optional[UCloudClient] = None
) -> list[Role]:
    """Return the roles of the user owning *token* (access or refresh token)."""
    async with _client_scope(client) as active:
        return await roles_stage.get_user_roles(active, token)
