"""Login commands -- log in, refresh tokens, list roles.

Provides the three commands of the ``ucloud-login`` CLI. Each one is a thin
synchronous wrapper that resolves credentials, runs the matching coroutine
from :mod:`ucloud_login.auth` with :func:`asyncio.run`, and renders the
result through :mod:`ucloud_login.output`.

Typical workflow::

    ucloud-login login 2021210000 --password-source env:BUPT_PASS --role student
    ucloud-login roles "$ACCESS_TOKEN"
    ucloud-login refresh "$REFRESH_TOKEN" --role teacher
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional, TypeVar

import typer

from ucloud_login.auth import get_user_roles, login, refresh
from ucloud_login.client import UCloudClient
from ucloud_login.config import Settings, load_settings, resolve_credential
from ucloud_login.exceptions import LoginError, NoRoleError, RoleNotFoundError
from ucloud_login.models import LoginOptions, OcrOptions, RoleName
from ucloud_login.output import error, info, show_login, show_roles, show_tokens, success, suggest

T = TypeVar("T")


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro* to completion, turning :class:`LoginError` into an exit code."""
    try:
        return asyncio.run(coro)
    except LoginError as exc:
        error(str(exc))
        if isinstance(exc, (RoleNotFoundError, NoRoleError)):
            suggest("List available roles: ucloud-login roles <token>")
        raise typer.Exit(code=exc.exit_code) from None


def _ask_captcha(image_url: str, cookie: str) -> str:
    info("A captcha is required.")
    info(f"  Captcha URL: {image_url}")
    info(f"  Cookie: {cookie}")
    return typer.prompt("Captcha")


async def _prompt_captcha(image_url: str, cookie: str) -> str:
    """Ask the human at the terminal to solve a captcha.

    The blocking prompt runs in a worker thread so the event loop stays free.
    """
    return await asyncio.to_thread(_ask_captcha, image_url, cookie)


def _settings(timeout: Optional[float]) -> Settings:
    try:
        return load_settings(timeout=timeout)
    except LoginError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def login_command(
    username: str = typer.Argument(help="SSO username (student or staff number)."),
    password_source: str = typer.Option(
        "prompt",
        "--password-source",
        "-s",
        help="Password source: env:VAR, file:/path, prompt.",
    ),
    role: Optional[str] = typer.Option(
        None, "--role", "-r", help="Role to scope the token to: student, teacher, assistant."
    ),
    ocr_token_source: Optional[str] = typer.Option(
        None,
        "--ocr-token-source",
        help="Solve captchas with the OCR service; token source: env:VAR, file:/path, prompt.",
    ),
    ocr_retries: int = typer.Option(3, "--ocr-retries", min=1, help="OCR attempts."),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-request timeout in seconds."
    ),
) -> None:
    """Log in and print the token bundle with the user's roles.

    Without ``--ocr-token-source`` a captcha, if shown, is asked for on
    the terminal.

    Example::

        ucloud-login login 2021210000 --password-source env:BUPT_PASS
    """
    settings = _settings(timeout)
    try:
        password = resolve_credential(password_source, prompt="Password: ")
        ocr = None
        if ocr_token_source:
            ocr = OcrOptions(
                token=resolve_credential(ocr_token_source, prompt="OCR token: "),
                max_retries=ocr_retries,
            )
    except LoginError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    options = LoginOptions(
        role=RoleName.parse(role) if role else None,
        ocr=ocr,
        on_captcha=None if ocr else _prompt_captcha,
    )

    async def _login():
        async with UCloudClient(settings) as client:
            return await login(username, password, options, client=client)

    result = _run(_login())
    show_login(result)
    success(f"Logged in as {result.real_name or username}.")


def refresh_command(
    refresh_token: str = typer.Argument(help="Refresh token from a previous login."),
    role: Optional[str] = typer.Option(
        None, "--role", "-r", help="Role to scope the new token to."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-request timeout in seconds."
    ),
) -> None:
    """Exchange a refresh token for a new token bundle."""
    settings = _settings(timeout)

    async def _refresh():
        async with UCloudClient(settings) as client:
            return await refresh(
                refresh_token, RoleName.parse(role) if role else None, client=client
            )

    bundle = _run(_refresh())
    show_tokens(bundle)


def roles_command(
    token: str = typer.Argument(help="Access token or refresh token."),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-request timeout in seconds."
    ),
) -> None:
    """List the roles available to the token's user."""
    settings = _settings(timeout)

    async def _roles():
        async with UCloudClient(settings) as client:
            return await get_user_roles(token, client=client)

    roles = _run(_roles())
    show_roles(roles)
